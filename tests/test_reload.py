"""Tests for the reload-trigger poller."""

from overseer.supervisor.reload import ReloadPoller

from conftest import FakeModule


class TestReloadPoller:
    """Tests for ReloadPoller.should_reload."""

    def test_no_modules(self):
        assert ReloadPoller([]).should_reload() is False

    def test_all_false(self):
        modules = [FakeModule(), FakeModule()]
        assert ReloadPoller(modules).should_reload() is False

    def test_any_true(self):
        assert ReloadPoller([FakeModule(), FakeModule(answer=True)]).should_reload() is True

    def test_every_module_queried_after_true(self):
        modules = [FakeModule(answer=True), FakeModule(), FakeModule(answer=True)]
        ReloadPoller(modules).should_reload()
        assert [m.calls for m in modules] == [1, 1, 1]

    def test_failing_module_is_isolated(self, caplog):
        modules = [FakeModule(error=RuntimeError("boom")), FakeModule(), FakeModule()]
        assert ReloadPoller(modules).should_reload() is False
        assert [m.calls for m in modules] == [1, 1, 1]
        assert "boom" in caplog.text

    def test_failing_module_does_not_hide_other_answers(self):
        modules = [FakeModule(error=ValueError("bad")), FakeModule(answer=True)]
        assert ReloadPoller(modules).should_reload() is True

    def test_true_is_logged_with_module_name(self, caplog):
        caplog.set_level("INFO")
        ReloadPoller([FakeModule(answer=True)]).should_reload()
        assert 'overseer module "FakeModule"' in caplog.text

    def test_close(self):
        modules = [FakeModule(), FakeModule()]
        ReloadPoller(modules).close()
        assert all(m.closed for m in modules)
