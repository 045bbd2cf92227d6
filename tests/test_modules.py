"""Tests for reload modules."""

import threading

from watchdog.events import FileModifiedEvent, FileOpenedEvent

from overseer import settings
from overseer.modules import OverseerModule, WatchedPathsModule, get_all_modules
from overseer.modules import base as modules_base
from overseer.modules.watched_paths import ReloadTriggerHandler


class TestReloadTriggerHandler:
    """Tests for the watchdog event handler."""

    def test_change_sets_flag(self):
        changed = threading.Event()
        ReloadTriggerHandler(changed, 0).on_any_event(FileModifiedEvent("/srv/app/code.py"))
        assert changed.is_set()

    def test_open_events_are_ignored(self):
        changed = threading.Event()
        ReloadTriggerHandler(changed, 0).on_any_event(FileOpenedEvent("/srv/app/code.py"))
        assert not changed.is_set()

    def test_debounce(self):
        changed = threading.Event()
        handler = ReloadTriggerHandler(changed, 60)
        handler.on_any_event(FileModifiedEvent("/srv/app/code.py"))
        changed.clear()
        handler.on_any_event(FileModifiedEvent("/srv/app/code.py"))
        assert not changed.is_set()

        handler.on_any_event(FileModifiedEvent("/srv/app/other.py"))
        assert changed.is_set()


class TestWatchedPathsModule:
    """Tests for WatchedPathsModule."""

    def test_no_paths_is_inert(self):
        module = WatchedPathsModule(paths=[])
        assert module.observer is None
        assert module.should_reload_daemons() is False
        module.close()

    def test_missing_path_is_ignored(self, tmp_path):
        module = WatchedPathsModule(paths=[str(tmp_path / "missing")])
        assert module.observer is None

    def test_flag_is_consumed(self):
        module = WatchedPathsModule(paths=[])
        module.changed.set()
        assert module.should_reload_daemons() is True
        assert module.should_reload_daemons() is False

    def test_watches_directory(self, tmp_path):
        module = WatchedPathsModule(paths=[str(tmp_path)], debounce_interval=0)
        try:
            assert module.observer is not None
            assert module.observer.is_alive()
        finally:
            module.close()
        assert module.observer is None


class TestGetAllModules:
    """Tests for module discovery."""

    def test_builtin_modules(self, monkeypatch):
        monkeypatch.setattr(settings, "RELOAD_WATCH_PATHS", [])
        monkeypatch.setattr(modules_base, "_entry_point_module_classes", lambda: [])
        modules = get_all_modules()
        assert [type(m) for m in modules] == [WatchedPathsModule]

    def test_entry_point_modules(self, monkeypatch):
        class AlwaysReload(OverseerModule):
            def should_reload_daemons(self):
                return True

        monkeypatch.setattr(settings, "RELOAD_WATCH_PATHS", [])
        monkeypatch.setattr(modules_base, "_entry_point_module_classes", lambda: [AlwaysReload])
        modules = get_all_modules()
        assert isinstance(modules[-1], AlwaysReload)

    def test_base_module_never_reloads(self):
        module = OverseerModule()
        assert module.should_reload_daemons() is False
        module.close()
