"""Shared fixtures and fakes for overseer tests."""

import itertools
from typing import Any, Callable, Dict, List, Optional

import pytest

from overseer.supervisor import Overseer


@pytest.fixture(autouse=True)
def reset_overseer_instance():
    """Each test starts without an Overseer registered in the process."""
    Overseer._instance = None
    yield
    Overseer._instance = None


class FakeFuture:
    """A future whose readiness the test controls."""

    def __init__(self, ready: bool = False, pid: int = 4242) -> None:
        self.ready = ready
        self.pid = pid

    def is_ready(self) -> bool:
        return self.ready


class FakeDaemon:
    def __init__(self, daemon_id: str, running: bool = True, pid: int = 100) -> None:
        self.daemon_id = daemon_id
        self.running = running
        self.pid = pid

    def is_running(self) -> bool:
        return self.running

    def to_dictionary(self) -> Dict[str, Any]:
        return {"id": self.daemon_id, "pid": self.pid}


class FakePool:
    """
    Records everything the overseer asks of it.

    ``futures_plan[n]`` is returned by ``get_futures()`` after the (n+1)th
    ``update_pool()``; later calls return no futures.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        self.config = config or {}
        self.overseer = None
        self.command_line_arguments: Optional[List[str]] = None
        self.updates = 0
        self.signals: List[tuple] = []
        self.futures_plan: List[List[FakeFuture]] = []
        self.daemons: List[FakeDaemon] = []
        self.on_update: Optional[Callable[["FakePool"], None]] = None

    def set_overseer(self, overseer) -> "FakePool":
        self.overseer = overseer
        return self

    def set_command_line_arguments(self, arguments) -> "FakePool":
        self.command_line_arguments = list(arguments)
        return self

    def update_pool(self) -> None:
        self.updates += 1
        if self.on_update:
            self.on_update(self)

    def get_futures(self) -> List[FakeFuture]:
        index = self.updates - 1
        if 0 <= index < len(self.futures_plan):
            return self.futures_plan[index]
        return []

    def get_daemons(self) -> List[FakeDaemon]:
        return self.daemons

    def did_receive_signal(self, event, signo) -> None:
        self.signals.append((event, signo))


class FakeModule:
    """A reload module returning a fixed answer, or raising."""

    def __init__(self, answer: bool = False, error: Optional[Exception] = None) -> None:
        self.answer = answer
        self.error = error
        self.calls = 0
        self.closed = False

    def should_reload_daemons(self) -> bool:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.answer

    def close(self) -> None:
        self.closed = True


class ExitRecorder:
    """Stands in for os._exit."""

    def __init__(self) -> None:
        self.codes: List[int] = []

    def __call__(self, code: int) -> None:
        self.codes.append(code)


@pytest.fixture
def pools():
    """Pools created by the `make_overseer` fixture, in creation order."""
    return []


@pytest.fixture
def exit_recorder():
    return ExitRecorder()


@pytest.fixture
def make_overseer(tmp_path, pools, exit_recorder):
    """Builds an Overseer wired to fake pools, no OS signal handlers and a fast poll."""
    counter = itertools.count()

    def factory(config: Dict[str, Any]) -> FakePool:
        pool = FakePool(config)
        pools.append(pool)
        return pool

    def _make(config: Optional[Dict[str, Any]] = None, **kwargs) -> Overseer:
        if config is None:
            config = {
                "daemons": [{"class": "Worker", "label": f"pool-{next(counter)}"}],
                "piddir": str(tmp_path),
            }
        kwargs.setdefault("modules", [])
        kwargs.setdefault("install_signal_handlers", False)
        kwargs.setdefault("pool_factory", factory)
        kwargs.setdefault("hard_exit", exit_recorder)
        kwargs.setdefault("poll_interval", 0.01)
        return Overseer(config, **kwargs)

    return _make
