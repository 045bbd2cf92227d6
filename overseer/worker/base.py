import time
import signal
import logging
import threading
from typing import List, Optional

from overseer import settings

log = logging.getLogger(__name__)


class WorkerDaemon:
    """
    Base class for processes launched by a DaemonPool.

    Subclasses implement `run()` and should return from it soon after
    `should_exit()` turns true. SIGINT and SIGTERM ask the worker to stop,
    SIGHUP asks it to stop so the pool restarts it with fresh code, and
    SIGUSR2 calls `did_receive_notify_signal()`.
    """

    def __init__(self, argv: Optional[List[str]] = None) -> None:
        self.argv = list(argv or [])
        self.exit_reason: Optional[str] = None
        self._stop_event = threading.Event()

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self._handle_exit_signal)
        signal.signal(signal.SIGTERM, self._handle_exit_signal)
        signal.signal(signal.SIGHUP, self._handle_exit_signal)
        signal.signal(signal.SIGUSR2, self._handle_notify_signal)

    def _handle_exit_signal(self, signo: int, frame) -> None:
        self.request_exit(signal.Signals(signo).name)

    def _handle_notify_signal(self, signo: int, frame) -> None:
        self.did_receive_notify_signal()

    def request_exit(self, reason: str) -> None:
        if self.exit_reason is None:
            self.exit_reason = reason
        self._stop_event.set()

    def should_exit(self) -> bool:
        return self._stop_event.is_set()

    def sleep(self, seconds: float) -> bool:
        """Sleeps until `seconds` pass or an exit is requested. Returns True if asked to exit."""
        return self._stop_event.wait(timeout=seconds)

    def did_receive_notify_signal(self) -> None:
        log.info(f"{type(self).__name__} received a notify signal.")

    def run(self) -> None:
        raise NotImplementedError

    def execute(self) -> int:
        """Runs the worker to completion and returns its exit status."""
        self.install_signal_handlers()
        log.info(f"Worker {type(self).__name__} started.")
        self.run()
        log.info(f"Worker {type(self).__name__} stopped ({self.exit_reason or 'run() returned'}).")
        return 0


class Worker(WorkerDaemon):
    """A placeholder worker that logs a heartbeat until it is asked to exit."""

    def run(self) -> None:
        interval = settings.WORKER_HEARTBEAT_INTERVAL
        started = time.monotonic()
        while not self.sleep(interval):
            log.debug(f"Worker alive for {time.monotonic() - started:.0f}s.")
