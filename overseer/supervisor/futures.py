import time
import logging
import subprocess
from typing import Callable, Optional, Sequence

from overseer import settings

log = logging.getLogger(__name__)


class ProcessFuture:
    """A pollable handle for one running worker process."""

    def __init__(self, process: subprocess.Popen) -> None:
        self.process = process

    @property
    def pid(self) -> int:
        return self.process.pid

    def is_ready(self) -> bool:
        """True once the process has exited. Never blocks."""
        return self.process.poll() is not None

    def resolve(self, timeout: Optional[float] = None) -> int:
        """Waits for the process and returns its exit status."""
        return self.process.wait(timeout=timeout)

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode


def wait_for_any(
    futures: Sequence,
    timeout: float,
    interrupted: Optional[Callable[[], bool]] = None,
    tick: Optional[float] = None,
) -> Optional[object]:
    """
    Waits until one future is ready, `interrupted()` turns true, or `timeout`
    seconds pass, whichever comes first.

    With no futures this is an interruptible sleep.

    :param futures: Objects exposing `is_ready()`.
    :param timeout: Maximum seconds to block.
    :param interrupted: Checked every tick; a pending signal returns early.
    :param tick: Poll granularity, defaults to settings.POLL_TICK.
    :return: The first ready future, or None.
    """
    tick = tick or settings.POLL_TICK
    deadline = time.monotonic() + timeout
    while True:
        for future in futures:
            if future.is_ready():
                return future
        if interrupted is not None and interrupted():
            return None
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return None
        time.sleep(min(tick, remaining))
