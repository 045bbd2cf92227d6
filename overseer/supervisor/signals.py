"""
Signal handling for the overseer.

OS signal handlers only enqueue the raw signal number on a `SignalQueue`.
The supervision loop drains the queue at its dispatch points and feeds each
number through `SignalStateMachine.transition`, which decides the semantic
event, the shutdown state and whether the process must exit immediately.
"""

import enum
import signal
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, Optional

from overseer.errors import InvariantViolation
from overseer.exit_codes import signal_exit_code

log = logging.getLogger(__name__)


class SignalEvent(str, enum.Enum):
    """Semantic events broadcast to every pool."""
    NOTIFY = "signal/notify"
    RELOAD = "signal/reload"
    GRACEFUL = "signal/graceful"
    TERMINATE = "signal/terminate"


class ShutdownState(enum.Enum):
    RUNNING = "running"
    GRACEFUL_SHUTDOWN = "graceful"
    ABRUPT_SHUTDOWN = "abrupt"


HANDLED_SIGNALS = (
    signal.SIGUSR2,
    signal.SIGHUP,
    signal.SIGINT,
    signal.SIGTERM,
)


@dataclass(frozen=True)
class SignalTransition:
    """
    The outcome of one dispatched signal.

    ``signo`` is the signal the event is attributed to, which differs from the
    received signal when a repeated SIGINT escalates to SIGTERM. When
    ``exit_now`` is set there is no event to broadcast.
    """
    signo: int
    event: Optional[SignalEvent]
    exit_now: bool = False


class SignalStateMachine:
    """
    Maps raw signal numbers to events and tracks the shutdown state.

    The state only moves forward: RUNNING -> GRACEFUL_SHUTDOWN ->
    ABRUPT_SHUTDOWN, or RUNNING -> ABRUPT_SHUTDOWN.
    """

    def __init__(self) -> None:
        self.state = ShutdownState.RUNNING
        self.exit_code = 0

    @property
    def is_shutting_down(self) -> bool:
        return self.state is not ShutdownState.RUNNING

    @property
    def in_graceful_shutdown(self) -> bool:
        return self.state is ShutdownState.GRACEFUL_SHUTDOWN

    @property
    def in_abrupt_shutdown(self) -> bool:
        return self.state is ShutdownState.ABRUPT_SHUTDOWN

    def transition(self, signo: int) -> SignalTransition:
        """
        Applies one received signal.

        :param signo: The raw signal number.
        :return: The transition describing what the overseer must do.
        :raises InvariantViolation: For a signal the overseer never registers.
        """
        if signo == signal.SIGUSR2:
            return SignalTransition(signo, SignalEvent.NOTIFY)

        if signo == signal.SIGHUP:
            return SignalTransition(signo, SignalEvent.RELOAD)

        if signo == signal.SIGINT:
            # A second SIGINT during graceful shutdown means SIGTERM.
            if self.in_graceful_shutdown:
                return self.transition(signal.SIGTERM)
            # Abrupt shutdown never moves back to graceful.
            if not self.in_abrupt_shutdown:
                self.state = ShutdownState.GRACEFUL_SHUTDOWN
            return SignalTransition(signo, SignalEvent.GRACEFUL)

        if signo == signal.SIGTERM:
            self.exit_code = signal_exit_code(signo)
            if self.in_abrupt_shutdown:
                return SignalTransition(signo, None, exit_now=True)
            self.state = ShutdownState.ABRUPT_SHUTDOWN
            return SignalTransition(signo, SignalEvent.TERMINATE)

        raise InvariantViolation(f'Signal handler called with unknown signal type ("{signo}")!')


class SignalQueue:
    """A FIFO of raw signal numbers filled from OS signal handlers."""

    def __init__(self) -> None:
        self._pending: Deque[int] = deque()

    def __len__(self) -> int:
        return len(self._pending)

    def __bool__(self) -> bool:
        return bool(self._pending)

    def push(self, signo: int) -> None:
        self._pending.append(signo)

    def handle(self, signo: int, frame) -> None:
        """Signature-compatible with `signal.signal` handlers."""
        self.push(signo)

    def drain(self) -> Iterator[int]:
        """Yields queued signals in arrival order, including ones queued while draining."""
        while self._pending:
            yield self._pending.popleft()

    def install(self) -> None:
        """Routes every handled signal into this queue."""
        for signo in HANDLED_SIGNALS:
            signal.signal(signo, self.handle)
        log.debug(f"Installed handlers for signals: {', '.join(signal.Signals(s).name for s in HANDLED_SIGNALS)}")
