import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from overseer import settings
from overseer.errors import UsageError
from overseer.supervisor.futures import ProcessFuture
from overseer.supervisor.signals import SignalEvent
from .daemon import DaemonHandle

if TYPE_CHECKING:
    from overseer.supervisor.overseer import Overseer

log = logging.getLogger(__name__)


class DaemonPool:
    """
    A named group of identical worker daemons.

    The pool keeps `count` workers alive, restarting exited ones after `down`
    seconds, until it receives a graceful or terminate signal.
    """

    def __init__(self, config: Dict[str, Any]) -> None:
        self.config = config
        self.daemon_class: str = config["class"]
        self.label: str = config.get("label") or self.daemon_class
        self.count: int = config.get("count", settings.DEFAULT_DAEMON_COUNT)
        self.down: float = config.get("down", settings.DAEMON_RESTART_DELAY)
        self.argv: List[str] = list(config.get("argv") or [])

        self.overseer: Optional["Overseer"] = None
        self.command_line_arguments: List[str] = []
        self.daemons: List[DaemonHandle] = []
        self.should_shutdown = False

    @classmethod
    def new_from_config(cls, config: Dict[str, Any]) -> "DaemonPool":
        """
        Builds a pool from one entry of the bootstrap `daemons` list.

        :raises UsageError: If the entry is malformed.
        """
        if not isinstance(config, dict):
            raise UsageError(f"Daemon configuration must be a dictionary, got {type(config).__name__}.")
        if not isinstance(config.get("class"), str) or not config["class"]:
            raise UsageError("Daemon configuration must specify a 'class'.")

        count = config.get("count", settings.DEFAULT_DAEMON_COUNT)
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise UsageError(f"Daemon 'count' must be a positive integer, got {count!r}.")

        down = config.get("down", settings.DAEMON_RESTART_DELAY)
        if isinstance(down, bool) or not isinstance(down, (int, float)) or down < 0:
            raise UsageError(f"Daemon 'down' must be a non-negative number, got {down!r}.")

        argv = config.get("argv", [])
        if not isinstance(argv, list):
            raise UsageError("Daemon 'argv' must be a list.")

        return cls(config)

    def set_overseer(self, overseer: "Overseer") -> "DaemonPool":
        self.overseer = overseer
        return self

    def set_command_line_arguments(self, arguments: List[str]) -> "DaemonPool":
        self.command_line_arguments = list(arguments)
        return self

    def update_pool(self) -> None:
        """Reaps, restarts and tops up workers according to the pool's policy."""
        if not self.should_shutdown:
            while len(self.daemons) < self.count:
                self.daemons.append(DaemonHandle(self))

        for daemon in self.daemons:
            daemon.update()

    def get_futures(self) -> List[ProcessFuture]:
        return [d.get_future() for d in self.daemons if d.get_future() is not None]

    def get_daemons(self) -> List[DaemonHandle]:
        return list(self.daemons)

    def did_receive_signal(self, event: SignalEvent, signo: int) -> None:
        log.debug(f"Pool '{self.label}' received {event.value} (signal {signo}).")

        if event in (SignalEvent.GRACEFUL, SignalEvent.TERMINATE):
            self.should_shutdown = True

        for daemon in self.daemons:
            if event is SignalEvent.NOTIFY:
                daemon.did_receive_notify_signal()
            elif event is SignalEvent.RELOAD:
                daemon.did_receive_reload_signal()
            elif event is SignalEvent.GRACEFUL:
                daemon.did_receive_graceful_signal()
            elif event is SignalEvent.TERMINATE:
                daemon.did_receive_terminate_signal()
