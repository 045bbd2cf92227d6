import os
import time
import signal
import logging
import psutil
from typing import Any, Callable, Dict, Iterable, List, Optional

from overseer import settings
from overseer.config import build_pool_config, get_library_paths
from overseer.errors import OverseerError, StartupError, UsageError
from overseer.log.setup import setup_logging
from overseer.modules import OverseerModule, get_all_modules
from overseer.supervisor import daemonize, persistence
from overseer.supervisor.futures import wait_for_any
from overseer.supervisor.reload import ReloadPoller
from overseer.supervisor.signals import SignalQueue, SignalStateMachine

log = logging.getLogger(__name__)


class Overseer:
    """
    Oversees pools of worker daemons and restarts them if they fail.

    Only one Overseer may exist per process. The supervision loop runs in a
    single thread; OS signals are queued by their handlers and applied at the
    loop's dispatch points.
    """
    _instance: Optional["Overseer"] = None

    def __init__(
        self,
        config: Dict[str, Any],
        trace: bool = False,
        trace_memory: bool = False,
        verbose: bool = False,
        label: Optional[str] = None,
        modules: Optional[Iterable[OverseerModule]] = None,
        install_signal_handlers: bool = True,
        pool_factory: Optional[Callable[[Dict[str, Any]], Any]] = None,
        hard_exit: Callable[[int], Any] = os._exit,
        poll_interval: Optional[float] = None,
    ) -> None:
        """
        Validates the configuration and prepares the overseer to run.

        :param config: The bootstrap configuration (`load`, `log`, `daemonize`, `piddir`, `daemons`).
        :param trace: Enable trace logging; forwarded to workers.
        :param trace_memory: Log the overseer's memory usage every iteration. Implies trace.
        :param verbose: Enable verbose logging; forwarded to workers.
        :param label: Optional process label, forwarded to workers.
        :param modules: Reload modules to poll. Discovered when omitted.
        :param install_signal_handlers: Route SIGUSR2/SIGHUP/SIGINT/SIGTERM into the signal queue.
        :param pool_factory: Builds a pool from one merged pool config. Defaults to DaemonPool.new_from_config.
        :param hard_exit: Called with the exit code on a repeated termination signal.
        :param poll_interval: Longest the loop blocks between dispatch points.
        :raises OverseerError: If another Overseer already exists in this process.
        :raises StartupError: If the pid directory is unusable or daemonizing fails.
        :raises UsageError: If no daemons are configured.
        """
        if Overseer._instance is not None:
            raise OverseerError("You may not instantiate more than one Overseer per process.")
        Overseer._instance = self

        self.config = config
        self.libraries: List[str] = get_library_paths(config)
        self.log = config.get("log")
        self.daemonize = bool(config.get("daemonize"))
        self.piddir = config.get("piddir")

        self.trace_mode = bool(trace or trace_memory)
        self.trace_memory = bool(trace_memory)
        self.verbose = bool(verbose)
        self.argv = self._build_worker_arguments(label)

        self.pools: List[Any] = []
        self.pool_factory = pool_factory
        self.signal_state = SignalStateMachine()
        self.signal_queue = SignalQueue()
        self.hard_exit = hard_exit
        self.poll_interval = min(poll_interval or settings.POLL_INTERVAL, 1.0)
        self.last_pidfile: Optional[Dict[str, Any]] = None
        self.start_epoch = int(time.time())

        # The pid directory is validated while a terminal is still attached.
        if self.piddir:
            if not (os.path.isdir(self.piddir) and os.access(self.piddir, os.W_OK)):
                raise StartupError(
                    f"Specified daemon PID directory ('{self.piddir}') does not exist or is "
                    "not writable by the daemon user!"
                )

        if not config.get("daemons"):
            raise UsageError("You must specify at least one daemon to start!")

        if self.log:
            # Everything after this point logs to the configured file.
            setup_logging(self.console_level, log_path=self.log)

        if self.daemonize:
            daemonize.daemonize()

        self.reload_poller = ReloadPoller(get_all_modules() if modules is None else modules)

        if install_signal_handlers:
            self.signal_queue.install()

    @classmethod
    def get_instance(cls) -> Optional["Overseer"]:
        return cls._instance

    @property
    def console_level(self) -> int:
        return logging.DEBUG if (self.trace_mode or self.verbose) else logging.INFO

    @property
    def exit_code(self) -> int:
        return self.signal_state.exit_code

    def _build_worker_arguments(self, label: Optional[str]) -> List[str]:
        argv = []
        if self.trace_mode:
            argv.append("--trace")
        if self.trace_memory:
            argv.append("--trace-memory")
        if self.verbose:
            argv.append("--verbose")
        if label:
            argv.extend(["-l", label])
        return argv

    def add_library(self, library: str) -> "Overseer":
        self.libraries.append(library)
        return self

    #* --- Pools ---
    def create_daemon_pools(self) -> None:
        """Builds one pool per entry in `daemons`, bound to this overseer."""
        factory = self.pool_factory
        if factory is None:
            from overseer.pool import DaemonPool
            factory = DaemonPool.new_from_config

        forced = dict(self.config, load=self.libraries)
        for pool_config in self.config["daemons"]:
            if not isinstance(pool_config, dict):
                raise UsageError(f"Daemon configuration must be a dictionary, got {type(pool_config).__name__}.")
            pool = factory(build_pool_config(pool_config, forced))
            pool.set_overseer(self).set_command_line_arguments(self.argv)
            self.pools.append(pool)
        log.info(f"Created {len(self.pools)} daemon pool(s).")

    def get_daemon_pools(self) -> List[Any]:
        return self.pools

    def _update_pool(self, pool: Any) -> None:
        try:
            pool.update_pool()
        except Exception as e:
            log.error(f"Failed to update daemon pool {pool!r}: {e}", exc_info=True)

    def _collect_futures(self, pool: Any) -> List[Any]:
        try:
            return list(pool.get_futures())
        except Exception as e:
            log.error(f"Failed to collect futures from daemon pool {pool!r}: {e}", exc_info=True)
            return []

    #* --- Supervision Loop ---
    def run(self) -> int:
        """
        Runs the supervision loop until shutdown completes.

        :return: The exit code the process should terminate with.
        """
        self.create_daemon_pools()
        log.info(f"Overseer started (PID {os.getpid()}). Supervising {len(self.pools)} pool(s).")

        try:
            while True:
                self.dispatch_pending_signals()

                if self.reload_poller.should_reload():
                    self.did_receive_signal(signal.SIGHUP)

                futures: List[Any] = []
                for pool in self.get_daemon_pools():
                    self._update_pool(pool)
                    futures.extend(self._collect_futures(pool))

                persistence.update_pid_file(self)
                self._update_memory()

                self._wait_for_daemon_futures(futures)

                if not futures and self.signal_state.is_shutting_down:
                    break
        finally:
            self.reload_poller.close()

        persistence.remove_pid_file(self)
        log.info(f"Overseer exiting with status {self.exit_code}.")
        return self.exit_code

    def _wait_for_daemon_futures(self, futures: List[Any]) -> None:
        """
        Blocks for at most one poll interval, returning early when a daemon
        exits or a signal is queued, then dispatches queued signals.
        """
        if futures:
            wait_for_any(futures, self.poll_interval, interrupted=self.signal_queue.__bool__)
        elif not self.signal_state.is_shutting_down:
            wait_for_any([], self.poll_interval, interrupted=self.signal_queue.__bool__)
        self.dispatch_pending_signals()

    def _update_memory(self) -> None:
        if not self.trace_memory:
            return
        rss_kb = psutil.Process().memory_info().rss / 1024
        log.debug(f"Overseer Memory Usage: {rss_kb:,.1f} KB")

    #* --- Signal Handling ---
    def dispatch_pending_signals(self) -> None:
        """Applies every queued OS signal, in arrival order."""
        for signo in self.signal_queue.drain():
            self.did_receive_signal(signo)

    def did_receive_signal(self, signo: int) -> None:
        """
        Applies one signal to the shutdown state and broadcasts the resulting
        event to every pool.

        :param signo: The raw signal number.
        """
        transition = self.signal_state.transition(signo)
        if transition.exit_now:
            log.warning(f"Received repeated termination signal. Exiting immediately with status {self.exit_code}.")
            self.hard_exit(self.exit_code)
            return

        log.info(f"Received {signal.Signals(signo).name}: broadcasting {transition.event.value} to daemon pools.")
        for pool in self.get_daemon_pools():
            try:
                pool.did_receive_signal(transition.event, transition.signo)
            except Exception as e:
                log.error(f"Daemon pool {pool!r} failed to handle {transition.event.value}: {e}", exc_info=True)
