import json
import time
import uuid
import signal
import logging
import subprocess
import psutil
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from overseer import settings
from overseer.supervisor.futures import ProcessFuture

if TYPE_CHECKING:
    from .pool import DaemonPool

log = logging.getLogger(__name__)


class DaemonHandle:
    """
    One worker process owned by a DaemonPool.

    The handle survives restarts: each launch replaces `future` with a handle
    on the new process, and `update()` reaps it once it exits.
    """

    def __init__(self, pool: "DaemonPool", daemon_id: Optional[str] = None) -> None:
        self.pool = pool
        self.daemon_id = daemon_id or uuid.uuid4().hex[:12]
        self.future: Optional[ProcessFuture] = None
        self.start_epoch: Optional[int] = None
        self.restart_at = 0.0
        self.should_restart = True
        self.restart_immediately = False
        self.restart_count = 0
        self.last_exit_code: Optional[int] = None

    @property
    def name(self) -> str:
        return f"{self.pool.label}/{self.daemon_id}"

    @property
    def pid(self) -> Optional[int]:
        return self.future.pid if self.future else None

    def get_command(self) -> List[str]:
        """Returns the command line used to launch this worker."""
        return [
            settings.PYTHON_EXECUTABLE, "-m", settings.WORKER_EXEC_MODULE,
            *self.pool.command_line_arguments,
            "--pool", self.pool.label,
            "--id", self.daemon_id,
        ]

    def get_worker_config(self) -> Dict[str, Any]:
        """The configuration handed to the worker on its stdin."""
        return {
            "id": self.daemon_id,
            "class": self.pool.daemon_class,
            "label": self.pool.label,
            "argv": self.pool.argv,
            "load": self.pool.config.get("load") or [],
            "log": self.pool.config.get("log"),
        }

    #* --- Lifecycle ---
    def start(self) -> None:
        """Launches the worker process. Failures put the handle into cooldown instead of raising."""
        log.info(f"Starting daemon {self.name} ({self.pool.daemon_class})...")
        try:
            process = subprocess.Popen(
                self.get_command(),
                stdin=subprocess.PIPE,
                start_new_session=True,
                text=True,
            )
        except OSError as e:
            self.restart_at = time.time() + self.pool.down
            log.error(f"Failed to start daemon {self.name}: {e}. Retrying in {self.pool.down}s.")
            return

        try:
            process.stdin.write(json.dumps(self.get_worker_config()))
            process.stdin.close()
        except OSError as e:
            log.warning(f"Could not hand configuration to daemon {self.name} (PID {process.pid}): {e}")

        self.future = ProcessFuture(process)
        self.start_epoch = int(time.time())
        log.info(f"Daemon {self.name} started with PID: {process.pid}")

    def update(self, now: Optional[float] = None) -> None:
        """Reaps an exited worker and starts a new one once its cooldown has passed."""
        now = time.time() if now is None else now

        if self.future is not None and self.future.is_ready():
            self._reap(now)

        if self.future is None and self.should_restart and now >= self.restart_at:
            if self.start_epoch is not None:
                self.restart_count += 1
            self.start()

    def _reap(self, now: float) -> None:
        exit_code = self.future.resolve()
        self.last_exit_code = exit_code
        pid = self.future.pid
        self.future = None

        if not self.should_restart:
            log.info(f"Daemon {self.name} (PID {pid}) exited with status {exit_code}.")
            return

        if self.restart_immediately:
            self.restart_immediately = False
            self.restart_at = now
            log.info(f"Daemon {self.name} (PID {pid}) exited for reload. Restarting.")
            return

        self.restart_at = now + self.pool.down
        log.warning(
            f"Daemon {self.name} (PID {pid}) exited with status {exit_code}. "
            f"Restarting in {self.pool.down}s."
        )

    def is_running(self) -> bool:
        return self.future is not None and not self.future.is_ready()

    def get_future(self) -> Optional[ProcessFuture]:
        return self.future

    #* --- Signals ---
    def send_signal(self, signo: int) -> None:
        if not self.is_running():
            return
        try:
            self.future.process.send_signal(signo)
            log.debug(f"Sent {signal.Signals(signo).name} to daemon {self.name} (PID {self.pid})")
        except ProcessLookupError:
            log.debug(f"Daemon {self.name} exited before it could be signalled.")

    def kill(self) -> None:
        """Forcefully kills the worker and everything it spawned."""
        if not self.is_running():
            return
        try:
            proc = psutil.Process(self.pid)
            procs = [proc] + proc.children(recursive=True)
        except psutil.NoSuchProcess:
            return

        for proc in procs:
            try:
                log.warning(f"Killing process {proc.pid} of daemon {self.name}.")
                proc.kill()
            except psutil.NoSuchProcess:
                continue

    def did_receive_notify_signal(self) -> None:
        self.send_signal(signal.SIGUSR2)

    def did_receive_reload_signal(self) -> None:
        if self.is_running():
            self.restart_immediately = True
            self.send_signal(signal.SIGHUP)

    def did_receive_graceful_signal(self) -> None:
        self.should_restart = False
        self.send_signal(signal.SIGINT)

    def did_receive_terminate_signal(self) -> None:
        self.should_restart = False
        self.kill()

    def to_dictionary(self) -> Dict[str, Any]:
        return {
            "id": self.daemon_id,
            "pid": self.pid,
            "class": self.pool.daemon_class,
            "label": self.pool.label,
            "config": self.pool.config,
            "start": self.start_epoch,
        }
