import os
import sys
import logging

from overseer.errors import StartupError

log = logging.getLogger(__name__)


def daemonize() -> None:
    """
    Detaches the current process from its controlling terminal.

    The parent process exits with status 0; execution continues in a
    forked child that leads a new session and has stdin, stdout and stderr
    pointed at /dev/null.

    :raises StartupError: If the platform cannot fork or the fork fails.
    """
    if not hasattr(os, "fork"):
        raise StartupError("Daemonizing is not supported on this platform.")

    # Anything still buffered would be written twice, once by each process.
    sys.stdout.flush()
    sys.stderr.flush()

    try:
        pid = os.fork()
    except OSError as e:
        raise StartupError("Unable to fork!") from e

    if pid:
        os._exit(0)

    os.setsid()

    devnull = os.open(os.devnull, os.O_RDWR)
    try:
        for fd in (0, 1, 2):
            os.dup2(devnull, fd)
    finally:
        if devnull > 2:
            os.close(devnull)

    log.debug(f"Detached into the background as PID {os.getpid()}.")
