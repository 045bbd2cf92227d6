"""Exit codes for the overseer executable."""

from enum import IntEnum


class OverseerExitCode(IntEnum):
    """Process exit codes.

    Signal-driven exits use ``128 + signal_number`` and are not listed here.
    """

    SUCCESS = 0
    STARTUP_FAILED = 1
    USAGE = 2


def signal_exit_code(signo: int) -> int:
    """Return the conventional exit code for a process ended by ``signo``."""
    return 128 + signo
