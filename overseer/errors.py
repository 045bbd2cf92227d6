"""Exception hierarchy for the process overseer."""


class OverseerError(Exception):
    """Base class for all overseer errors."""


class UsageError(OverseerError):
    """The overseer was invoked or configured incorrectly."""


class StartupError(OverseerError):
    """The environment prevents the overseer from starting."""


class InvariantViolation(OverseerError):
    """A condition that can only arise from a programming error."""
