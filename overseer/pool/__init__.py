from .daemon import DaemonHandle
from .pool import DaemonPool

__all__ = ["DaemonHandle", "DaemonPool"]
