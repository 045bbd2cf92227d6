"""
Reload modules.
Each module is asked once per supervision-loop iteration whether the worker
daemons should reload. Third-party modules register under the
`overseer.modules` entry-point group.
"""

from .base import OverseerModule, get_all_modules
from .watched_paths import WatchedPathsModule

__all__ = ["OverseerModule", "WatchedPathsModule", "get_all_modules"]
