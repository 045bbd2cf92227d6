import logging
from importlib.metadata import entry_points
from typing import List, Type

from overseer import settings

log = logging.getLogger(__name__)


class OverseerModule:
    """
    A pluggable source of "reload the daemons" decisions.

    The overseer calls `should_reload_daemons()` once per loop iteration on
    every module. Implementations may keep internal state between calls.
    """

    def should_reload_daemons(self) -> bool:
        return False

    def close(self) -> None:
        """Releases any resources held by the module."""


def _builtin_module_classes() -> List[Type[OverseerModule]]:
    from .watched_paths import WatchedPathsModule
    return [WatchedPathsModule]


def _entry_point_module_classes() -> List[Type[OverseerModule]]:
    classes = []
    for entry_point in entry_points(group=settings.MODULE_ENTRY_POINT_GROUP):
        try:
            module_class = entry_point.load()
        except Exception as e:
            log.error(f"Failed to load overseer module '{entry_point.name}': {e}", exc_info=True)
            continue
        if not (isinstance(module_class, type) and issubclass(module_class, OverseerModule)):
            log.warning(f"Entry point '{entry_point.name}' is not an OverseerModule subclass. Ignoring.")
            continue
        classes.append(module_class)
    return classes


def get_all_modules() -> List[OverseerModule]:
    """Instantiates the built-in modules and every registered entry-point module."""
    modules = []
    for module_class in _builtin_module_classes() + _entry_point_module_classes():
        modules.append(module_class())
    log.debug(f"Loaded {len(modules)} overseer modules: {', '.join(type(m).__name__ for m in modules)}")
    return modules
