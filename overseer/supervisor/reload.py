import logging
from typing import Iterable, List

from overseer.modules import OverseerModule

log = logging.getLogger(__name__)


class ReloadPoller:
    """Asks every reload module, every iteration, whether workers should reload."""

    def __init__(self, modules: Iterable[OverseerModule]) -> None:
        self.modules: List[OverseerModule] = list(modules)

    def should_reload(self) -> bool:
        should_reload = False
        for module in self.modules:
            # No short-circuit: every module is asked on every iteration.
            try:
                if module.should_reload_daemons():
                    log.info(f'Reloading daemons (triggered by overseer module "{type(module).__name__}").')
                    should_reload = True
            except Exception as e:
                log.error(f"Overseer module '{type(module).__name__}' failed: {e}", exc_info=True)
        return should_reload

    def close(self) -> None:
        for module in self.modules:
            try:
                module.close()
            except Exception as e:
                log.warning(f"Failed to close overseer module '{type(module).__name__}': {e}")
