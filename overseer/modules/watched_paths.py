import time
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, Optional
from watchdog.observers import Observer
from watchdog.events import FileSystemEvent, FileSystemEventHandler

from overseer import settings
from .base import OverseerModule

log = logging.getLogger(__name__)


class ReloadTriggerHandler(FileSystemEventHandler):
    """A watchdog event handler that flags a reload on any change under the watched paths."""

    def __init__(self, changed: threading.Event, debounce_interval: float):
        super().__init__()
        self.changed = changed
        self.debounce_interval = debounce_interval
        self.debounce_cache: Dict[str, float] = {}

    def _should_process_event(self, path_str: str) -> bool:
        """Check if the event should be processed or skipped due to debouncing."""
        now = time.time()
        if self.debounce_cache.get(path_str, 0) > now - self.debounce_interval:
            return False
        self.debounce_cache[path_str] = now
        return True

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in ("opened", "closed_no_write"):
            return
        if not self._should_process_event(event.src_path):
            return
        log.debug(f"Watchdog event: {event.event_type} on {event.src_path}")
        self.changed.set()


class WatchedPathsModule(OverseerModule):
    """
    Requests a reload whenever a file under one of the watched paths changes.

    Paths come from `OVERSEER_RELOAD_WATCH_PATHS`. With none configured the
    module never asks for a reload and starts no observer.
    """

    def __init__(self, paths: Optional[Iterable[str]] = None, debounce_interval: Optional[float] = None):
        self.paths = [Path(p) for p in (settings.RELOAD_WATCH_PATHS if paths is None else paths)]
        self.changed = threading.Event()
        self.handler = ReloadTriggerHandler(
            self.changed,
            settings.WATCHDOG_DEBOUNCE_SECONDS if debounce_interval is None else debounce_interval,
        )
        self.observer: Optional[Observer] = None
        self._start_observer()

    def _start_observer(self) -> None:
        existing = [p for p in self.paths if p.exists()]
        for missing in set(self.paths) - set(existing):
            log.warning(f"Reload watch path does not exist and will be ignored: {missing}")
        if not existing:
            return

        self.observer = Observer()
        for path in existing:
            self.observer.schedule(self.handler, str(path), recursive=path.is_dir())
        self.observer.daemon = True
        self.observer.start()
        log.info(f"Watching {len(existing)} path(s) for reload triggers.")

    def should_reload_daemons(self) -> bool:
        if self.observer is not None and not self.observer.is_alive():
            log.error("Watchdog observer thread has stopped unexpectedly. Restarting observer.")
            self._start_observer()

        if not self.changed.is_set():
            return False
        self.changed.clear()
        return True

    def close(self) -> None:
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join(timeout=5)
        self.observer = None
