import os
import sys
import socket
import logging
import weakref
import threading
import requests
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from overseer import settings

# Handlers whose flush thread must be restarted in a forked child.
_live_handlers: "weakref.WeakSet[LokiHandler]" = weakref.WeakSet()


def _restart_handlers_after_fork() -> None:
    for handler in list(_live_handlers):
        handler.restart_after_fork()


if hasattr(os, "register_at_fork"):
    os.register_at_fork(after_in_child=_restart_handlers_after_fork)


class LokiHandler(logging.Handler):
    """
    A logging handler that ships records to a Grafana Loki instance
    in batches using a background thread.
    """
    batch_size = 200

    def __init__(self, url: str, org_id: Optional[str] = None, role: str = "overseer"):
        """
        Initializes the Loki handler.

        :param url: The base URL of the Loki instance.
        :param org_id: The tenant ID for Loki (sent as 'X-Scope-OrgID').
        :param role: Stream label telling overseer and worker records apart.
        """
        super().__init__()
        self.url = f"{url.rstrip('/')}/loki/api/v1/push"
        self.org_id = org_id
        self.role = role
        self.hostname = os.getenv("HOSTNAME") or socket.gethostname()
        self.log_buffer: Deque[Dict[str, Any]] = deque()
        self.buffer_lock = threading.Lock()
        self.flush_interval = settings.LOG_BUFFER_FLUSH_INTERVAL

        self.stop_event = threading.Event()
        self._start_flush_thread()
        _live_handlers.add(self)

    def _start_flush_thread(self) -> None:
        self.flush_thread = threading.Thread(target=self._periodic_flush, daemon=True, name="LokiFlushThread")
        self.flush_thread.start()

    def restart_after_fork(self) -> None:
        """
        Restores the handler in a forked child, where only the forking thread
        survives. The buffer is kept so records queued before the fork are
        still sent.
        """
        self.buffer_lock = threading.Lock()
        if self.stop_event.is_set():
            return
        self.stop_event = threading.Event()
        self._start_flush_thread()

    def _periodic_flush(self) -> None:
        while not self.stop_event.wait(self.flush_interval):
            self.flush()
        self.flush()

    def emit(self, record: logging.LogRecord) -> None:
        """Formats a record and queues it, flushing early once a batch is full."""
        try:
            entry = {
                "stream": {
                    "job": settings.LOKI_JOB,
                    "role": self.role,
                    "level": record.levelname.lower(),
                    "hostname": self.hostname,
                    "logger": record.name,
                },
                "values": [[str(int(record.created * 1e9)), self.format(record)]],
            }
            with self.buffer_lock:
                self.log_buffer.append(entry)
                batch_full = len(self.log_buffer) >= self.batch_size
            if batch_full:
                self.flush()
        except Exception:
            self.handleError(record)

    def _take_batch(self) -> List[Dict[str, Any]]:
        with self.buffer_lock:
            batch = list(self.log_buffer)
            self.log_buffer.clear()
        return batch

    def flush(self) -> None:
        """Sends everything buffered so far. The network call happens outside the lock."""
        batch = self._take_batch()
        if not batch:
            return

        headers = {"Content-Type": "application/json"}
        if self.org_id:
            headers["X-Scope-OrgID"] = self.org_id
        try:
            response = requests.post(self.url, json={"streams": batch}, headers=headers, timeout=5)
            # 204 No Content is the success status for Loki push
            if response.status_code != 204:
                print(
                    f"ERROR: Loki returned non-204 status: {response.status_code} - {response.text}",
                    file=sys.stderr,
                )
        except requests.RequestException as e:
            print(f"CRITICAL: Failed to send {len(batch)} logs to Loki: {e}", file=sys.stderr)

    def close(self) -> None:
        """Stops the flush thread after a final flush."""
        self.stop_event.set()
        _live_handlers.discard(self)
        if self.flush_thread.is_alive():
            if self.flush_thread is not threading.current_thread():
                self.flush_thread.join(timeout=self.flush_interval + 2)
        else:
            # The flush thread is gone (e.g. after a fork), so flush here.
            self.flush()
        super().close()
