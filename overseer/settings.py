"""
This module contains the runtime settings for the process overseer.
It defines polling and restart timing, logging sinks, reload watching and the
executables used to launch worker daemons.
Values can be overridden through environment variables or a `.env` file.
"""

import os
import sys
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=True)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "t", "yes", "y")


def _env_list(name: str) -> list:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


#* --- Process Titles ---
# These strings are matched by the process-table discovery, keep them in sync
# with supervisor/discovery.py.
OVERSEER_PROCESS_TITLE = "process-overseer"
WORKER_PROCESS_TITLE = "worker_daemon_exec"

#* --- Python Executable Configuration ---
PYTHON_EXECUTABLE = os.getenv("OVERSEER_PYTHON_EXECUTABLE", sys.executable)
WORKER_EXEC_MODULE = "overseer.script_entry.worker_daemon_exec"

#* --- Supervision Settings ---
# Upper bound on how long the loop may block before dispatching queued signals.
POLL_INTERVAL = min(max(float(os.getenv("OVERSEER_POLL_INTERVAL", "1.0")), 0.05), 1.0)
POLL_TICK = 0.05
DAEMON_RESTART_DELAY = float(os.getenv("OVERSEER_RESTART_DELAY", "5"))
DEFAULT_DAEMON_COUNT = 1
PIDFILE_PREFIX = "daemon."

#* --- Reload Modules ---
RELOAD_WATCH_PATHS = _env_list("OVERSEER_RELOAD_WATCH_PATHS")
WATCHDOG_DEBOUNCE_SECONDS = float(os.getenv("OVERSEER_WATCHDOG_DEBOUNCE_SECONDS", "1.0"))
MODULE_ENTRY_POINT_GROUP = "overseer.modules"

#* --- Worker Settings ---
WORKER_HEARTBEAT_INTERVAL = float(os.getenv("OVERSEER_WORKER_HEARTBEAT_INTERVAL", "60"))

#* --- Logging Settings ---
LOG_FORMAT = "%(asctime)s - %(levelname)-8s - [%(process)d] [%(name)s] - %(message)s"
LOG_BUFFER_FLUSH_INTERVAL = float(os.getenv("OVERSEER_LOG_BUFFER_FLUSH_INTERVAL", "5"))
LOKI_ENABLED = _env_bool("OVERSEER_LOKI_ENABLED")
LOKI_URL = os.getenv("OVERSEER_LOKI_URL", "http://127.0.0.1:3100")
LOKI_ORG_ID = os.getenv("OVERSEER_LOKI_ORG_ID") or None
LOKI_JOB = "process-overseer"
