import sys
import logging
from pathlib import Path
from typing import Optional, Union

from overseer import settings
from overseer.log.handler import LokiHandler


class MainFormatter(logging.Formatter):
    """Formatter shared by the overseer and its workers so one log file reads consistently."""

    def __init__(self) -> None:
        super().__init__(fmt=settings.LOG_FORMAT)


def setup_logging(
    console_level: int = logging.INFO,
    log_path: Optional[Union[str, Path]] = None,
    role: str = "overseer",
) -> None:
    """
    Configures the root logger for the current process.
    This sets up handlers for the console, an optional log file and
    optionally Loki, clearing any previously configured handlers to prevent
    duplication.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    :param log_path: If given, all records are also appended to this file.
    :param role: Process role reported to Loki ("overseer" or "worker").
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- File Handler (the bootstrap `log` key) ---
    if log_path:
        try:
            Path(log_path).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(console_level)
            file_handler.setFormatter(MainFormatter())
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.error(f"Failed to open log file '{log_path}': {e}. Logging to console only.")

    # --- Loki Handler (conditional) ---
    if settings.LOKI_ENABLED:
        try:
            loki_handler = LokiHandler(url=settings.LOKI_URL, org_id=settings.LOKI_ORG_ID, role=role)
            loki_handler.setLevel(logging.INFO) # Avoid spamming Loki with DEBUG logs
            loki_handler.setFormatter(MainFormatter())
            root_logger.addHandler(loki_handler)
            root_logger.info(f"Grafana Loki logging handler initialized for {settings.LOKI_URL}.")
        except Exception as e:
            root_logger.error(f"Failed to initialize Grafana Loki logging handler: {e}")
