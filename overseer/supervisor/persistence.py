import os
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

from overseer import settings

if TYPE_CHECKING:
    from .overseer import Overseer

log = logging.getLogger(__name__)


def get_pid_file_path(overseer: "Overseer") -> Optional[Path]:
    """Returns `<piddir>/daemon.<pid>`, or None when no piddir is configured."""
    if not overseer.piddir:
        return None
    return Path(overseer.piddir) / f"{settings.PIDFILE_PREFIX}{os.getpid()}"


def build_snapshot(overseer: "Overseer") -> Dict[str, Any]:
    """
    Builds the liveness record for the overseer and its running workers.

    :param overseer: The Overseer instance.
    :return: A JSON-serializable dictionary.
    """
    daemons = []
    for pool in overseer.get_daemon_pools():
        for daemon in pool.get_daemons():
            if not daemon.is_running():
                continue
            daemons.append(daemon.to_dictionary())

    return {
        "pid": os.getpid(),
        "start": overseer.start_epoch,
        "config": overseer.config,
        "daemons": daemons,
    }


def write_pid_file(path: Path, snapshot: Dict[str, Any]) -> None:
    """
    Writes the snapshot to disk via a temporary file and a rename.

    :param path: Target file path.
    :param snapshot: The record to serialize.
    """
    temp_path = path.with_name(path.name + ".tmp")
    try:
        with temp_path.open("w") as f:
            json.dump(snapshot, f)
        temp_path.replace(path)
    finally:
        temp_path.unlink(missing_ok=True)


def update_pid_file(overseer: "Overseer") -> bool:
    """
    Recomputes the liveness snapshot and writes it only if it changed since
    the last write.

    :param overseer: The Overseer instance.
    :return: True if the file was written.
    """
    path = get_pid_file_path(overseer)
    if path is None:
        return False

    snapshot = build_snapshot(overseer)
    if snapshot == overseer.last_pidfile:
        return False

    overseer.last_pidfile = snapshot
    try:
        write_pid_file(path, snapshot)
    except OSError as e:
        log.error(f"Failed to write liveness file '{path}': {e}", exc_info=True)
        return False
    log.debug(f"Liveness file updated: {path} ({len(snapshot['daemons'])} running daemons)")
    return True


def remove_pid_file(overseer: "Overseer") -> None:
    """Removes this overseer's liveness file, if any."""
    path = get_pid_file_path(overseer)
    if path is None:
        return
    path.unlink(missing_ok=True)
    overseer.last_pidfile = None
    log.debug(f"Removed liveness file: {path}")


def read_pid_files(piddir: Path) -> Dict[int, Dict[str, Any]]:
    """
    Reads every liveness file in a pid directory.
    Unreadable or malformed files are skipped.

    :param piddir: The directory overseers write into.
    :return: A map of overseer PID to its liveness record.
    """
    records: Dict[int, Dict[str, Any]] = {}
    for path in sorted(Path(piddir).glob(f"{settings.PIDFILE_PREFIX}*")):
        if path.suffix == ".tmp":
            continue
        try:
            record = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError):
            log.debug(f"Skipping unreadable liveness file: {path}")
            continue
        if isinstance(record, dict) and isinstance(record.get("pid"), int):
            records[record["pid"]] = record
    return records
