"""
Process-table fallback discovery.

Identifies running overseer and worker processes by examining the process
table. This isn't completely reliable: command-line matching can miss or
misclassify processes. Use it as a fallback when the liveness files fail or
to find stray daemons, never as an authoritative view.

Example result (keys are process IDs)::

    {
        12345: {"type": "overseer", "command": "process-overseer --label web", "pid": 12345},
        12346: {"type": "daemon", "command": "worker_daemon_exec Worker --pool web", "pid": 12346},
    }
"""

import re
import logging
import subprocess
import psutil
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Union

log = logging.getLogger(__name__)

PROCESS_PATTERN = re.compile(r"(worker_daemon_exec|overseer_daemon_launch|process-overseer(?![-\w]))")
DAEMON_MATCHES = {"worker_daemon_exec"}

ProcessInfo = Dict[str, Union[str, int]]


@dataclass(frozen=True)
class ProcessRecord:
    pid: int
    command: str


class ProcessTable(Protocol):
    def query(self) -> List[ProcessRecord]:
        ...


class PsutilProcessTable:
    """Lists processes through psutil."""

    def query(self) -> List[ProcessRecord]:
        records = []
        for proc in psutil.process_iter(["pid", "cmdline", "name"]):
            try:
                cmdline = proc.info.get("cmdline") or []
                command = " ".join(cmdline) if cmdline else (proc.info.get("name") or "")
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            if command:
                records.append(ProcessRecord(pid=proc.info["pid"], command=command))
        return records


class PsCommandProcessTable:
    """Lists processes by running `ps`. Returns nothing if `ps` fails."""

    command = ["ps", "-o", "pid,command", "-a", "-x", "-w", "-w", "-w"]

    def query(self) -> List[ProcessRecord]:
        try:
            result = subprocess.run(self.command, capture_output=True, text=True, timeout=10, check=False)
        except (OSError, subprocess.SubprocessError) as e:
            log.debug(f"Could not list processes with ps: {e}")
            return []
        if result.returncode != 0:
            return []
        # The first line is the column header.
        lines = result.stdout.strip().splitlines()[1:]
        return parse_process_lines("\n".join(lines))


class StaticProcessTable:
    """A fixed list of records, e.g. parsed from captured `ps` output."""

    def __init__(self, records: List[ProcessRecord]) -> None:
        self.records = list(records)

    def query(self) -> List[ProcessRecord]:
        return list(self.records)


def parse_process_lines(text: str) -> List[ProcessRecord]:
    """
    Parses `ps -o pid,command` style lines ("<pid> <command...>").
    Lines without a numeric PID are skipped.
    """
    records = []
    for line in text.strip().splitlines():
        parts = line.strip().split(None, 1)
        if not parts or not parts[0].isdigit():
            continue
        command = parts[1] if len(parts) > 1 else ""
        records.append(ProcessRecord(pid=int(parts[0]), command=command))
    return records


def classify_command(command: str) -> Optional[str]:
    """Returns "daemon", "overseer", or None when the command isn't ours."""
    match = PROCESS_PATTERN.search(command)
    if not match:
        return None
    if match.group(1) in DAEMON_MATCHES:
        return "daemon"
    return "overseer"


def find_running_daemons(process_table: Optional[ProcessTable] = None) -> Dict[int, ProcessInfo]:
    """
    Identifies overseer and worker processes in the process table.

    :param process_table: Source of process records; defaults to psutil.
    :return: A map of PID to {"type", "command", "pid"}.
    """
    process_table = process_table or PsutilProcessTable()
    results: Dict[int, ProcessInfo] = {}
    for record in process_table.query():
        process_type = classify_command(record.command)
        if process_type is None:
            continue
        results[record.pid] = {
            "type": process_type,
            "command": record.command,
            "pid": record.pid,
        }
    return results
