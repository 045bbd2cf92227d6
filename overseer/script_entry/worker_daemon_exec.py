"""
Entry point for a single worker daemon.

The launching pool writes the worker's configuration as JSON to stdin; the
command line carries the overseer's forwarded flags plus the pool label and
daemon id.
"""
import sys
import json
import logging
import argparse
import setproctitle
from typing import List, Optional

from overseer import settings
from overseer.config import get_library_paths
from overseer.log.setup import setup_logging
from overseer.worker import resolve_worker_class

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=settings.WORKER_PROCESS_TITLE, description="Run one overseer worker daemon.")
    parser.add_argument("--trace", action="store_true", help="Enable trace logging.")
    parser.add_argument("--trace-memory", action="store_true", help="Enable debug memory tracing.")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose activity logging.")
    parser.add_argument("-l", "--label", help="Process label of the launching overseer.")
    parser.add_argument("--pool", required=True, help="Label of the pool this worker belongs to.")
    parser.add_argument("--id", dest="daemon_id", help="Daemon id assigned by the pool.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = json.loads(sys.stdin.read() or "{}")

    console_level = logging.DEBUG if (args.trace or args.trace_memory or args.verbose) else logging.INFO
    setup_logging(console_level, log_path=config.get("log"), role="worker")

    for library in get_library_paths(config):
        if library not in sys.path:
            sys.path.insert(0, library)

    class_name = config.get("class", "")
    setproctitle.setproctitle(f"{settings.WORKER_PROCESS_TITLE} {class_name} --pool {args.pool}")

    try:
        worker_class = resolve_worker_class(class_name)
    except ValueError as e:
        log.critical(f"Daemon {args.pool}/{args.daemon_id} cannot start: {e}")
        return 1

    worker = worker_class(config.get("argv") or [])
    return worker.execute()


if __name__ == "__main__":
    sys.exit(main())
