"""
Entry point for the overseer process.

Reads the bootstrap configuration from stdin, builds the Overseer and runs
its supervision loop, exiting with the loop's status.
"""
import sys
import logging
import argparse
import setproctitle
from typing import List, Optional

from overseer import settings
from overseer.config import read_bootstrap_config
from overseer.errors import StartupError, UsageError
from overseer.exit_codes import OverseerExitCode
from overseer.log.setup import setup_logging
from overseer.supervisor import Overseer

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=settings.OVERSEER_PROCESS_TITLE,
        description="Launch and oversee pools of worker daemons. Reads its configuration from stdin.",
    )
    parser.add_argument("--trace", action="store_true", help="Enable trace logging.")
    parser.add_argument("--trace-memory", action="store_true", help="Enable debug memory tracing.")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose activity logging.")
    parser.add_argument(
        "-l", "--label",
        help='Optional process label. Makes "ps" nicer, no behavioral effects.',
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    console_level = logging.DEBUG if (args.trace or args.trace_memory or args.verbose) else logging.INFO
    setup_logging(console_level)

    title = settings.OVERSEER_PROCESS_TITLE
    if args.label:
        title = f"{title} --label {args.label}"
    setproctitle.setproctitle(title)

    try:
        config = read_bootstrap_config()
        overseer = Overseer(
            config,
            trace=args.trace,
            trace_memory=args.trace_memory,
            verbose=args.verbose,
            label=args.label,
        )
        return overseer.run()
    except UsageError as e:
        log.error(f"Usage error: {e}")
        return OverseerExitCode.USAGE
    except StartupError as e:
        log.critical(f"Overseer failed to start: {e}")
        return OverseerExitCode.STARTUP_FAILED


if __name__ == "__main__":
    sys.exit(main())
