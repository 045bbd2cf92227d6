"""
Prints the overseer and worker processes found in the process table as JSON.

The result is advisory: it comes from matching command lines, not from the
overseers' liveness files.
"""
import sys
import json
import argparse
from typing import List, Optional

from overseer.supervisor.discovery import PsCommandProcessTable, PsutilProcessTable, find_running_daemons


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="process-overseer-ps", description=__doc__)
    parser.add_argument("--use-ps", action="store_true", help="Query the `ps` command instead of psutil.")
    args = parser.parse_args(argv)

    table = PsCommandProcessTable() if args.use_ps else PsutilProcessTable()
    running = find_running_daemons(table)
    print(json.dumps({str(pid): info for pid, info in sorted(running.items())}, indent=4))
    return 0


if __name__ == "__main__":
    sys.exit(main())
