"""
Entry point scripts for the overseer's processes.

`overseer_daemon_launch` starts the overseer itself, `worker_daemon_exec`
runs one worker daemon, and `list_daemons` prints the processes found in the
process table. The module names double as the patterns process-table
discovery matches on.
"""
