"""
The Supervisor package.
Runs the overseer's supervision loop.

This package contains the central Overseer class and its helper modules,
which together handle signal-driven shutdown, reload triggers, liveness
files, detaching into the background and process-table discovery.
"""
from .overseer import Overseer

__all__ = ['Overseer']
