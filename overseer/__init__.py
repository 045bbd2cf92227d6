"""
The process overseer.

Launches pools of worker daemon processes, restarts failed work, and reacts to
operator signals with graceful or abrupt shutdown.
"""

__version__ = "0.1.0"
