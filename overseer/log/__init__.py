"""
Logging package for the overseer and its workers.
This module provides the shared logging setup and the Loki shipping handler.
"""

from .setup import setup_logging

__all__ = ["setup_logging"]
