"""
Worker-side support for daemons launched by the overseer.
"""
import importlib
from typing import Dict, Type

from .base import Worker, WorkerDaemon

BUILTIN_WORKERS: Dict[str, Type[WorkerDaemon]] = {
    "Worker": Worker,
}


def resolve_worker_class(name: str) -> Type[WorkerDaemon]:
    """
    Finds the worker class named in a pool's `class` key.

    Accepts "package.module:Class", "package.module.Class", or the name of a
    built-in worker.

    :raises ValueError: If the name cannot be resolved to a WorkerDaemon subclass.
    """
    if name in BUILTIN_WORKERS:
        return BUILTIN_WORKERS[name]

    if ":" in name:
        module_name, _, attr = name.partition(":")
    else:
        module_name, _, attr = name.rpartition(".")
    if not module_name or not attr:
        raise ValueError(f"Unknown worker class '{name}'.")

    try:
        module = importlib.import_module(module_name)
        worker_class = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Unable to load worker class '{name}': {e}") from e

    if not (isinstance(worker_class, type) and issubclass(worker_class, WorkerDaemon)):
        raise ValueError(f"'{name}' is not a WorkerDaemon subclass.")
    return worker_class


__all__ = ["BUILTIN_WORKERS", "Worker", "WorkerDaemon", "resolve_worker_class"]
