"""Task contract, registry, and the built-in task implementations."""

from .base import Task, TaskDetails, TaskRegistry
from .standard import BUILTIN_TASKS, build_default_registry

__all__ = [
    "BUILTIN_TASKS",
    "Task",
    "TaskDetails",
    "TaskRegistry",
    "build_default_registry",
]
