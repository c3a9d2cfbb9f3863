"""Errors raised while resolving and running tasks."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional


class TaskRunnerError(Exception):
    """Base class for every failure the runner reports to its caller."""


class ConfigError(TaskRunnerError):
    pass


class UnknownTaskError(TaskRunnerError):
    def __init__(self, task_id: str, available: Iterable[str] = ()) -> None:
        self.task_id = task_id
        self.available = sorted(available)
        message = f"Unknown task '{task_id}'"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class UnknownTemplateError(TaskRunnerError):
    def __init__(self, template_id: str, available: Iterable[str] = ()) -> None:
        self.template_id = template_id
        self.available = sorted(available)
        message = f"Unknown template '{template_id}'"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class UnexpectedlyReadyError(TaskRunnerError):
    """The caller required a task to still be pending, but it was already done."""

    def __init__(self, task_id: str, template_id: str) -> None:
        self.task_id = task_id
        self.template_id = template_id
        super().__init__(f"{task_id} task has already run for {template_id}, this is unexpected!")


class NotReadyError(TaskRunnerError):
    """The caller required a task to be done already, but it was not."""

    def __init__(self, task_id: str, template_id: str) -> None:
        self.task_id = task_id
        self.template_id = template_id
        super().__init__(f"{task_id} task has not already run for {template_id}, this is unexpected!")


class CyclicDependencyError(TaskRunnerError):
    def __init__(self, cycle: list[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Circular task dependency detected: {' -> '.join(self.cycle)}")


class TaskRunError(TaskRunnerError):
    """A task's run action failed."""

    def __init__(self, task_id: str, message: str, log_path: Optional[Path] = None) -> None:
        self.task_id = task_id
        self.log_path = log_path
        super().__init__(message)
