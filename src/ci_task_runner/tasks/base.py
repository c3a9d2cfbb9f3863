"""Base class and registry for orchestrated tasks.

Each task is a class that knows whether its effects are already present for a
template (``ready``) and how to produce them (``run``).  Tasks declare the
names of the tasks that must be satisfied first; the executor walks those
prerequisites, the task itself never does.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..errors import CyclicDependencyError, UnknownTaskError
from ..templates import Template


# ---------------------------------------------------------------------------
# Task details
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TaskDetails:
    """What a task gets to know about the template it is bound to."""
    template: Template
    working_dir: Path


# ---------------------------------------------------------------------------
# Base task class
# ---------------------------------------------------------------------------

class Task(ABC):
    """Abstract base for task implementations."""

    #: Names of tasks that must be satisfied before this one runs, in order.
    prerequisites: tuple[str, ...] = ()
    description: str = ""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique task identifier (what the CLI's ``--task`` selects)."""
        ...

    @abstractmethod
    def ready(self, template_id: str, details: TaskDetails) -> bool:
        """Is this task's effect already present for the template?"""
        ...

    @abstractmethod
    def run(self, template_id: str, details: TaskDetails) -> None:
        """Run the task. Raise to signal failure."""
        ...


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TaskRegistry:
    """Process-wide mapping from task name to task instance.

    Populated once at startup; the executor only ever reads from it.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    def register(self, task: Task) -> Task:
        if task.name in self._tasks:
            raise ValueError(f"Task '{task.name}' is already registered")
        self._tasks[task.name] = task
        return task

    def get(self, name: str) -> Task:
        if name not in self._tasks:
            raise UnknownTaskError(name, self._tasks.keys())
        return self._tasks[name]

    def has(self, name: str) -> bool:
        return name in self._tasks

    def list_tasks(self) -> list[str]:
        return sorted(self._tasks.keys())

    def __len__(self) -> int:
        return len(self._tasks)

    def find_cycle(self) -> Optional[list[str]]:
        """Detect circular prerequisites.

        Returns:
            The cycle as a list of task names (first name repeated at the end),
            or None if the prerequisite graph is acyclic.
        """
        # Track visit state: 0 = unvisited, 1 = visiting, 2 = visited
        state: dict[str, int] = {name: 0 for name in self._tasks}

        def dfs(node: str, path: list[str]) -> Optional[list[str]]:
            if state.get(node) == 1:
                cycle_start = path.index(node)
                return path[cycle_start:] + [node]
            if state.get(node, 2) == 2:
                return None

            state[node] = 1
            path.append(node)
            for dep in self._tasks[node].prerequisites:
                cycle = dfs(dep, path)
                if cycle:
                    return cycle
            path.pop()
            state[node] = 2
            return None

        for name in sorted(self._tasks):
            if state[name] == 0:
                cycle = dfs(name, [])
                if cycle:
                    return cycle
        return None

    def validate(self) -> None:
        """Check that every prerequisite is registered and the graph is acyclic.

        Raises:
            UnknownTaskError: A prerequisite names an unregistered task.
            CyclicDependencyError: The prerequisites form a cycle.
        """
        for task in self._tasks.values():
            for dep in task.prerequisites:
                if dep not in self._tasks:
                    raise UnknownTaskError(dep, self._tasks.keys())
        cycle = self.find_cycle()
        if cycle:
            raise CyclicDependencyError(cycle)
