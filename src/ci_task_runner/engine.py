"""Task execution engine: satisfies a task and its prerequisites for a template.

For a requested task the engine:
1. Resolves the task from the registry and the template from the catalog
2. Asks the task whether it is already ready, and stops there if it is
3. Otherwise walks the task's prerequisites depth-first, either running them
   (cascade) or merely requiring that they are already ready
4. Runs the task, timing it and optionally handing the outcome to a reporter

Execution is strictly sequential: a prerequisite finishes before its dependent
starts, and every task in one request shares the template's working directory.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from loguru import logger

from .errors import CyclicDependencyError, NotReadyError, UnexpectedlyReadyError
from .reporting import ExecutionRecord, ReportSink
from .tasks.base import Task, TaskDetails, TaskRegistry
from .templates import Template, TemplateCatalog, working_dir
from .utils import _now


@dataclass(frozen=True)
class ExecutionFlags:
    """How strictly a task's readiness is enforced, and what else to do."""
    must_not_be_ready: bool = False   # fail if the task is already satisfied
    must_be_ready: bool = False       # fail if the task still needs to run
    cascade: bool = True              # run unmet prerequisites instead of failing
    report: bool = False              # emit an ExecutionRecord for this task

    def __post_init__(self) -> None:
        if self.must_not_be_ready and self.must_be_ready:
            raise ValueError("must_not_be_ready and must_be_ready are mutually exclusive")

    def for_prerequisite(self) -> "ExecutionFlags":
        """Flags used for each prerequisite of a task that is about to run.

        Without cascade a prerequisite is only checked, never run, and
        prerequisites are never reported.
        """
        return replace(self, must_not_be_ready=False, must_be_ready=not self.cascade, report=False)


@dataclass(frozen=True)
class ExecutionContext:
    """The template a request is bound to, shared by its whole recursion."""
    template_id: str
    template: Template
    working_dir: Path

    @property
    def details(self) -> TaskDetails:
        return TaskDetails(template=self.template, working_dir=self.working_dir)


class ExecutionOutcome(str, Enum):
    SKIPPED = "skipped"   # already ready, nothing ran
    RAN = "ran"


class TaskExecutor:
    """Runs tasks from a registry against templates from a catalog."""

    def __init__(
        self,
        registry: TaskRegistry,
        catalog: TemplateCatalog,
        sandbox_dir: Path,
        reporter: Optional[ReportSink] = None,
    ) -> None:
        self.registry = registry
        self.catalog = catalog
        self.sandbox_dir = sandbox_dir
        self.reporter = reporter

    def context_for(self, template_id: str) -> ExecutionContext:
        template = self.catalog.get(template_id)
        return ExecutionContext(
            template_id=template_id,
            template=template,
            working_dir=working_dir(self.sandbox_dir, template_id),
        )

    def execute(
        self,
        task_id: str,
        template_id: str,
        flags: Optional[ExecutionFlags] = None,
    ) -> ExecutionOutcome:
        """Make sure `task_id` is satisfied for `template_id`.

        Raises:
            UnknownTaskError: The task (or one of its prerequisites) is not registered.
            UnknownTemplateError: The template is not in the catalog.
            UnexpectedlyReadyError: The task was ready but `must_not_be_ready` was set.
            NotReadyError: The task (or, without cascade, a prerequisite) was not ready
                but was required to be.
            CyclicDependencyError: The prerequisites loop back onto a task being executed.
            Exception: Whatever a task's ``ready`` or ``run`` raised, unchanged.
        """
        flags = flags or ExecutionFlags()
        task = self.registry.get(task_id)
        ctx = self.context_for(template_id)
        return self._execute(task, ctx, flags, ())

    def _execute(
        self,
        task: Task,
        ctx: ExecutionContext,
        flags: ExecutionFlags,
        chain: tuple[str, ...],
    ) -> ExecutionOutcome:
        if task.name in chain:
            raise CyclicDependencyError(list(chain[chain.index(task.name):]) + [task.name])
        chain = chain + (task.name,)

        if task.ready(ctx.template_id, ctx.details):
            if flags.must_not_be_ready:
                raise UnexpectedlyReadyError(task.name, ctx.template_id)
            logger.debug("{} task not required for {}", task.name, ctx.template_id)
            return ExecutionOutcome.SKIPPED

        if flags.must_be_ready:
            raise NotReadyError(task.name, ctx.template_id)

        prerequisite_flags = flags.for_prerequisite()
        for dep_name in task.prerequisites:
            dep = self.registry.get(dep_name)
            self._execute(dep, ctx, prerequisite_flags, chain)

        self._run(task, ctx, flags)
        return ExecutionOutcome.RAN

    def _run(self, task: Task, ctx: ExecutionContext, flags: ExecutionFlags) -> None:
        logger.info("Running {} task for {}", task.name, ctx.template_id)
        started_at = _now()
        start = time.monotonic()
        try:
            task.run(ctx.template_id, ctx.details)
        except Exception as exc:
            duration = time.monotonic() - start
            logger.error("{} task failed for {} after {:.1f}s", task.name, ctx.template_id, duration)
            if flags.report:
                try:
                    self._report(task, ctx, started_at, duration, exc)
                except Exception:
                    logger.opt(exception=True).error("Failed to write report for {}", task.name)
            raise

        duration = time.monotonic() - start
        logger.info("{} task finished for {} in {:.1f}s", task.name, ctx.template_id, duration)
        if flags.report:
            self._report(task, ctx, started_at, duration, None)

    def _report(
        self,
        task: Task,
        ctx: ExecutionContext,
        started_at: datetime,
        duration: float,
        error: Optional[BaseException],
    ) -> None:
        if self.reporter is None:
            logger.warning("Reporting requested for {} but no reporter is configured", task.name)
            return
        self.reporter.report(
            ExecutionRecord(
                task_id=task.name,
                template_id=ctx.template_id,
                started_at=started_at,
                duration_seconds=duration,
                error=error,
            )
        )
