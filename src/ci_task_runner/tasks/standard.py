"""Built-in tasks: bootstrap the monorepo, publish it to the local registry,
create a template sandbox, and smoke-test that sandbox.
"""

from __future__ import annotations

from pathlib import Path

from ..config import RunnerSettings
from ..constants import LOG_TAIL_CHARS, MARKER_DIR_NAME
from ..errors import TaskRunError
from ..io_utils import _read_text_tail
from ..templates import render_script
from ..utils import _now_iso, _strip_ansi
from ..worker import _run_command
from .base import Task, TaskDetails, TaskRegistry


class CommandTask(Task):
    """A task whose run action is a shell command."""

    def __init__(self, settings: RunnerSettings) -> None:
        self.settings = settings

    def command(self, template_id: str, details: TaskDetails) -> str:
        command = self.settings.command_for(self.name)
        if not command:
            raise TaskRunError(self.name, f"No command configured for the {self.name} task")
        return command

    def cwd(self, details: TaskDetails) -> Path:
        return self.settings.code_dir

    def log_path(self, details: TaskDetails) -> Path:
        return self.settings.log_dir / details.template.dir_name / f"{self.name}.log"

    def run(self, template_id: str, details: TaskDetails) -> None:
        command = self.command(template_id, details)
        cwd = self.cwd(details)
        cwd.mkdir(parents=True, exist_ok=True)
        log_path = self.log_path(details)
        result = _run_command(
            command,
            cwd,
            log_path,
            timeout_seconds=self.settings.timeout_for(self.name),
        )
        if result["timed_out"]:
            raise TaskRunError(
                self.name,
                f"{self.name} timed out after {self.settings.timeout_for(self.name)}s",
                log_path=log_path,
            )
        if result["exit_code"] != 0:
            tail = _strip_ansi(_read_text_tail(log_path, max_chars=LOG_TAIL_CHARS)).rstrip()
            message = f"{self.name} failed: `{command}` exited with {result['exit_code']}"
            if tail:
                message += f"\n{tail}"
            raise TaskRunError(self.name, message, log_path=log_path)
        self.after_success(details)

    def after_success(self, details: TaskDetails) -> None:
        pass


class RepoTask(CommandTask):
    """A command task whose effect is shared by every template.

    Readiness is recorded as a marker file in the code directory, written
    only once the command succeeded.
    """

    def marker_path(self) -> Path:
        return self.settings.code_dir / MARKER_DIR_NAME / f"{self.name}.done"

    def ready(self, template_id: str, details: TaskDetails) -> bool:
        return self.marker_path().exists()

    def after_success(self, details: TaskDetails) -> None:
        marker = self.marker_path()
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.write_text(_now_iso() + "\n")


class BootstrapTask(RepoTask):
    name = "bootstrap"
    description = "Install and build the monorepo packages"


class PublishTask(RepoTask):
    name = "publish"
    prerequisites = ("bootstrap",)
    description = "Publish the built packages to the local registry"


class CreateTask(CommandTask):
    name = "create"
    prerequisites = ("publish",)
    description = "Generate the template's sandbox"

    def ready(self, template_id: str, details: TaskDetails) -> bool:
        return details.working_dir.exists()

    def command(self, template_id: str, details: TaskDetails) -> str:
        script = self.settings.commands.get(self.name) or details.template.script
        return render_script(script, **self._placeholders(template_id, details))

    def cwd(self, details: TaskDetails) -> Path:
        return self.settings.sandbox_dir

    def _placeholders(self, template_id: str, details: TaskDetails) -> dict[str, str]:
        return {
            "working_dir": str(details.working_dir),
            "sandbox_dir": str(self.settings.sandbox_dir),
            "template_id": template_id,
        }


class SmokeTestTask(CommandTask):
    name = "smoke-test"
    prerequisites = ("create",)
    description = "Check the sandbox's Storybook starts"

    def ready(self, template_id: str, details: TaskDetails) -> bool:
        return False

    def cwd(self, details: TaskDetails) -> Path:
        return details.working_dir


BUILTIN_TASKS: tuple[type[CommandTask], ...] = (
    BootstrapTask,
    PublishTask,
    CreateTask,
    SmokeTestTask,
)


def build_default_registry(settings: RunnerSettings) -> TaskRegistry:
    """Register the built-in tasks and check their prerequisite graph."""
    registry = TaskRegistry()
    for task_cls in BUILTIN_TASKS:
        registry.register(task_cls(settings))
    registry.validate()
    return registry
