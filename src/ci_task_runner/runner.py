#!/usr/bin/env python3
"""Provide the CLI entrypoint for the CI task runner.

Runs one named task (a CI job step) against one template, satisfying the
task's prerequisites first.

Usage:
  ci-task-runner --task smoke-test --template react-vite/default-ts

Optional:
  --force        # the task must already be ready; fail instead of running it
  --no-before    # do not run prerequisites, require them to be ready already
  --junit        # write a JUnit XML result for the task
  ci-task-runner list [--json]
  ci-task-runner status --template react-vite/default-ts [--json]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from .config import RunnerSettings, get_runner_settings, load_runner_config
from .constants import DEFAULT_LOG_LEVEL, EXIT_CONFIG_ERROR, EXIT_EXECUTION_ERROR, EXIT_OK
from .engine import ExecutionFlags, TaskExecutor
from .errors import ConfigError, TaskRunError, TaskRunnerError
from .reporting import JUnitReporter
from .tasks import TaskRegistry, build_default_registry
from .templates import TemplateCatalog


def _configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure loguru logger with the specified level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{line}</cyan>\n"
            "{message}"
        ),
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--project-dir",
        type=Path,
        default=Path("."),
        help="Project directory (default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Runner config file (default: .task_runner/config.yaml)",
    )
    parser.add_argument(
        "--sandbox-dir",
        type=Path,
        default=None,
        help="Root directory for template sandboxes (default: sandbox)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=DEFAULT_LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {DEFAULT_LOG_LEVEL})",
    )


def _build_run_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ci-task-runner",
        description="CI Task Runner - run a CI task against a template, satisfying its prerequisites",
    )
    parser.add_argument(
        "--task",
        type=str,
        required=True,
        help="What task are you performing (corresponds to CI job)?",
    )
    parser.add_argument(
        "--template",
        type=str,
        required=True,
        help="What template are you running against?",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="The task must already be ready; it is an error if it would have to run",
    )
    parser.add_argument(
        "--before",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Run any required dependencies of the task (default: on)",
    )
    parser.add_argument(
        "--junit",
        action="store_true",
        help="Store results in junit format",
    )
    parser.add_argument(
        "--junit-dir",
        type=Path,
        default=None,
        help="Directory for junit results (default: code/test-results)",
    )
    _add_common_arguments(parser)
    return parser


def _build_list_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ci-task-runner list",
        description="CI Task Runner - list registered tasks and templates",
    )
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    _add_common_arguments(parser)
    return parser


def _build_status_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ci-task-runner status",
        description="CI Task Runner - show which tasks are already ready for a template",
    )
    parser.add_argument("--template", type=str, required=True, help="Template to inspect")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    _add_common_arguments(parser)
    return parser


def _load_runtime(
    args: argparse.Namespace,
) -> tuple[RunnerSettings, TaskRegistry, TemplateCatalog]:
    """Resolve settings, tasks, and templates for a command.

    Raises:
        ConfigError: The config or templates file could not be used.
    """
    project_dir = args.project_dir.resolve()
    config, err = load_runner_config(project_dir, args.config)
    if err:
        raise ConfigError(f"Unable to read runner config: {err}")
    settings = get_runner_settings(
        project_dir=project_dir,
        config=config,
        sandbox_dir=args.sandbox_dir,
        junit_dir=getattr(args, "junit_dir", None),
    )
    catalog = TemplateCatalog()
    if settings.templates_file is not None:
        catalog.load_from_yaml(settings.templates_file)
    registry = build_default_registry(settings)
    return settings, registry, catalog


def _run_task_command(args: argparse.Namespace) -> int:
    settings, registry, catalog = _load_runtime(args)
    executor = TaskExecutor(
        registry,
        catalog,
        settings.sandbox_dir,
        reporter=JUnitReporter(settings.junit_dir),
    )
    flags = ExecutionFlags(
        must_be_ready=bool(args.force),
        must_not_be_ready=False,
        cascade=bool(args.before),
        report=bool(args.junit),
    )
    outcome = executor.execute(args.task, args.template, flags)
    logger.info("{} - {}: {}", args.task, args.template, outcome.value)
    return EXIT_OK


def _list_command(args: argparse.Namespace) -> int:
    _, registry, catalog = _load_runtime(args)
    tasks = [registry.get(name) for name in registry.list_tasks()]
    templates = catalog.list_templates()

    if args.json:
        payload: dict[str, Any] = {
            "tasks": [
                {"name": t.name, "prerequisites": list(t.prerequisites), "description": t.description}
                for t in tasks
            ],
            "templates": [
                {"id": t.id, "name": t.name, "cadence": list(t.cadence), "dir": t.dir_name}
                for t in templates
            ],
        }
        sys.stdout.write(json.dumps(payload, indent=2, sort_keys=True) + "\n")
        return EXIT_OK

    console = Console()
    task_table = Table(title="Tasks")
    task_table.add_column("Task", style="bold cyan")
    task_table.add_column("Prerequisites")
    task_table.add_column("Description", style="dim")
    for task in tasks:
        task_table.add_row(task.name, ", ".join(task.prerequisites) or "-", task.description)
    console.print(task_table)

    template_table = Table(title="Templates")
    template_table.add_column("Template", style="bold cyan")
    template_table.add_column("Name")
    template_table.add_column("Cadence", style="dim")
    for template in templates:
        template_table.add_row(template.id, template.name, ", ".join(template.cadence))
    console.print(template_table)
    return EXIT_OK


def _status_command(args: argparse.Namespace) -> int:
    settings, registry, catalog = _load_runtime(args)
    executor = TaskExecutor(registry, catalog, settings.sandbox_dir)
    ctx = executor.context_for(args.template)

    readiness = {
        name: bool(registry.get(name).ready(ctx.template_id, ctx.details))
        for name in registry.list_tasks()
    }

    if args.json:
        payload = {
            "template": ctx.template_id,
            "working_dir": str(ctx.working_dir),
            "tasks": readiness,
        }
        sys.stdout.write(json.dumps(payload, indent=2, sort_keys=True) + "\n")
        return EXIT_OK

    console = Console()
    console.print(f"Template:    [bold]{ctx.template_id}[/bold]")
    console.print(f"Working dir: {ctx.working_dir}")
    table = Table()
    table.add_column("Task", style="bold cyan")
    table.add_column("Ready")
    for name, ready in readiness.items():
        table.add_row(name, "[green]yes[/green]" if ready else "[yellow]no[/yellow]")
    console.print(table)
    return EXIT_OK


def _dispatch(argv: list[str]) -> tuple[argparse.Namespace, Any]:
    if argv and argv[0] == "list":
        return _build_list_parser().parse_args(argv[1:]), _list_command
    if argv and argv[0] == "status":
        return _build_status_parser().parse_args(argv[1:]), _status_command
    return _build_run_parser().parse_args(argv), _run_task_command


def main(argv: Optional[list[str]] = None) -> None:
    """Run the `ci-task-runner` CLI.

    Args:
        argv: Optional argument list (excluding the executable name). When omitted,
            uses `sys.argv[1:]`.

    Raises:
        SystemExit: Always, carrying the process exit code (0 success, 1 task
            failure, 2 configuration error).
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    args, command = _dispatch(argv)
    _configure_logging(args.log_level)

    try:
        code = command(args)
    except ConfigError as exc:
        sys.stderr.write(f"\n{exc}\n")
        raise SystemExit(EXIT_CONFIG_ERROR) from None
    except TaskRunError as exc:
        sys.stderr.write(f"\n{exc}\n")
        if exc.log_path is not None:
            sys.stderr.write(f"Full log: {exc.log_path}\n")
        raise SystemExit(EXIT_EXECUTION_ERROR) from None
    except TaskRunnerError as exc:
        sys.stderr.write(f"\n{exc}\n")
        raise SystemExit(EXIT_EXECUTION_ERROR) from None
    except Exception as exc:
        logger.opt(exception=exc).debug("Task failed with an unexpected error")
        sys.stderr.write(f"\n{exc}\n")
        raise SystemExit(EXIT_EXECUTION_ERROR) from None
    raise SystemExit(code)


if __name__ == "__main__":
    main()
