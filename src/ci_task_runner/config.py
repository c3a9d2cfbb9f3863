"""Load optional runner configuration from `.task_runner/config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .constants import (
    CONFIG_FILE,
    DEFAULT_CODE_DIR,
    DEFAULT_COMMANDS,
    DEFAULT_JUNIT_DIR,
    DEFAULT_SANDBOX_DIR,
    LOGS_DIR,
    STATE_DIR_NAME,
)
from .errors import ConfigError
from .io_utils import _load_data_with_error


@dataclass(frozen=True)
class RunnerSettings:
    """Resolved configuration for one invocation."""

    project_dir: Path
    sandbox_dir: Path
    junit_dir: Path
    code_dir: Path
    log_dir: Path
    templates_file: Optional[Path] = None
    commands: dict[str, str] = field(default_factory=dict)
    timeouts: dict[str, int] = field(default_factory=dict)

    def command_for(self, task_id: str) -> Optional[str]:
        return self.commands.get(task_id) or DEFAULT_COMMANDS.get(task_id)

    def timeout_for(self, task_id: str) -> Optional[int]:
        return self.timeouts.get(task_id)


def default_config_path(project_dir: Path) -> Path:
    return project_dir.resolve() / STATE_DIR_NAME / CONFIG_FILE


def load_runner_config(project_dir: Path, config_path: Optional[Path] = None) -> tuple[dict[str, Any], str | None]:
    """Load the optional runner config file.

    Args:
        project_dir: Repository root directory.
        config_path: Explicit config file; defaults to `.task_runner/config.yaml`.

    Returns:
        A tuple of `(config, error_message)`. If the default file is missing,
        returns `({}, None)`. An explicitly requested file that does not exist
        is reported as an error.
    """
    path = config_path if config_path is not None else default_config_path(project_dir)
    if not path.exists():
        if config_path is not None:
            return {}, f"{path}: config file not found"
        return {}, None
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _resolve_path(project_dir: Path, value: Any, default: str) -> Path:
    raw = str(value).strip() if isinstance(value, (str, Path)) and str(value).strip() else default
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = project_dir / path
    return path


def get_runner_settings(
    *,
    project_dir: Path,
    config: dict[str, Any],
    sandbox_dir: Optional[Path] = None,
    junit_dir: Optional[Path] = None,
) -> RunnerSettings:
    """Merge the config mapping and CLI overrides into `RunnerSettings`.

    Raises:
        ConfigError: If `commands`, `timeouts` or `templates_file` contain unusable values.
    """
    project_dir = project_dir.resolve()

    commands: dict[str, str] = {}
    for name, command in _as_dict(config.get("commands")).items():
        if not isinstance(command, str) or not command.strip():
            raise ConfigError(f"commands.{name} must be a non-empty string")
        commands[str(name)] = command.strip()

    timeouts: dict[str, int] = {}
    for name, seconds in _as_dict(config.get("timeouts")).items():
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds <= 0:
            raise ConfigError(f"timeouts.{name} must be a positive integer (seconds)")
        timeouts[str(name)] = seconds

    templates_raw = config.get("templates_file")
    templates_file: Optional[Path] = None
    if templates_raw is not None:
        if not isinstance(templates_raw, str) or not templates_raw.strip():
            raise ConfigError("templates_file must be a non-empty string")
        templates_file = _resolve_path(project_dir, templates_raw, "")

    return RunnerSettings(
        project_dir=project_dir,
        sandbox_dir=_resolve_path(project_dir, sandbox_dir or config.get("sandbox_dir"), DEFAULT_SANDBOX_DIR),
        junit_dir=_resolve_path(project_dir, junit_dir or config.get("junit_dir"), DEFAULT_JUNIT_DIR),
        code_dir=_resolve_path(project_dir, config.get("code_dir"), DEFAULT_CODE_DIR),
        log_dir=_resolve_path(project_dir, config.get("log_dir"), f"{STATE_DIR_NAME}/{LOGS_DIR}"),
        templates_file=templates_file,
        commands=commands,
        timeouts=timeouts,
    )
