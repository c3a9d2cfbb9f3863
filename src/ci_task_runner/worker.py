from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any, Optional

from loguru import logger


def _run_command(
    command: str,
    cwd: Path,
    log_path: Path,
    *,
    timeout_seconds: Optional[int] = None,
) -> dict[str, Any]:
    """Run a shell command, streaming its combined output to `log_path`."""
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Running `{}` in {} (log: {})", command, cwd, log_path)
    with open(log_path, "w") as handle:
        try:
            result = subprocess.run(
                command,
                cwd=cwd,
                shell=True,
                stdout=handle,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=timeout_seconds,
            )
        except subprocess.TimeoutExpired:
            handle.write(f"\n[runner] Command timed out after {timeout_seconds}s\n")
            return {
                "command": command,
                "exit_code": 124,
                "log_path": str(log_path),
                "timed_out": True,
            }
    return {
        "command": command,
        "exit_code": result.returncode,
        "log_path": str(log_path),
        "timed_out": False,
    }
