"""Provide utility helpers for timestamps, template identifiers and log text."""

from __future__ import annotations

import re
from datetime import datetime, timezone

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _now_iso() -> str:
    return _now().isoformat()


def _template_dir_name(template_id: str) -> str:
    """Return the directory name used for a template's sandbox.

    Template ids look like ``react-vite/default-ts``; every path separator is
    flattened so each template gets a single directory under the sandbox root.
    """
    return template_id.strip().replace("/", "-")


def _strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE.sub("", text)
