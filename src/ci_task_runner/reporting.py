"""Record task executions and write them out as JUnit XML.

One report file per task name: a later run of the same task (for any
template) replaces the previous file.
"""

from __future__ import annotations

import re
import traceback
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

from loguru import logger


@dataclass(frozen=True)
class ExecutionRecord:
    """Outcome of one task run against one template."""
    task_id: str
    template_id: str
    started_at: datetime
    duration_seconds: float
    error: Optional[BaseException] = None

    @property
    def name(self) -> str:
        return f"{self.task_id} - {self.template_id}"

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ReportSink(Protocol):
    def report(self, record: ExecutionRecord) -> Path | None:
        ...


def _seconds(value: float) -> str:
    return f"{value:.3f}"


_XML_ILLEGAL = re.compile(r"[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")


def _xml_text(value: str) -> str:
    """Drop code points XML 1.0 cannot carry, such as terminal escape bytes."""
    return _XML_ILLEGAL.sub("", value)


def build_junit_xml(record: ExecutionRecord) -> str:
    """Render a single-case, single-suite JUnit document for `record`."""
    failures = "0" if record.succeeded else "1"
    time = _seconds(record.duration_seconds)

    suites = ET.Element("testsuites", {"name": record.name, "time": time, "tests": "1", "failures": failures})
    suite = ET.SubElement(
        suites,
        "testsuite",
        {
            "name": record.name,
            "timestamp": record.started_at.isoformat(timespec="seconds"),
            "time": time,
            "tests": "1",
            "failures": failures,
            "errors": "0",
        },
    )
    case = ET.SubElement(
        suite,
        "testcase",
        {"name": record.name, "classname": record.task_id, "time": time, "assertions": "1"},
    )
    if record.error is not None:
        failure = ET.SubElement(
            case,
            "failure",
            {"message": _xml_text(str(record.error)), "type": type(record.error).__name__},
        )
        failure.text = _xml_text(
            "".join(traceback.format_exception(type(record.error), record.error, record.error.__traceback__))
        )

    ET.indent(suites)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(suites, encoding="unicode") + "\n"


class JUnitReporter:
    """Write each record to ``{report_dir}/{task_id}.xml``."""

    def __init__(self, report_dir: Path) -> None:
        self.report_dir = report_dir

    def path_for(self, task_id: str) -> Path:
        return self.report_dir / f"{task_id}.xml"

    def report(self, record: ExecutionRecord) -> Path:
        path = self.path_for(record.task_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(build_junit_xml(record), encoding="utf-8")
        logger.info("Test results written to {}", path.resolve())
        return path
