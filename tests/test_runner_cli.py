"""Tests for the `ci-task-runner` CLI."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from ci_task_runner import runner

TEMPLATE = "react-vite/default-ts"


def _write_config(project_dir: Path, body: str) -> None:
    cfg_dir = project_dir / ".task_runner"
    cfg_dir.mkdir(parents=True, exist_ok=True)
    (cfg_dir / "config.yaml").write_text(body)


def _main(*argv: str) -> int:
    with pytest.raises(SystemExit) as excinfo:
        runner.main(list(argv))
    return excinfo.value.code


@pytest.fixture
def project(tmp_path: Path) -> Path:
    _write_config(
        tmp_path,
        "commands:\n"
        "  bootstrap: 'true'\n"
        "  publish: 'true'\n"
        "  create: 'mkdir -p {working_dir}'\n"
        "  smoke-test: 'true'\n",
    )
    return tmp_path


def test_run_with_prerequisites_and_junit(project: Path):
    code = _main("--project-dir", str(project), "--task", "smoke-test", "--template", TEMPLATE, "--junit")

    assert code == 0
    assert (project / "sandbox" / "react-vite-default-ts").is_dir()
    assert (project / "code" / ".task-runner" / "bootstrap.done").exists()
    results = sorted(p.name for p in (project / "code" / "test-results").iterdir())
    assert results == ["smoke-test.xml"]
    suite = ET.parse(project / "code" / "test-results" / "smoke-test.xml").getroot().find("testsuite")
    assert suite.get("name") == f"smoke-test - {TEMPLATE}"


def test_no_before_requires_prerequisites(project: Path, capsys: pytest.CaptureFixture[str]):
    code = _main("--project-dir", str(project), "--task", "smoke-test", "--template", TEMPLATE, "--no-before")

    assert code == 1
    assert "create task has not already run" in capsys.readouterr().err
    assert not (project / "sandbox").exists()


def test_force_requires_task_to_be_ready(project: Path, capsys: pytest.CaptureFixture[str]):
    code = _main("--project-dir", str(project), "--task", "bootstrap", "--template", TEMPLATE, "--force")

    assert code == 1
    assert "bootstrap task has not already run" in capsys.readouterr().err

    assert _main("--project-dir", str(project), "--task", "bootstrap", "--template", TEMPLATE) == 0
    assert _main("--project-dir", str(project), "--task", "bootstrap", "--template", TEMPLATE, "--force") == 0


def test_unknown_task(project: Path, capsys: pytest.CaptureFixture[str]):
    code = _main("--project-dir", str(project), "--task", "deploy", "--template", TEMPLATE, "--junit")

    assert code == 1
    assert "Unknown task 'deploy'" in capsys.readouterr().err
    assert not (project / "code" / "test-results").exists()


def test_unknown_template(project: Path, capsys: pytest.CaptureFixture[str]):
    assert _main("--project-dir", str(project), "--task", "create", "--template", "nope/js") == 1
    assert "Unknown template 'nope/js'" in capsys.readouterr().err


def test_failed_task_writes_failure_report(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    _write_config(tmp_path, "commands:\n  bootstrap: 'echo compile error; exit 2'\n")

    code = _main("--project-dir", str(tmp_path), "--task", "bootstrap", "--template", TEMPLATE, "--junit")

    assert code == 1
    err = capsys.readouterr().err
    assert "bootstrap failed" in err
    assert "Full log: " in err
    assert "bootstrap.log" in err
    failure = ET.parse(tmp_path / "code" / "test-results" / "bootstrap.xml").getroot().find(
        "testsuite/testcase/failure"
    )
    assert failure is not None
    assert "compile error" in failure.get("message")


def test_coloured_failure_output_still_yields_parseable_report(tmp_path: Path):
    _write_config(tmp_path, "commands:\n  bootstrap: \"printf '\\\\033[31mError: boom\\\\033[39m\\\\n'; exit 1\"\n")

    code = _main("--project-dir", str(tmp_path), "--task", "bootstrap", "--template", TEMPLATE, "--junit")

    assert code == 1
    failure = ET.parse(tmp_path / "code" / "test-results" / "bootstrap.xml").getroot().find(
        "testsuite/testcase/failure"
    )
    assert "Error: boom" in failure.get("message")
    assert "\x1b" not in failure.get("message")


def test_config_error_exit_code(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    _write_config(tmp_path, "commands: [broken\n")

    assert _main("--project-dir", str(tmp_path), "--task", "bootstrap", "--template", TEMPLATE) == 2
    assert "Unable to read runner config" in capsys.readouterr().err


def test_list_json(project: Path, capsys: pytest.CaptureFixture[str]):
    assert _main("list", "--project-dir", str(project), "--json") == 0

    payload = json.loads(capsys.readouterr().out)
    assert [t["name"] for t in payload["tasks"]] == ["bootstrap", "create", "publish", "smoke-test"]
    assert any(t["id"] == TEMPLATE and t["dir"] == "react-vite-default-ts" for t in payload["templates"])


def test_list_table(project: Path, capsys: pytest.CaptureFixture[str]):
    assert _main("list", "--project-dir", str(project)) == 0
    out = capsys.readouterr().out
    assert "smoke-test" in out
    assert "Templates" in out


def test_status_json(project: Path, capsys: pytest.CaptureFixture[str]):
    assert _main("--project-dir", str(project), "--task", "create", "--template", TEMPLATE) == 0
    capsys.readouterr()

    assert _main("status", "--project-dir", str(project), "--template", TEMPLATE, "--json") == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["template"] == TEMPLATE
    assert payload["tasks"] == {"bootstrap": True, "create": True, "publish": True, "smoke-test": False}


def test_status_table(project: Path, capsys: pytest.CaptureFixture[str]):
    assert _main("status", "--project-dir", str(project), "--template", TEMPLATE) == 0
    assert TEMPLATE in capsys.readouterr().out
