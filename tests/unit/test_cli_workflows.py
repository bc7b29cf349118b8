import asyncio
import textwrap

import pytest
from typer.testing import CliRunner

from skillflow.cli import app
from skillflow.storage import SQLiteStore

runner = CliRunner()

CONFIRM_FLOW = """
name: confirm-release
description: Record, confirm, then save the context
initialStep: record
steps:
  - skill: record
    params:
      note: starting release
    onSuccess: ask-confirm
  - skill: ask-confirm
    params:
      prompt: Ship the release?
    onSuccess: save-context
  - skill: save-context
"""


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("SKILLFLOW_CONFIG", str(tmp_path / "absent.yaml"))
    monkeypatch.setenv("SKILLFLOW_STORE_URL", f"sqlite://{tmp_path / 'state.db'}")


@pytest.fixture
def flow_file(tmp_path):
    path = tmp_path / "confirm.yaml"
    path.write_text(CONFIRM_FLOW)
    return path


def test_workflow_validate_reports_errors_and_warnings(tmp_path, flow_file):
    result = runner.invoke(app, ["workflow", "validate", str(flow_file)])
    assert result.exit_code == 0, result.stdout
    assert "confirm-release is valid (3 steps)" in result.stdout

    broken = tmp_path / "broken.yaml"
    broken.write_text("name: broken\ninitialStep: a\nsteps:\n  - skill: a\n    onSuccess: ghost\n")
    result = runner.invoke(app, ["workflow", "validate", str(broken)])
    assert result.exit_code == 1
    assert "ghost" in result.stdout

    looping = tmp_path / "looping.yaml"
    looping.write_text(
        textwrap.dedent(
            """
            name: looping
            initialStep: a
            steps:
              - skill: a
                onFail: b
              - skill: b
                onFail: a
            """
        )
    )
    result = runner.invoke(app, ["workflow", "validate", str(looping)])
    assert result.exit_code == 0, result.stdout
    assert "Warning: Unbounded onFail cycle" in result.stdout


def test_workflow_validate_unparseable(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("steps: []\n")
    result = runner.invoke(app, ["workflow", "validate", str(bad)])
    assert result.exit_code == 1
    assert "Invalid workflow" in result.stdout


def test_workflow_show_prints_definition_and_edges(flow_file):
    result = runner.invoke(app, ["workflow", "show", str(flow_file)])
    assert result.exit_code == 0, result.stdout
    assert "initialStep: record" in result.stdout
    assert "ask-confirm <- record" in result.stdout
    assert "record <- (entry)" in result.stdout


def test_workflow_list_directory(tmp_path, flow_file):
    result = runner.invoke(app, ["workflow", "list", "--directory", str(tmp_path)])
    assert result.exit_code == 0, result.stdout
    assert "confirm-release" in result.stdout
    assert "Record, confirm, then save the context" in result.stdout

    empty = tmp_path / "empty"
    empty.mkdir()
    result = runner.invoke(app, ["workflow", "list", "--directory", str(empty)])
    assert "No workflows found" in result.stdout


def test_run_pause_and_resume(flow_file):
    result = runner.invoke(
        app, ["workflow", "run", str(flow_file), "--trace-id", "cli-1", "--params", '{"env": "prod"}']
    )
    assert result.exit_code == 0, result.stdout
    assert "Trace ID: cli-1" in result.stdout
    assert "Status: paused" in result.stdout
    assert "Waiting for input at ask-confirm: Ship the release?" in result.stdout

    result = runner.invoke(app, ["execution", "list"])
    assert result.exit_code == 0, result.stdout
    assert "cli-1\tconfirm-release\tpaused" in result.stdout

    result = runner.invoke(
        app,
        [
            "execution",
            "resume",
            "cli-1",
            "--response",
            '{"confirmed": "yes"}',
            "--workflow",
            str(flow_file),
        ],
    )
    assert result.exit_code == 0, result.stdout
    assert "Status: success" in result.stdout
    assert "record, ask-confirm, ask-confirm, save-context" in result.stdout

    result = runner.invoke(app, ["execution", "show", "cli-1"])
    assert result.exit_code == 0, result.stdout
    assert "Execution cli-1: success" in result.stdout
    assert '"confirmed": "yes"' in result.stdout
    assert "- ask-confirm #1: needs_input (Ship the release?)" in result.stdout
    assert "- save-context #1: ok" in result.stdout

    result = runner.invoke(app, ["execution", "resume", "cli-1", "--workflow", str(flow_file)])
    assert result.exit_code == 1
    assert "Cannot resume" in result.stdout


def test_execution_show_and_resume_missing():
    result = runner.invoke(app, ["execution", "show", "nope"])
    assert result.exit_code == 1
    assert "Execution not found" in result.stdout

    result = runner.invoke(app, ["execution", "resume", "nope"])
    assert result.exit_code == 1
    assert "nope" in result.stdout


def test_run_rejects_bad_params(flow_file):
    result = runner.invoke(app, ["workflow", "run", str(flow_file), "--params", "[1, 2]"])
    assert result.exit_code == 1
    assert "params must be a JSON object" in result.stdout


def test_run_with_plugin_failure_exits_nonzero(tmp_path, monkeypatch):
    plugin = tmp_path / "cli_test_plugin.py"
    plugin.write_text(
        textwrap.dedent(
            """
            from skillflow import FunctionSkill, SkillCategory, SkillMeta, SkillOutput


            async def explode(skill_input):
                return SkillOutput.fatal("quota exceeded")


            def register_skills(registry):
                meta = SkillMeta(name="explode", category=SkillCategory.UTILITY)
                registry.register(FunctionSkill(meta, explode))
            """
        )
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    flow = tmp_path / "explode.yaml"
    flow.write_text("name: explode\ninitialStep: explode\nsteps:\n  - skill: explode\n")

    result = runner.invoke(
        app, ["workflow", "run", str(flow), "--plugin", "cli_test_plugin", "--trace-id", "boom"]
    )
    assert result.exit_code == 1
    assert "Status: failed" in result.stdout
    assert "quota exceeded" in result.stdout

    result = runner.invoke(app, ["skill", "list", "--plugin", "cli_test_plugin"])
    assert "explode [utility]" in result.stdout


def test_run_unknown_skill_fails(tmp_path):
    flow = tmp_path / "ghost.yaml"
    flow.write_text("name: ghost\ninitialStep: ghost\nsteps:\n  - skill: ghost\n")
    result = runner.invoke(app, ["workflow", "run", str(flow)])
    assert result.exit_code == 1
    assert 'Skill "ghost" is not registered' in result.stdout
    assert "Steps executed: (none)" in result.stdout


def test_execution_cleanup(flow_file):
    runner.invoke(app, ["workflow", "run", str(flow_file), "--trace-id", "keep"])
    result = runner.invoke(app, ["execution", "cleanup", "--max-age-days", "1"])
    assert result.exit_code == 0, result.stdout
    assert "Removed 0 executions" in result.stdout

    result = runner.invoke(app, ["execution", "cleanup", "--max-age-days", "0"])
    assert "Removed 1 executions" in result.stdout


def test_skill_list_and_search():
    result = runner.invoke(app, ["skill", "list"])
    assert result.exit_code == 0, result.stdout
    for name in ("wait", "ask-confirm", "save-context", "record"):
        assert name in result.stdout

    result = runner.invoke(app, ["skill", "list", "--category", "ask"])
    assert "ask-confirm [ask]" in result.stdout
    assert "wait" not in result.stdout

    result = runner.invoke(app, ["skill", "search", "delay"])
    assert "wait [utility]" in result.stdout

    result = runner.invoke(app, ["skill", "search", "nothing-matches"])
    assert "No skills found" in result.stdout


def test_execution_show_uses_one_event_loop_and_closes_store(flow_file, monkeypatch):
    runner.invoke(app, ["workflow", "run", str(flow_file), "--trace-id", "cli-show"])

    real_run = asyncio.run
    runs = []
    closed = []
    real_close = SQLiteStore.close

    def counting_run(coro):
        runs.append(coro)
        return real_run(coro)

    async def tracking_close(self):
        closed.append(self)
        await real_close(self)

    monkeypatch.setattr(asyncio, "run", counting_run)
    monkeypatch.setattr(SQLiteStore, "close", tracking_close)

    result = runner.invoke(app, ["execution", "show", "cli-show"])

    assert result.exit_code == 0, result.stdout
    assert "Execution cli-show: paused" in result.stdout
    assert "- record #1: ok" in result.stdout
    assert len(runs) == 1
    assert len(closed) == 1


def test_unsafe_trace_ids_are_rejected(flow_file):
    result = runner.invoke(app, ["workflow", "run", str(flow_file), "--trace-id", "team/x"])
    assert result.exit_code == 1
    assert "Invalid trace_id" in result.stdout

    result = runner.invoke(app, ["execution", "show", "../escape"])
    assert result.exit_code == 1
    assert "Invalid trace_id" in result.stdout

    result = runner.invoke(app, ["execution", "list"])
    assert "No executions found" in result.stdout
