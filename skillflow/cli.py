"""Command line interface for skillflow workflows."""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

import typer

from skillflow.cli_utils.runtime import Runtime, build_runtime, parse_json_option
from skillflow.config import configure_logging, load_config
from skillflow.contracts import Execution, ExecutionStatus
from skillflow.errors import DefinitionError, SkillflowError
from skillflow.parser import dependency_graph, parse_file, to_yaml, validate
from skillflow.registry import SkillCategory

app = typer.Typer(help="CLI for skillflow workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for workflow definitions")
execution_app = typer.Typer(help="Commands for checkpointed executions")
skill_app = typer.Typer(help="Commands for registered skills")

app.add_typer(workflow_app, name="workflow")
app.add_typer(execution_app, name="execution")
app.add_typer(skill_app, name="skill")

PLUGIN_OPTION = typer.Option(
    None, "--plugin", help="Module exposing register_skills(registry); repeatable"
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, help="Logging level override"),
) -> None:
    """skillflow CLI entry point."""
    configure_logging(log_level or load_config().log_level)


def _runtime(plugins: Optional[List[str]] = None, workflows_dir: Optional[Path] = None) -> Runtime:
    try:
        return build_runtime(load_config(), plugins or [], workflows_dir)
    except (ImportError, ValueError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)


async def _closing(runtime: Runtime, coro):
    """Await ``coro`` and close the runtime's store afterwards."""
    try:
        return await coro
    finally:
        await runtime.store.close()


def _json_option(value: Optional[str], name: str) -> dict:
    try:
        return parse_json_option(value, name)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _load_workflow(path: Path):
    try:
        return parse_file(path)
    except DefinitionError as exc:
        typer.secho(f"Invalid workflow: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _report(execution: Execution) -> None:
    typer.echo(f"Trace ID: {execution.trace_id}")
    typer.echo(f"Status: {execution.status.value}")
    typer.echo(f"Steps executed: {', '.join(execution.steps_executed) or '(none)'}")
    if execution.status == ExecutionStatus.PAUSED and execution.pending_input:
        typer.echo(f"Waiting for input at {execution.current_step}: {execution.pending_input['message']}")
        typer.echo(
            f"Resume with: skillflow execution resume {execution.trace_id} --response '<json>'"
        )
    if execution.error:
        typer.secho(f"Error: {execution.error}", fg=typer.colors.RED)


@workflow_app.command("validate")
def workflow_validate(path: Path) -> None:
    """
    Parse and validate a workflow definition file.

    Reports broken step references and onSuccess cycles as errors and
    onFail cycles between distinct steps as warnings.

    Example:
        skillflow workflow validate ./workflows/demand.yaml
    """
    workflow = _load_workflow(path)
    result = validate(workflow)
    for warning in result.warnings:
        typer.secho(f"Warning: {warning}", fg=typer.colors.YELLOW)
    if not result.valid:
        for error in result.errors:
            typer.secho(f"Error: {error}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Workflow {workflow.name} is valid ({len(workflow.steps)} steps)")


@workflow_app.command("show")
def workflow_show(path: Path) -> None:
    """Print the normalized definition and the incoming edges of every step."""
    workflow = _load_workflow(path)
    typer.echo(to_yaml(workflow))
    for step_name, sources in dependency_graph(workflow).items():
        typer.echo(f"{step_name} <- {', '.join(sources) or '(entry)'}")


@workflow_app.command("list")
def workflow_list(directory: Optional[Path] = None) -> None:
    """List workflows found in ``directory`` or the configured workflows_dir."""
    runtime = _runtime(workflows_dir=directory)
    if not len(runtime.catalog):
        typer.echo("No workflows found")
        return
    for name in runtime.catalog.names():
        workflow = runtime.catalog.get(name)
        typer.echo(f"{name}\t{workflow.description or 'No description'}")


@workflow_app.command("run")
def workflow_run(
    path: Path,
    params: Optional[str] = typer.Option(None, help="JSON object of workflow parameters"),
    trace_id: Optional[str] = typer.Option(None, help="Explicit trace id"),
    plugin: Optional[List[str]] = PLUGIN_OPTION,
) -> None:
    """
    Run a workflow until it completes, fails or pauses for input.

    Example:
        skillflow workflow run ./workflows/confirm.yaml --params '{"topic": "x"}'
    """
    workflow = _load_workflow(path)
    runtime = _runtime(plugin)
    start_params = _json_option(params, "params")
    try:
        execution = asyncio.run(
            _closing(
                runtime, runtime.engine.start(workflow, params=start_params, trace_id=trace_id)
            )
        )
    except SkillflowError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    _report(execution)
    if execution.status == ExecutionStatus.FAILED:
        raise typer.Exit(code=1)


@execution_app.command("list")
def execution_list() -> None:
    """List checkpointed executions, most recently started first."""
    runtime = _runtime()
    summaries = asyncio.run(_closing(runtime, runtime.state.list()))
    if not summaries:
        typer.echo("No executions found")
        return
    for summary in summaries:
        typer.echo(
            f"{summary.trace_id}\t{summary.workflow_name}\t{summary.status.value}\t"
            f"{summary.start_time.isoformat()}"
        )


async def _load_with_history(runtime: Runtime, trace_id: str):
    execution = await runtime.state.load(trace_id)
    history = await runtime.state.history(trace_id) if execution else []
    return execution, history


@execution_app.command("show")
def execution_show(trace_id: str) -> None:
    """Show the checkpoint and step history of one execution."""
    runtime = _runtime()
    try:
        execution, history = asyncio.run(
            _closing(runtime, _load_with_history(runtime, trace_id))
        )
    except SkillflowError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if execution is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    typer.echo(f"Execution {execution.trace_id}: {execution.status.value}")
    typer.echo(f"Workflow: {execution.workflow_name}")
    typer.echo(f"Current step: {execution.current_step}")
    if execution.context:
        typer.echo(f"Context: {json.dumps(execution.context, default=str)}")
    if execution.error:
        typer.echo(f"Error: {execution.error}")
    for record in history:
        typer.echo(
            f"- {record.step_name} #{record.attempt}: {record.status}"
            + (f" ({record.message})" if record.message else "")
        )


@execution_app.command("resume")
def execution_resume(
    trace_id: str,
    response: Optional[str] = typer.Option(None, help="JSON object merged into the context"),
    workflow_path: Optional[Path] = typer.Option(None, "--workflow", help="Workflow file"),
    plugin: Optional[List[str]] = PLUGIN_OPTION,
) -> None:
    """
    Resume a paused or interrupted execution.

    Example:
        skillflow execution resume abc123 --response '{"confirmed": "yes"}'
    """
    runtime = _runtime(plugin)
    workflow = _load_workflow(workflow_path) if workflow_path else None
    answer = _json_option(response, "response")
    try:
        execution = asyncio.run(
            _closing(runtime, runtime.engine.resume(trace_id, response=answer, workflow=workflow))
        )
    except SkillflowError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    _report(execution)
    if execution.status == ExecutionStatus.FAILED:
        raise typer.Exit(code=1)


@execution_app.command("cleanup")
def execution_cleanup(
    max_age_days: Optional[float] = typer.Option(
        None, help="Delete executions started more than this many days ago"
    ),
) -> None:
    """Delete expired execution checkpoints."""
    runtime = _runtime()
    days = max_age_days if max_age_days is not None else runtime.config.cleanup_max_age_days
    removed = asyncio.run(_closing(runtime, runtime.state.cleanup(timedelta(days=days))))
    typer.echo(f"Removed {removed} executions")


@skill_app.command("list")
def skill_list(
    category: Optional[SkillCategory] = typer.Option(None, help="Only this category"),
    plugin: Optional[List[str]] = PLUGIN_OPTION,
) -> None:
    """List registered skills."""
    runtime = _runtime(plugin)
    metas = (
        runtime.registry.get_by_category(category) if category else runtime.registry.all()
    )
    if not metas:
        typer.echo("No skills found")
        return
    for meta in metas:
        typer.echo(f"{meta.name} [{meta.category.value}] {meta.version} - {meta.description}")


@skill_app.command("search")
def skill_search(query: str, plugin: Optional[List[str]] = PLUGIN_OPTION) -> None:
    """Search skills by name, description or tag."""
    runtime = _runtime(plugin)
    matches = runtime.registry.search(query)
    if not matches:
        typer.echo("No skills found")
        return
    for meta in matches:
        typer.echo(f"{meta.name} [{meta.category.value}] - {meta.description}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
