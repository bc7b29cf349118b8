"""Workflow definition parsing, validation and serialization."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .constants import DEFAULT_RETRY_BUDGET
from .contracts import Step, Workflow
from .errors import DefinitionError

logger = logging.getLogger(__name__)


class ValidationResult(BaseModel):
    """Outcome of :func:`validate`.

    ``warnings`` never affect ``valid``.
    """

    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


def _normalize_step(raw: Any, index: int) -> Step:
    if not isinstance(raw, Mapping):
        raise DefinitionError(f"Step #{index} must be a mapping")
    skill_name = raw.get("skill")
    if not skill_name:
        raise DefinitionError(f"Step #{index} is missing its skill name")
    retry = raw.get("retry")
    try:
        return Step(
            skill_name=skill_name,
            params=dict(raw.get("params") or {}),
            on_success=raw.get("onSuccess") or None,
            on_fail=raw.get("onFail") or None,
            retry_budget=DEFAULT_RETRY_BUDGET if retry is None else retry,
        )
    except (ValidationError, TypeError, ValueError) as e:
        raise DefinitionError(f"Step {skill_name!r} is invalid: {e}") from e


def parse(raw: Mapping[str, Any]) -> Workflow:
    """Normalize a raw definition mapping into a :class:`Workflow`.

    Raises:
        DefinitionError: If required fields are missing or inconsistent.
    """
    if not isinstance(raw, Mapping):
        raise DefinitionError("Workflow definition must be a mapping")
    name = raw.get("name")
    if not name:
        raise DefinitionError("Workflow name is required")
    raw_steps = raw.get("steps")
    if raw_steps is None or not isinstance(raw_steps, list):
        raise DefinitionError("Workflow steps must be a list")
    initial_step = raw.get("initialStep")
    if not initial_step:
        raise DefinitionError("Workflow initialStep is required")

    steps = [_normalize_step(item, i) for i, item in enumerate(raw_steps)]

    seen: set[str] = set()
    for step in steps:
        if step.skill_name in seen:
            logger.warning(f"Duplicate step skill {step.skill_name} in workflow {name}")
        seen.add(step.skill_name)

    if initial_step not in seen:
        raise DefinitionError(f'Initial step "{initial_step}" not found in steps')

    try:
        return Workflow(
            name=name,
            description=raw.get("description") or "",
            initial_step=initial_step,
            steps=steps,
        )
    except ValidationError as e:
        raise DefinitionError(f"Workflow {name!r} is invalid: {e}") from e


def parse_yaml(content: str) -> Workflow:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise DefinitionError(f"Failed to parse workflow YAML: {e}") from e
    return parse(data)


def parse_json(content: str) -> Workflow:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise DefinitionError(f"Failed to parse workflow JSON: {e}") from e
    return parse(data)


def parse_file(path: str | Path) -> Workflow:
    """Parse a ``.yaml``, ``.yml`` or ``.json`` workflow file."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DefinitionError(f"Cannot read workflow file {path}: {e}") from e
    if path.suffix == ".json":
        return parse_json(content)
    if path.suffix in (".yaml", ".yml"):
        return parse_yaml(content)
    raise DefinitionError(f"Unsupported workflow file type: {path.suffix}")


def serialize(workflow: Workflow) -> Dict[str, Any]:
    """Convert ``workflow`` back into the definition format."""
    return {
        "name": workflow.name,
        "description": workflow.description,
        "initialStep": workflow.initial_step,
        "steps": [
            {
                "skill": step.skill_name,
                "params": dict(step.params),
                "onSuccess": step.on_success,
                "onFail": step.on_fail,
                "retry": step.retry_budget,
            }
            for step in workflow.steps
        ],
    }


def to_yaml(workflow: Workflow) -> str:
    return yaml.safe_dump(serialize(workflow), sort_keys=False, allow_unicode=True)


def to_json(workflow: Workflow) -> str:
    return json.dumps(serialize(workflow), indent=2, ensure_ascii=False)


def _find_on_fail_cycles(workflow: Workflow) -> List[List[str]]:
    edges = {
        s.skill_name: s.on_fail
        for s in workflow.steps
        if s.on_fail and s.on_fail != s.skill_name
    }
    cycles: List[List[str]] = []
    reported: set[frozenset[str]] = set()
    for start in edges:
        path = [start]
        current: Optional[str] = edges.get(start)
        while current is not None and current not in path:
            path.append(current)
            current = edges.get(current)
        if current is None:
            continue
        loop = path[path.index(current):]
        key = frozenset(loop)
        if key not in reported:
            reported.add(key)
            cycles.append(loop + [current])
    return cycles


def validate(workflow: Workflow) -> ValidationResult:
    """Check reference integrity and ``on_success`` cycles of ``workflow``.

    Both checks accumulate into ``errors``. Cycles formed by ``on_fail``
    edges between distinct steps are reported as ``warnings``: such a loop is
    bounded by nothing once every retry budget along it is spent.
    """
    errors: List[str] = []
    names = set(workflow.step_names())

    for step in workflow.steps:
        if step.on_success and step.on_success not in names:
            errors.append(
                f'Step "{step.skill_name}" references non-existent step "{step.on_success}"'
            )
        if step.on_fail and step.on_fail not in names:
            errors.append(
                f'Step "{step.skill_name}" references non-existent step "{step.on_fail}"'
            )

    visited: set[str] = set()
    current = workflow.initial_step
    path = [current]
    while current not in visited:
        step = workflow.get_step(current)
        if step is None:
            break
        visited.add(current)
        if not step.on_success:
            break
        if step.on_success in path:
            errors.append(f"Cycle detected: {' -> '.join(path + [step.on_success])}")
            break
        path.append(step.on_success)
        current = step.on_success

    warnings = [
        f"Unbounded onFail cycle: {' -> '.join(cycle)}"
        for cycle in _find_on_fail_cycles(workflow)
    ]

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def dependency_graph(workflow: Workflow) -> Dict[str, List[str]]:
    """Map each step to the steps that transition into it."""
    graph: Dict[str, List[str]] = {}
    for step in workflow.steps:
        graph[step.skill_name] = [
            other.skill_name
            for other in workflow.steps
            if step.skill_name in (other.on_success, other.on_fail)
        ]
    return graph

