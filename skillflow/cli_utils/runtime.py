"""Wiring helpers shared by CLI commands."""

from __future__ import annotations

import importlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from skillflow.catalog import WorkflowCatalog
from skillflow.config import SkillflowConfig
from skillflow.engine import WorkflowEngine
from skillflow.registry import SkillRegistry
from skillflow.skills import register_builtin_skills
from skillflow.state import StateStore
from skillflow.storage import DurableStore, get_store


@dataclass
class Runtime:
    config: SkillflowConfig
    store: DurableStore
    registry: SkillRegistry
    state: StateStore
    catalog: WorkflowCatalog
    engine: WorkflowEngine


def load_plugin(registry: SkillRegistry, module_path: str) -> None:
    """Import ``module_path`` and call its ``register_skills(registry)``."""
    module = importlib.import_module(module_path)
    register = getattr(module, "register_skills", None)
    if register is None:
        raise ValueError(f"Plugin {module_path} does not define register_skills()")
    register(registry)


def build_runtime(
    config: SkillflowConfig,
    plugins: Iterable[str] = (),
    workflows_dir: Optional[Path] = None,
) -> Runtime:
    store = get_store(config=config)
    registry = SkillRegistry()
    register_builtin_skills(registry, store)
    for plugin in plugins:
        load_plugin(registry, plugin)

    catalog = WorkflowCatalog()
    directory = workflows_dir or (Path(config.workflows_dir) if config.workflows_dir else None)
    if directory is not None and directory.is_dir():
        catalog.load_directory(directory)

    state = StateStore(store, state_dir=config.state_dir, history_dir=config.history_dir)
    engine = WorkflowEngine(
        registry, state, catalog=catalog, retry_backoff=config.retry_backoff
    )
    return Runtime(config, store, registry, state, catalog, engine)


def parse_json_option(value: Optional[str], name: str) -> Dict[str, Any]:
    """Decode a JSON object passed on the command line."""
    if not value:
        return {}
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        raise ValueError(f"{name} must be valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a JSON object")
    return data
