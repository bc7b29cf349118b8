"""Named collection of parsed workflows."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .contracts import Workflow
from .errors import DefinitionError
from .parser import parse_file

logger = logging.getLogger(__name__)

WORKFLOW_SUFFIXES = (".yaml", ".yml", ".json")


class WorkflowCatalog:
    """Look up workflows by name, e.g. when resuming a checkpoint."""

    def __init__(self, workflows: Optional[Iterable[Workflow]] = None) -> None:
        self._workflows: Dict[str, Workflow] = {}
        for workflow in workflows or []:
            self.register(workflow)

    def register(self, workflow: Workflow) -> None:
        if workflow.name in self._workflows:
            logger.warning(f"Workflow {workflow.name} already registered, overwriting")
        self._workflows[workflow.name] = workflow

    def get(self, name: str) -> Optional[Workflow]:
        return self._workflows.get(name)

    def names(self) -> List[str]:
        return sorted(self._workflows)

    def __contains__(self, name: object) -> bool:
        return name in self._workflows

    def __len__(self) -> int:
        return len(self._workflows)

    def load_directory(self, path: str | Path) -> List[Workflow]:
        """Parse and register every workflow file in ``path``.

        Files that fail to parse are logged and skipped.
        """
        directory = Path(path)
        if not directory.is_dir():
            raise FileNotFoundError(f"Workflow directory not found: {directory}")

        loaded: List[Workflow] = []
        for file in sorted(directory.iterdir()):
            if file.suffix not in WORKFLOW_SUFFIXES or not file.is_file():
                continue
            try:
                workflow = parse_file(file)
            except DefinitionError as e:
                logger.warning(f"Skipping workflow file {file}: {e}")
                continue
            self.register(workflow)
            loaded.append(workflow)
        return loaded
