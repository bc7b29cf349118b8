"""Shared fixtures for skillflow tests."""

from __future__ import annotations

from typing import Callable, List, Sequence, Union

import pytest

from skillflow.contracts import SkillInput, SkillOutput
from skillflow.engine import WorkflowEngine
from skillflow.registry import SkillCategory, SkillMeta, SkillRegistry
from skillflow.skills import Skill
from skillflow.state import StateStore
from skillflow.storage import InMemoryStore

Scripted = Union[SkillOutput, Exception]


class ScriptedSkill(Skill):
    """Skill returning a fixed sequence of outputs; the last one repeats."""

    def __init__(
        self,
        name: str,
        outputs: Sequence[Scripted],
        category: SkillCategory = SkillCategory.UTILITY,
    ) -> None:
        self.meta = SkillMeta(name=name, description=f"scripted {name}", category=category)
        self._outputs = list(outputs) or [SkillOutput.ok()]
        self.calls = 0
        self.inputs: List[SkillInput] = []

    async def execute(self, skill_input: SkillInput) -> SkillOutput:
        self.inputs.append(skill_input)
        outcome = self._outputs[min(self.calls, len(self._outputs) - 1)]
        self.calls += 1
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def state_store(store) -> StateStore:
    return StateStore(store)


@pytest.fixture
def registry() -> SkillRegistry:
    return SkillRegistry()


@pytest.fixture
def engine(registry, state_store) -> WorkflowEngine:
    return WorkflowEngine(registry, state_store)


@pytest.fixture
def make_skill(registry) -> Callable[..., ScriptedSkill]:
    """Create a :class:`ScriptedSkill` and register it."""

    def _make(name: str, *outputs: Scripted, **kwargs) -> ScriptedSkill:
        skill = ScriptedSkill(name, outputs, **kwargs)
        registry.register(skill)
        return skill

    return _make
