"""Composite skills built from registered skills."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Sequence, Union

from ..contracts import SkillContext, SkillInput, SkillOutput, SkillStatus
from ..errors import UnknownSkillError
from ..registry import SkillCategory, SkillMeta, SkillRegistry
from .base import Skill

logger = logging.getLogger(__name__)

SkillRef = Union[str, Skill]


def merge_into_input(skill_input: SkillInput, data: Dict[str, Any]) -> SkillInput:
    """Return a copy of ``skill_input`` whose writable context includes ``data``."""
    context = SkillContext(
        read_only=dict(skill_input.context.read_only),
        writable={**skill_input.context.writable, **data},
    )
    return skill_input.model_copy(update={"context": context})


async def run_sequence(
    skills: Sequence[Skill],
    skill_input: SkillInput,
    stop_on_fail: bool = True,
    merge_output: bool = True,
) -> List[SkillOutput]:
    """Invoke ``skills`` one after another.

    With ``merge_output`` each successful output's data is visible to the next
    skill through the writable context. With ``stop_on_fail`` the first
    non-OK output ends the run.
    """
    outputs: List[SkillOutput] = []
    current = skill_input
    for skill in skills:
        logger.debug(
            f"Executing skill {skill.meta.name} in sequence for trace_id={skill_input.trace_id}"
        )
        output = await skill.invoke(current)
        outputs.append(output)
        if output.status != SkillStatus.OK:
            logger.warning(
                f"Skill {skill.meta.name} returned {output.status.name} in sequence: {output.message}"
            )
            if stop_on_fail:
                break
            continue
        if merge_output and output.data:
            current = merge_into_input(current, output.data)
    return outputs


async def run_parallel(skills: Sequence[Skill], skill_input: SkillInput) -> List[SkillOutput]:
    """Invoke ``skills`` concurrently against the same input."""
    return list(await asyncio.gather(*(skill.invoke(skill_input) for skill in skills)))


class CompositeSkill(Skill):
    """Run a fixed sequence of skills as a single step.

    The first non-OK output ends the sequence and its status becomes the
    composite's status, so a pause or a retry re-runs the whole sequence.
    On success, the merged data of every part is returned together with the
    per-part ``results``.
    """

    def __init__(self, meta: SkillMeta, skills: Sequence[Skill]) -> None:
        if not skills:
            raise ValueError(f"Composite skill {meta.name} needs at least one skill")
        self.meta = meta
        self.skills = list(skills)

    async def execute(self, skill_input: SkillInput) -> SkillOutput:
        outputs = await run_sequence(self.skills, skill_input)
        results = [
            {"skill": skill.meta.name, **output.model_dump(mode="json")}
            for skill, output in zip(self.skills, outputs)
        ]
        last = outputs[-1]
        if last.status != SkillStatus.OK:
            failed = self.skills[len(outputs) - 1].meta.name
            return SkillOutput(
                status=last.status,
                data={**last.data, "results": results},
                message=f'Composite skill failed at "{failed}": {last.message}',
            )

        merged: Dict[str, Any] = {}
        for output in outputs:
            merged.update(output.data)
        merged["results"] = results
        return SkillOutput.ok(merged, f'Composite skill "{self.meta.name}" completed')


class SkillComposer:
    """Build and run skill combinations from a registry."""

    def __init__(self, registry: SkillRegistry) -> None:
        self._registry = registry

    def resolve(self, skills: Iterable[SkillRef]) -> List[Skill]:
        resolved: List[Skill] = []
        for ref in skills:
            if isinstance(ref, Skill):
                resolved.append(ref)
                continue
            skill = self._registry.get(ref)
            if skill is None:
                raise UnknownSkillError(ref)
            resolved.append(skill)
        return resolved

    def compose(
        self,
        name: str,
        skills: Iterable[SkillRef],
        description: str = "",
        category: SkillCategory = SkillCategory.WORKFLOW,
        register: bool = True,
    ) -> CompositeSkill:
        """Create a :class:`CompositeSkill`, registering it unless told not to."""
        parts = self.resolve(skills)
        meta = SkillMeta(
            name=name,
            description=description or f"Runs {', '.join(s.meta.name for s in parts)}",
            category=category,
            tags={"composite"},
        )
        composite = CompositeSkill(meta, parts)
        if register:
            self._registry.register(composite)
        return composite

    async def sequence(
        self,
        skills: Iterable[SkillRef],
        skill_input: SkillInput,
        stop_on_fail: bool = True,
        merge_output: bool = True,
    ) -> List[SkillOutput]:
        return await run_sequence(
            self.resolve(skills), skill_input, stop_on_fail=stop_on_fail, merge_output=merge_output
        )

    async def parallel(
        self, skills: Iterable[SkillRef], skill_input: SkillInput
    ) -> List[SkillOutput]:
        return await run_parallel(self.resolve(skills), skill_input)
