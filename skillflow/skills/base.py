"""Skill capability interface."""

from __future__ import annotations

import abc
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..contracts import SkillInput, SkillOutput
from ..errors import SkillError
from ..registry.models import SkillMeta

logger = logging.getLogger(__name__)


class Skill(metaclass=abc.ABCMeta):
    """Abstract base for skills invoked by the workflow engine.

    Subclasses provide ``meta`` and implement :meth:`execute`. Callers use
    :meth:`invoke`, which turns exceptions raised by ``execute`` into a
    classified :class:`SkillOutput` so the engine only ever sees a status.
    """

    meta: SkillMeta

    @abc.abstractmethod
    async def execute(self, skill_input: SkillInput) -> SkillOutput:
        """Run the skill."""
        raise NotImplementedError

    async def invoke(
        self, skill_input: SkillInput, timeout: Optional[float] = None
    ) -> SkillOutput:
        """Run the skill and classify failures.

        ``timeout`` (seconds) defaults to ``meta.timeout``. A skill that runs
        past it is cancelled and reported as retryable.
        """
        limit = timeout if timeout is not None else self.meta.timeout
        try:
            if limit is None:
                output = await self.execute(skill_input)
            else:
                output = await asyncio.wait_for(self.execute(skill_input), timeout=limit)
        except asyncio.TimeoutError:
            logger.warning(
                f"Skill {self.meta.name} timed out after {limit}s for trace_id={skill_input.trace_id}"
            )
            return SkillOutput.retryable(f"[{self.meta.name}] timed out after {limit:g}s")
        except SkillError as e:
            if e.retryable:
                logger.warning(
                    f"Skill {self.meta.name} raised retryable error for trace_id={skill_input.trace_id}: {e}"
                )
                return SkillOutput.retryable(f"[{self.meta.name}] {e}")
            logger.error(
                f"Skill {self.meta.name} failed for trace_id={skill_input.trace_id}: {e}"
            )
            return SkillOutput.fatal(f"[{self.meta.name}] {e}")
        except Exception as e:
            logger.error(
                f"Skill {self.meta.name} raised {type(e).__name__} for trace_id={skill_input.trace_id}: {e}"
            )
            return SkillOutput.fatal(f"[{self.meta.name}] {e}")

        if not isinstance(output, SkillOutput):
            return SkillOutput.fatal(
                f"[{self.meta.name}] returned {type(output).__name__}, expected SkillOutput"
            )
        return output


SkillFunc = Callable[[SkillInput], Awaitable[SkillOutput]]


class FunctionSkill(Skill):
    """Adapt an async callable to the :class:`Skill` interface."""

    def __init__(self, meta: SkillMeta, func: SkillFunc) -> None:
        self.meta = meta
        self._func = func

    async def execute(self, skill_input: SkillInput) -> SkillOutput:
        return await self._func(skill_input)
