"""Built-in skills shipped with skillflow."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from ..constants import MAX_WAIT_SECONDS
from ..contracts import SkillInput, SkillOutput, utcnow
from ..errors import FatalSkillError, RetryableSkillError, StorageError
from ..registry import SkillCategory, SkillMeta, SkillRegistry
from ..storage import DurableStore
from .base import Skill

logger = logging.getLogger(__name__)


class WaitSkill(Skill):
    """Sleep for ``duration`` seconds, capped at five minutes."""

    meta = SkillMeta(
        name="wait",
        description="Wait for a fixed duration before continuing",
        category=SkillCategory.UTILITY,
        tags={"wait", "delay", "sleep", "utility"},
    )

    async def execute(self, skill_input: SkillInput) -> SkillOutput:
        duration = skill_input.params.get("duration")
        reason = skill_input.params.get("reason")
        if not isinstance(duration, (int, float)) or duration <= 0:
            raise FatalSkillError("duration must be a positive number of seconds")

        waited = min(float(duration), MAX_WAIT_SECONDS)
        await asyncio.sleep(waited)
        return SkillOutput.ok(
            {"waited": waited, "reason": reason}, f"Waited {waited:g}s"
        )


class AskConfirmSkill(Skill):
    """Ask the caller to confirm something.

    Pauses the workflow until the answer is present in the writable context
    under ``key`` (default ``confirmed``), which the caller supplies as the
    resume response.

    The answer stays in the context for the rest of the execution, so a later
    visit to an ask-confirm step with the same ``key`` completes without
    pausing. Give each question its own ``key`` to ask it again.
    """

    meta = SkillMeta(
        name="ask-confirm",
        description="Ask the user to confirm an operation or result",
        category=SkillCategory.ASK,
        tags={"ask", "confirm", "yes-no", "user-input"},
    )

    async def execute(self, skill_input: SkillInput) -> SkillOutput:
        params = skill_input.params
        prompt = params.get("prompt")
        if not prompt:
            raise FatalSkillError("prompt parameter is required")
        key = params.get("key", "confirmed")
        options: List[str] = params.get("options") or ["confirm", "cancel"]

        if key in skill_input.context.writable:
            answer = skill_input.context.writable[key]
            return SkillOutput.ok({key: answer}, f"Received answer: {answer}")

        return SkillOutput.needs_input(
            {
                "prompt": prompt,
                "options": options,
                "default": params.get("default") or options[0],
                "key": key,
            },
            prompt,
        )


class SaveContextSkill(Skill):
    """Write the writable context (or selected keys of it) to the store."""

    meta = SkillMeta(
        name="save-context",
        description="Persist the shared workflow context to durable storage",
        category=SkillCategory.IO,
        tags={"io", "save", "context", "persist"},
    )

    def __init__(self, store: DurableStore) -> None:
        self._store = store

    async def execute(self, skill_input: SkillInput) -> SkillOutput:
        path = skill_input.params.get("path") or f"context/{skill_input.trace_id}"
        keys = skill_input.params.get("keys")
        writable = skill_input.context.writable
        payload = {k: writable[k] for k in keys if k in writable} if keys else dict(writable)
        try:
            await self._store.save(path, payload)
        except StorageError as e:
            raise RetryableSkillError(f"could not save context: {e}") from e
        return SkillOutput.ok({"saved_path": path}, f"Context saved to {path}")


class RecordSkill(Skill):
    """Append a note about the current run to ``records/{trace_id}``."""

    meta = SkillMeta(
        name="record",
        description="Record an observation about the running workflow",
        category=SkillCategory.OBSERVE,
        tags={"observe", "record", "audit"},
    )

    def __init__(self, store: DurableStore) -> None:
        self._store = store

    async def execute(self, skill_input: SkillInput) -> SkillOutput:
        note = skill_input.params.get("note", "")
        entry = {
            "step": skill_input.step,
            "note": note,
            "recorded_at": utcnow().isoformat(),
        }
        try:
            await self._store.append(f"records/{skill_input.trace_id}", entry)
        except StorageError as e:
            raise RetryableSkillError(f"could not record note: {e}") from e
        return SkillOutput.ok({"recorded": True}, "Observation recorded")


def register_builtin_skills(registry: SkillRegistry, store: DurableStore) -> None:
    """Register every built-in skill on ``registry``."""
    registry.register_many(
        [WaitSkill(), AskConfirmSkill(), SaveContextSkill(store), RecordSkill(store)]
    )
    logger.debug("Registered built-in skills")
