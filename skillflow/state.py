"""Checkpoint persistence for workflow executions."""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import List, Optional

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from .constants import DEFAULT_CLEANUP_MAX_AGE_DAYS, DEFAULT_HISTORY_DIR, DEFAULT_STATE_DIR
from .contracts import Execution, ExecutionStatus, ExecutionSummary, StepRecord, utcnow
from .errors import InvalidTraceIdError, StorageError
from .storage import DurableStore

logger = logging.getLogger(__name__)

TRACE_ID_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9._:-]*")


def check_trace_id(trace_id: str) -> str:
    """Return ``trace_id`` if it is safe to use as a single path segment."""
    if (
        not isinstance(trace_id, str)
        or not TRACE_ID_PATTERN.fullmatch(trace_id)
        or ".." in trace_id
    ):
        raise InvalidTraceIdError(trace_id)
    return trace_id


class StateStore:
    """Store execution checkpoints under ``{state_dir}/{trace_id}``.

    Every save overwrites the previous checkpoint wholesale. Per-invocation
    step records are appended separately under ``{history_dir}/{trace_id}``.
    """

    def __init__(
        self,
        store: DurableStore,
        state_dir: str = DEFAULT_STATE_DIR,
        history_dir: str = DEFAULT_HISTORY_DIR,
    ) -> None:
        self._store = store
        self.state_dir = state_dir.strip("/")
        self.history_dir = history_dir.strip("/")

    @property
    def store(self) -> DurableStore:
        return self._store

    def _path(self, trace_id: str) -> str:
        return f"{self.state_dir}/{check_trace_id(trace_id)}"

    def _history_path(self, trace_id: str) -> str:
        return f"{self.history_dir}/{check_trace_id(trace_id)}"

    async def save(self, execution: Execution) -> None:
        path = self._path(execution.trace_id)
        try:
            data = execution.model_dump(mode="json")
        except PydanticSerializationError as e:
            raise StorageError(
                f"Checkpoint for trace_id={execution.trace_id} is not serializable: {e}"
            ) from e
        await self._store.save(path, data)
        logger.debug(
            f"Checkpoint saved for trace_id={execution.trace_id} "
            f"step={execution.current_step} status={execution.status.value}"
        )

    async def load(self, trace_id: str) -> Optional[Execution]:
        data = await self._store.load(self._path(trace_id))
        if data is None:
            return None
        try:
            return Execution.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Corrupt checkpoint for trace_id={trace_id}: {e}") from e

    async def exists(self, trace_id: str) -> bool:
        return await self._store.exists(self._path(trace_id))

    async def delete(self, trace_id: str) -> bool:
        deleted = await self._store.delete(self._path(trace_id))
        await self._store.delete(self._history_path(trace_id))
        return deleted

    async def list(self) -> List[ExecutionSummary]:
        """Return summaries of all checkpoints, most recently started first.

        Entries that cannot be read are logged and left out.
        """
        summaries: List[ExecutionSummary] = []
        for name in await self._store.list(self.state_dir):
            if name.endswith("/"):
                continue
            try:
                execution = await self.load(name)
            except (StorageError, InvalidTraceIdError) as e:
                logger.warning(f"Skipping unreadable checkpoint {self.state_dir}/{name}: {e}")
                continue
            if execution is None:
                continue
            summaries.append(
                ExecutionSummary(
                    trace_id=name,
                    workflow_name=execution.workflow_name,
                    status=execution.status,
                    start_time=execution.start_time,
                )
            )
        return sorted(summaries, key=lambda s: s.start_time, reverse=True)

    async def cleanup(
        self, max_age: timedelta = timedelta(days=DEFAULT_CLEANUP_MAX_AGE_DAYS)
    ) -> int:
        """Delete executions started strictly before ``now - max_age``."""
        cutoff = utcnow() - max_age
        removed = 0
        for summary in await self.list():
            if summary.start_time < cutoff:
                await self.delete(summary.trace_id)
                removed += 1
        if removed:
            logger.info(f"Cleaned up {removed} expired workflow states")
        return removed

    async def get_last_resumable(self) -> Optional[Execution]:
        """Return the most recently started paused or running execution."""
        for summary in await self.list():
            if summary.status in (ExecutionStatus.PAUSED, ExecutionStatus.RUNNING):
                return await self.load(summary.trace_id)
        return None

    async def record_step(self, record: StepRecord) -> None:
        await self._store.append(
            self._history_path(record.trace_id), record.model_dump(mode="json")
        )

    async def history(self, trace_id: str) -> List[StepRecord]:
        data = await self._store.load(self._history_path(trace_id))
        if not data:
            return []
        return [StepRecord.model_validate(item) for item in data]
