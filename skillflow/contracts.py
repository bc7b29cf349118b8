"""Core data contracts for skillflow workflows."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_RETRY_BUDGET


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Step(BaseModel):
    """One node in a workflow graph."""

    model_config = ConfigDict(frozen=True)

    skill_name: str
    params: Dict[str, Any] = Field(default_factory=dict)
    on_success: Optional[str] = None
    on_fail: Optional[str] = None
    retry_budget: int = Field(default=DEFAULT_RETRY_BUDGET, ge=0)


class Workflow(BaseModel):
    """Immutable workflow graph produced by the parser."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: str = ""
    initial_step: str
    steps: List[Step] = Field(default_factory=list)

    def get_step(self, skill_name: str) -> Optional[Step]:
        """Return the first step bound to ``skill_name``."""
        return next((s for s in self.steps if s.skill_name == skill_name), None)

    def step_names(self) -> List[str]:
        return [s.skill_name for s in self.steps]


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.SUCCESS, ExecutionStatus.FAILED)


class Execution(BaseModel):
    """Mutable run-time record of one workflow run, keyed by ``trace_id``."""

    trace_id: str
    workflow_name: str
    current_step: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    params: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    steps_executed: List[str] = Field(default_factory=list)
    pending_input: Optional[Dict[str, Any]] = None
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    error: Optional[str] = None

    def finish(self, status: ExecutionStatus, error: Optional[str] = None) -> None:
        """Move the execution into a terminal status."""
        self.status = status
        self.end_time = utcnow()
        if error is not None:
            self.error = error


class ExecutionSummary(BaseModel):
    """Listing entry for a checkpointed execution."""

    trace_id: str
    workflow_name: str
    status: ExecutionStatus
    start_time: datetime


class SkillStatus(IntEnum):
    """Result classification returned by a skill."""

    OK = 200
    NEEDS_INPUT = 300
    RETRYABLE = 400
    FATAL = 500


class SkillContext(BaseModel):
    """Shared context handed to a skill."""

    read_only: Dict[str, Any] = Field(default_factory=dict)
    writable: Dict[str, Any] = Field(default_factory=dict)


class SkillInput(BaseModel):
    """Structured input for a single skill invocation."""

    params: Dict[str, Any] = Field(default_factory=dict)
    context: SkillContext = Field(default_factory=SkillContext)
    trace_id: str
    step: str


class SkillOutput(BaseModel):
    """Structured output of a skill invocation."""

    status: SkillStatus
    data: Dict[str, Any] = Field(default_factory=dict)
    message: str = ""

    @classmethod
    def ok(cls, data: Optional[Dict[str, Any]] = None, message: str = "ok") -> "SkillOutput":
        return cls(status=SkillStatus.OK, data=data or {}, message=message)

    @classmethod
    def needs_input(
        cls, data: Optional[Dict[str, Any]] = None, message: str = "input required"
    ) -> "SkillOutput":
        return cls(status=SkillStatus.NEEDS_INPUT, data=data or {}, message=message)

    @classmethod
    def retryable(cls, message: str, data: Optional[Dict[str, Any]] = None) -> "SkillOutput":
        return cls(status=SkillStatus.RETRYABLE, data=data or {}, message=message)

    @classmethod
    def fatal(cls, message: str, data: Optional[Dict[str, Any]] = None) -> "SkillOutput":
        return cls(status=SkillStatus.FATAL, data=data or {}, message=message)


class StepRecord(BaseModel):
    """Audit record of an individual skill invocation."""

    trace_id: str
    step_name: str
    attempt: int = 1
    status: Optional[str] = None
    message: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
