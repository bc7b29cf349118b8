"""Exception hierarchy for skillflow."""

from __future__ import annotations


class SkillflowError(Exception):
    """Base class for all skillflow errors."""


class DefinitionError(SkillflowError):
    """Raised when a workflow definition is malformed."""


class UnknownSkillError(SkillflowError):
    """Raised when a step references a skill that is not registered."""

    def __init__(self, skill_name: str) -> None:
        super().__init__(f'Skill "{skill_name}" is not registered')
        self.skill_name = skill_name


class SkillError(SkillflowError):
    """Failure raised from inside a skill."""

    retryable = False


class RetryableSkillError(SkillError):
    """Skill failure that may succeed when the step is invoked again."""

    retryable = True


class FatalSkillError(SkillError):
    """Skill failure that terminates the execution."""


class StorageError(SkillflowError):
    """Raised when the durable store cannot complete an operation."""


class ExecutionNotFoundError(SkillflowError):
    """Raised when no checkpoint exists for a trace id."""

    def __init__(self, trace_id: str) -> None:
        super().__init__(f"No saved execution found for trace_id={trace_id}")
        self.trace_id = trace_id


class InvalidTraceIdError(SkillflowError):
    """Raised when a trace id cannot be used as a store key."""

    def __init__(self, trace_id: str) -> None:
        super().__init__(
            f"Invalid trace_id={trace_id!r}: use letters, digits, '.', '_', ':' or '-'"
        )
        self.trace_id = trace_id


class InvalidStateError(SkillflowError):
    """Raised when an execution cannot be resumed from its current status."""


__all__ = [
    "SkillflowError",
    "DefinitionError",
    "UnknownSkillError",
    "SkillError",
    "RetryableSkillError",
    "FatalSkillError",
    "StorageError",
    "ExecutionNotFoundError",
    "InvalidTraceIdError",
    "InvalidStateError",
]
