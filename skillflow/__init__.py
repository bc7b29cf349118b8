"""skillflow: checkpointed workflow execution over named skills."""

from .catalog import WorkflowCatalog
from .contracts import (
    Execution,
    ExecutionStatus,
    SkillInput,
    SkillOutput,
    SkillStatus,
    Step,
    Workflow,
)
from .engine import WorkflowEngine
from .errors import (
    DefinitionError,
    ExecutionNotFoundError,
    FatalSkillError,
    InvalidStateError,
    InvalidTraceIdError,
    RetryableSkillError,
    StorageError,
    UnknownSkillError,
)
from .parser import parse, parse_file, serialize, validate
from .registry import SkillCategory, SkillMeta, SkillRegistry
from .skills import CompositeSkill, FunctionSkill, Skill, SkillComposer
from .state import StateStore
from .storage import get_store

__version__ = "0.1.0"
__all__ = [
    "Step",
    "Workflow",
    "Execution",
    "ExecutionStatus",
    "SkillInput",
    "SkillOutput",
    "SkillStatus",
    "Skill",
    "FunctionSkill",
    "CompositeSkill",
    "SkillComposer",
    "SkillCategory",
    "SkillMeta",
    "SkillRegistry",
    "StateStore",
    "WorkflowCatalog",
    "WorkflowEngine",
    "get_store",
    "parse",
    "parse_file",
    "serialize",
    "validate",
    "DefinitionError",
    "UnknownSkillError",
    "RetryableSkillError",
    "FatalSkillError",
    "StorageError",
    "ExecutionNotFoundError",
    "InvalidStateError",
    "InvalidTraceIdError",
]
