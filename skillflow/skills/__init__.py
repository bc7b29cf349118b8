"""Skill interface and built-in skills."""

from .base import FunctionSkill, Skill
from .builtin import (
    AskConfirmSkill,
    RecordSkill,
    SaveContextSkill,
    WaitSkill,
    register_builtin_skills,
)
from .composite import CompositeSkill, SkillComposer, run_parallel, run_sequence

__all__ = [
    "Skill",
    "FunctionSkill",
    "WaitSkill",
    "AskConfirmSkill",
    "SaveContextSkill",
    "RecordSkill",
    "register_builtin_skills",
    "CompositeSkill",
    "SkillComposer",
    "run_sequence",
    "run_parallel",
]
