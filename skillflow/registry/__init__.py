"""Skill registry and its data models."""

from __future__ import annotations

from .models import RegistryStats, SemanticVersion, SkillCategory, SkillMeta
from .skill_registry import SkillRegistry

__all__ = [
    "SemanticVersion",
    "SkillCategory",
    "SkillMeta",
    "RegistryStats",
    "SkillRegistry",
]
