"""Pydantic models describing registry entities."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Set

from pydantic import BaseModel, Field, field_validator


class SemanticVersion(BaseModel):
    """Semantic version with ``major.minor.patch`` components."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, value: str) -> "SemanticVersion":
        """Parse a dotted semantic version string."""
        parts = value.split(".")
        if len(parts) != 3:
            raise ValueError("Semantic version must have three components")
        major, minor, patch = (int(p) for p in parts)
        return cls(major=major, minor=minor, patch=patch)

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return f"{self.major}.{self.minor}.{self.patch}"


class SkillCategory(str, Enum):
    ASK = "ask"
    SEARCH = "search"
    ANALYZE = "analyze"
    GENERATE = "generate"
    FORMAT = "format"
    IO = "io"
    OBSERVE = "observe"
    UTILITY = "utility"
    WORKFLOW = "workflow"
    PLAN = "plan"


class SkillMeta(BaseModel):
    """Metadata describing a registered skill."""

    name: str
    description: str = ""
    category: SkillCategory
    version: str = "1.0.0"
    tags: Set[str] = Field(default_factory=set)
    timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator("name")
    @classmethod
    def _ensure_name(cls, v: str) -> str:
        if not v:
            raise ValueError("name must be a non-empty string")
        return v

    @field_validator("version")
    @classmethod
    def _ensure_version(cls, v: str) -> str:
        SemanticVersion.parse(v)
        return v

    @property
    def semantic_version(self) -> SemanticVersion:
        return SemanticVersion.parse(self.version)


class RegistryStats(BaseModel):
    """Counts of registered skills."""

    total: int = 0
    by_category: Dict[SkillCategory, int] = Field(
        default_factory=lambda: {category: 0 for category in SkillCategory}
    )
