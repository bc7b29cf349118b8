"""In-memory skill registry with a category index."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Set

from .models import RegistryStats, SkillCategory, SkillMeta

if TYPE_CHECKING:
    from ..skills.base import Skill

logger = logging.getLogger(__name__)


class SkillRegistry:
    """Maps skill names to skill capabilities and their metadata.

    The registry is read-mostly: mutate it while wiring the application and
    share it read-only between executions afterwards.
    """

    def __init__(self, skills: Optional[Iterable["Skill"]] = None) -> None:
        self._skills: Dict[str, "Skill"] = {}
        self._categories: Dict[SkillCategory, Set[str]] = {}
        if skills:
            self.register_many(skills)

    def register(self, skill: "Skill") -> None:
        """Add ``skill``, replacing any existing entry with the same name."""
        meta = skill.meta
        previous = self._skills.get(meta.name)
        if previous is not None:
            logger.warning(f"Skill {meta.name} already registered, overwriting")
            if previous.meta.category != meta.category:
                self._categories.get(previous.meta.category, set()).discard(meta.name)

        self._skills[meta.name] = skill
        self._categories.setdefault(meta.category, set()).add(meta.name)
        logger.debug(f"Registered skill {meta.name} in category {meta.category.value}")

    def register_many(self, skills: Iterable["Skill"]) -> None:
        for skill in skills:
            self.register(skill)

    def get(self, name: str) -> Optional["Skill"]:
        return self._skills.get(name)

    def get_meta(self, name: str) -> Optional[SkillMeta]:
        skill = self._skills.get(name)
        return skill.meta if skill else None

    def has(self, name: str) -> bool:
        return name in self._skills

    def __contains__(self, name: object) -> bool:
        return name in self._skills

    def __len__(self) -> int:
        return len(self._skills)

    def names(self) -> List[str]:
        return list(self._skills)

    def all(self) -> List[SkillMeta]:
        return [skill.meta for skill in self._skills.values()]

    def get_by_category(self, category: SkillCategory | str) -> List[SkillMeta]:
        """Return metadata of every skill in ``category``."""
        names = self._categories.get(SkillCategory(category), set())
        return [self._skills[name].meta for name in sorted(names) if name in self._skills]

    def search(self, query: str) -> List[SkillMeta]:
        """Case-insensitive substring match on name, description and tags."""
        needle = query.lower()
        return [
            meta
            for meta in self.all()
            if needle in meta.name.lower()
            or needle in meta.description.lower()
            or any(needle in tag.lower() for tag in meta.tags)
        ]

    def unregister(self, name: str) -> bool:
        """Remove ``name``; return ``True`` when an entry existed."""
        skill = self._skills.pop(name, None)
        if skill is None:
            return False
        self._categories.get(skill.meta.category, set()).discard(name)
        logger.info(f"Skill {name} unregistered")
        return True

    def clear(self) -> None:
        self._skills.clear()
        self._categories.clear()

    def get_stats(self) -> RegistryStats:
        stats = RegistryStats(total=len(self._skills))
        for skill in self._skills.values():
            stats.by_category[skill.meta.category] += 1
        return stats
