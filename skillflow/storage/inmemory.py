"""In-memory durable store for testing."""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from .base import DurableStore, child_names, normalize_path


class InMemoryStore(DurableStore):
    """Store values in local memory.

    Useful for tests or when no store is configured. Data is not persisted
    across process restarts.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    async def load(self, path: str) -> Optional[Any]:
        value = self._data.get(normalize_path(path))
        return copy.deepcopy(value)

    async def save(self, path: str, value: Any) -> None:
        self._data[normalize_path(path)] = copy.deepcopy(value)

    async def exists(self, path: str) -> bool:
        return normalize_path(path) in self._data

    async def delete(self, path: str) -> bool:
        key = normalize_path(path)
        if key not in self._data:
            return False
        del self._data[key]
        return True

    async def list(self, prefix: str) -> List[str]:
        return child_names(self._data.keys(), prefix)
