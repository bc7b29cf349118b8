"""Durable key-value store interface."""

from __future__ import annotations

import abc
from typing import Any, Iterable, List, Optional


def normalize_path(path: str) -> str:
    return path.strip("/")


def child_names(paths: Iterable[str], prefix: str) -> List[str]:
    """Return the immediate children of ``prefix`` among ``paths``.

    Nested children are reported once with a trailing ``/``.
    """
    base = normalize_path(prefix)
    base = f"{base}/" if base else ""
    names: List[str] = []
    seen = set()
    for path in paths:
        if not path.startswith(base):
            continue
        rest = path[len(base):]
        if not rest:
            continue
        head, sep, _ = rest.partition("/")
        name = f"{head}/" if sep else head
        if name not in seen:
            seen.add(name)
            names.append(name)
    return sorted(names)


class DurableStore(metaclass=abc.ABCMeta):
    """Abstract store keyed by hierarchical string paths.

    Values are JSON-compatible. A ``save`` followed by a ``load`` of the same
    path must observe the saved value.
    """

    async def connect(self) -> None:
        """Open backend resources (no-op by default)."""
        pass

    async def close(self) -> None:
        """Release backend resources (no-op by default)."""
        pass

    @abc.abstractmethod
    async def load(self, path: str) -> Optional[Any]:
        """Return the value stored at ``path`` or ``None``."""
        raise NotImplementedError

    @abc.abstractmethod
    async def save(self, path: str, value: Any) -> None:
        """Store ``value`` at ``path``, replacing any previous value."""
        raise NotImplementedError

    @abc.abstractmethod
    async def exists(self, path: str) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(self, path: str) -> bool:
        """Remove ``path``; return ``True`` when something was deleted."""
        raise NotImplementedError

    @abc.abstractmethod
    async def list(self, prefix: str) -> List[str]:
        """Return the immediate child names stored under ``prefix``."""
        raise NotImplementedError

    async def append(self, path: str, value: Any) -> None:
        """Append ``value`` (or each item of a list value) to the list at ``path``."""
        existing = await self.load(path)
        items = list(existing) if isinstance(existing, list) else []
        if isinstance(value, list):
            items.extend(value)
        else:
            items.append(value)
        await self.save(path, items)
