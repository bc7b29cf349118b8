"""Filesystem implementation of the durable store."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, List, Optional

from ..errors import StorageError
from .base import DurableStore, normalize_path

SUFFIX = ".json"


class FileStore(DurableStore):
    """Persist each key as a JSON file below ``base_path``."""

    def __init__(self, base_path: str | Path) -> None:
        self.base_path = Path(base_path)

    def _file(self, path: str) -> Path:
        return self.base_path / f"{normalize_path(path)}{SUFFIX}"

    # ------------------------------------------------------------------
    # Blocking helpers
    def _read(self, path: str) -> Optional[Any]:
        target = self._file(path)
        if not target.exists():
            return None
        try:
            with open(target, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to load {path}: {e}") from e

    def _write(self, path: str, value: Any) -> None:
        target = self._file(path)
        tmp = target.with_suffix(f"{SUFFIX}.tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, default=str)
            os.replace(tmp, target)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to save {path}: {e}") from e

    def _remove(self, path: str) -> bool:
        target = self._file(path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}") from e
        return True

    def _children(self, prefix: str) -> List[str]:
        directory = self.base_path / normalize_path(prefix)
        if not directory.is_dir():
            return []
        names: List[str] = []
        for entry in directory.iterdir():
            if entry.is_dir():
                names.append(f"{entry.name}/")
            elif entry.name.endswith(SUFFIX):
                names.append(entry.name[: -len(SUFFIX)])
        return sorted(names)

    # ------------------------------------------------------------------
    # Store API
    async def load(self, path: str) -> Optional[Any]:
        return await asyncio.to_thread(self._read, path)

    async def save(self, path: str, value: Any) -> None:
        await asyncio.to_thread(self._write, path, value)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._file(path).exists)

    async def delete(self, path: str) -> bool:
        return await asyncio.to_thread(self._remove, path)

    async def list(self, prefix: str) -> List[str]:
        return await asyncio.to_thread(self._children, prefix)
