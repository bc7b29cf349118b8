"""Durable store backends for skillflow checkpoints."""

from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlparse

from ..config import SkillflowConfig, load_config
from .base import DurableStore
from .file import FileStore
from .inmemory import InMemoryStore
from .sqlite import SQLiteStore


def get_store(
    url: Optional[str] = None, config: Optional[SkillflowConfig] = None
) -> DurableStore:
    """Factory function to obtain a durable store.

    The backend is selected from ``url`` which can be provided explicitly, via
    the ``SKILLFLOW_STORE_URL`` environment variable, or from loaded
    configuration. When no store is configured, an in-memory store is
    returned.
    """

    config = config or load_config()
    url = url or os.getenv("SKILLFLOW_STORE_URL") or config.store.url

    if not url or url.startswith("memory://"):
        return InMemoryStore()

    if url.startswith("file://"):
        return FileStore(url.replace("file://", "", 1))
    if url.startswith("sqlite://"):
        return SQLiteStore(url.replace("sqlite://", "", 1))
    if url.startswith("redis://"):
        from .redis import RedisStore

        parsed = urlparse(url)
        redis_conf = config.store.redis
        db_part = parsed.path.lstrip("/")
        return RedisStore(
            host=parsed.hostname or redis_conf.host,
            port=parsed.port or redis_conf.port,
            db=int(db_part) if db_part else redis_conf.db,
            password=parsed.password or redis_conf.password,
        )
    raise ValueError(f"Unsupported store backend: {url}")


__all__ = [
    "DurableStore",
    "FileStore",
    "InMemoryStore",
    "SQLiteStore",
    "get_store",
]
