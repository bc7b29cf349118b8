"""Redis implementation of the durable store."""

from __future__ import annotations

import json
from typing import Any, List, Optional

try:
    import redis.asyncio as redis
except ImportError:
    redis = None

from ..errors import StorageError
from .base import DurableStore, child_names, normalize_path

KEY_PREFIX = "skillflow:"


class RedisStore(DurableStore):
    """Redis-backed store sharing checkpoints across processes."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
    ) -> None:
        if redis is None:
            raise ImportError("redis package is required for RedisStore")

        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self._redis: Optional[Any] = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        await self._redis.ping()

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def _client(self) -> Any:
        if not self._redis:
            await self.connect()
        return self._redis

    @staticmethod
    def _key(path: str) -> str:
        return f"{KEY_PREFIX}{normalize_path(path)}"

    async def load(self, path: str) -> Optional[Any]:
        client = await self._client()
        try:
            raw = await client.get(self._key(path))
        except redis.RedisError as e:
            raise StorageError(f"Redis load failed for {path}: {e}") from e
        return json.loads(raw) if raw is not None else None

    async def save(self, path: str, value: Any) -> None:
        client = await self._client()
        try:
            await client.set(self._key(path), json.dumps(value, default=str))
        except redis.RedisError as e:
            raise StorageError(f"Redis save failed for {path}: {e}") from e

    async def exists(self, path: str) -> bool:
        client = await self._client()
        try:
            return bool(await client.exists(self._key(path)))
        except redis.RedisError as e:
            raise StorageError(f"Redis exists failed for {path}: {e}") from e

    async def delete(self, path: str) -> bool:
        client = await self._client()
        try:
            return bool(await client.delete(self._key(path)))
        except redis.RedisError as e:
            raise StorageError(f"Redis delete failed for {path}: {e}") from e

    async def list(self, prefix: str) -> List[str]:
        client = await self._client()
        base = normalize_path(prefix)
        match = f"{KEY_PREFIX}{base}/*" if base else f"{KEY_PREFIX}*"
        paths: List[str] = []
        try:
            async for key in client.scan_iter(match=match):
                paths.append(key[len(KEY_PREFIX):])
        except redis.RedisError as e:
            raise StorageError(f"Redis list failed for {prefix}: {e}") from e
        return child_names(paths, prefix)
