"""Export format and state backends for persisting memory across restarts."""

import asyncio
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from ..config.memory_config import MemoryConfig
from ..exceptions import PersistenceError
from ..models.memory_models import (
    ContextSnapshot,
    LearningPattern,
    MemoryItem,
    MemoryStateExport,
)
from .base import BaseStateStore

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


def build_export(
    memories: Iterable[MemoryItem],
    context_history: Iterable[ContextSnapshot],
    learning_patterns: Iterable[LearningPattern],
    history_limit: int = 50,
) -> MemoryStateExport:
    """
    Assemble an export bundle.

    Only the most recent `history_limit` context snapshots are kept.
    """
    history = list(context_history)
    history = history[-history_limit:] if history_limit > 0 else []
    return MemoryStateExport(
        version=EXPORT_VERSION,
        exported_at=datetime.now(),
        memories=list(memories),
        context_history=history,
        learning_patterns=list(learning_patterns),
    )


def _memory_entries(raw: Any) -> List[Any]:
    """Accept memories as item objects or as [id, item] pairs."""
    if isinstance(raw, dict):
        return list(raw.values())

    entries = []
    for entry in raw or []:
        if isinstance(entry, (list, tuple)) and len(entry) == 2:
            memory_id, item = entry
            if isinstance(item, dict):
                item = {"id": memory_id, **item}
            entries.append(item)
        else:
            entries.append(entry)
    return entries


def parse_export(data: Union[str, bytes, Dict[str, Any]]) -> MemoryStateExport:
    """
    Parse an export bundle.

    Missing or older versions and absent collections are tolerated.

    Raises:
        PersistenceError: If the data is not a valid export
    """
    try:
        if isinstance(data, (str, bytes)):
            data = json.loads(data)
        if not isinstance(data, dict):
            raise PersistenceError("Memory export must be a JSON object")

        version = data.get("version") or EXPORT_VERSION
        if version != EXPORT_VERSION:
            logger.warning(f"Importing memory export version {version}")

        return MemoryStateExport(
            version=EXPORT_VERSION,
            exported_at=data.get("exported_at") or datetime.now(),
            memories=_memory_entries(data.get("memories")),
            context_history=data.get("context_history") or [],
            learning_patterns=data.get("learning_patterns") or [],
        )
    except (ValueError, ValidationError) as e:
        raise PersistenceError(f"Invalid memory export: {e}") from e


class JsonFileStateStore(BaseStateStore):
    """Pretty-printed JSON file backend."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _write(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, self.path)

    async def save(self, state: MemoryStateExport) -> None:
        payload = json.dumps(state.model_dump(mode="json"), indent=2)
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as e:
            logger.error(f"Failed to write memory state to {self.path}: {e}")
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e
        logger.info(f"Saved {len(state.memories)} memories to {self.path}")

    async def load(self) -> Optional[MemoryStateExport]:
        if not self.path.exists():
            logger.debug(f"No memory state file at {self.path}")
            return None
        try:
            payload = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}") from e
        return parse_export(payload)

    async def delete(self) -> bool:
        try:
            self.path.unlink()
            return True
        except FileNotFoundError:
            return False


class RedisStateStore(BaseStateStore):
    """Redis backend storing the export under one key with a TTL."""

    def __init__(self, config: MemoryConfig, namespace: str = "default"):
        """
        Initialize Redis state store.

        Args:
            config: Memory configuration (URL, pool size, key prefix, TTL)
            namespace: Suffix distinguishing independent memory states
        """
        self.config = config
        self.key = f"{config.state_key_prefix}:{namespace}"
        self.ttl = config.state_ttl_seconds
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = None

    async def _get_redis(self) -> Redis:
        """
        Get Redis client with connection pooling and retry logic.

        Raises:
            PersistenceError: If Redis cannot be reached
        """
        if self._redis is None:
            self._pool = ConnectionPool.from_url(
                self.config.redis_url,
                max_connections=self.config.connection_pool_size,
                decode_responses=True,
            )
            self._redis = Redis(connection_pool=self._pool)

            max_retries = 3
            for attempt in range(max_retries):
                try:
                    await self._redis.ping()
                    logger.info("Redis connection established successfully")
                    break
                except (RedisConnectionError, RedisError) as e:
                    if attempt == max_retries - 1:
                        logger.error(
                            f"Failed to connect to Redis after {max_retries} attempts: {e}"
                        )
                        self._redis = None
                        raise PersistenceError(f"Redis unavailable: {e}") from e
                    logger.warning(
                        f"Redis connection attempt {attempt + 1} failed, retrying..."
                    )
                    await asyncio.sleep(1)

        return self._redis

    async def save(self, state: MemoryStateExport) -> None:
        redis = await self._get_redis()
        try:
            await redis.setex(
                self.key, self.ttl, json.dumps(state.model_dump(mode="json"))
            )
        except RedisError as e:
            logger.error(f"Failed to save memory state: {e}")
            raise PersistenceError(f"Failed to save memory state: {e}") from e
        logger.info(f"Saved {len(state.memories)} memories to {self.key}")

    async def load(self) -> Optional[MemoryStateExport]:
        redis = await self._get_redis()
        try:
            data = await redis.get(self.key)
        except RedisError as e:
            logger.error(f"Failed to load memory state: {e}")
            raise PersistenceError(f"Failed to load memory state: {e}") from e
        return parse_export(data) if data else None

    async def delete(self) -> bool:
        redis = await self._get_redis()
        try:
            return await redis.delete(self.key) > 0
        except RedisError as e:
            raise PersistenceError(f"Failed to delete memory state: {e}") from e

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        if self._pool:
            await self._pool.aclose()
            self._pool = None
        logger.info("Redis connection closed")
