"""State storage layer.

Bot state is persisted through a key/value `Storage` abstraction with
optimistic concurrency: items may carry an eTag, and a write whose eTag no
longer matches the stored one is rejected. An in-memory store serves
development and tests; Redis backs production deployments.
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any

from redis import asyncio as aioredis

from palaver.infrastructure.metrics import record_storage_operation
from palaver.models.config import Settings, get_settings

from . import serialization

logger = logging.getLogger(__name__)


class StoreItemConflictError(Exception):
    """Raised when a write carries an eTag that no longer matches storage."""

    def __init__(self, key: str, expected: str | None, actual: str | None):
        self.key = key
        self.expected = expected
        self.actual = actual
        self.status_code = 412
        self.retryable = True
        super().__init__(
            f"Etag conflict on '{key}': original '{actual}' != current '{expected}'"
        )


class StoreItem:
    """Base for objects that take part in eTag concurrency checks."""

    def __init__(self, e_tag: str | None = "*", **kwargs: Any):
        self.e_tag = e_tag
        for key, value in kwargs.items():
            setattr(self, key, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({vars(self)!r})"


def _has_etag(item: Any) -> bool:
    if isinstance(item, dict):
        return "eTag" in item
    return hasattr(item, "e_tag")


def _get_etag(item: Any) -> str | None:
    if isinstance(item, dict):
        return item.get("eTag")
    return getattr(item, "e_tag", None)


def _set_etag(item: Any, e_tag: str) -> None:
    if isinstance(item, dict):
        item["eTag"] = e_tag
    else:
        item.e_tag = e_tag


def _check_etag(key: str, old_value: Any, new_value: Any) -> None:
    if not _has_etag(new_value) or old_value is None:
        return
    new_etag = _get_etag(new_value)
    old_etag = _get_etag(old_value)
    if new_etag is None or new_etag == "*" or old_etag is None:
        return
    if new_etag != old_etag:
        raise StoreItemConflictError(key, new_etag, old_etag)


class Storage(ABC):
    """Abstract base class for state storage implementations."""

    @abstractmethod
    async def read(self, keys: list[str]) -> dict[str, Any]:
        """Read items from storage.

        Args:
            keys: Keys of the items to read

        Returns:
            Mapping of found keys to their items; missing keys are omitted
        """
        pass

    @abstractmethod
    async def write(self, changes: dict[str, Any]) -> None:
        """Write items to storage.

        Args:
            changes: Mapping of keys to the items to store

        Raises:
            StoreItemConflictError: If an item's eTag does not match storage
        """
        pass

    @abstractmethod
    async def delete(self, keys: list[str]) -> None:
        """Delete items from storage.

        Args:
            keys: Keys of the items to delete
        """
        pass


class MemoryStorage(Storage):
    """In-memory storage for development and testing.

    Items are deep-copied on the way in and out. Not suitable for
    multi-process deployments.
    """

    def __init__(self, dictionary: dict[str, Any] | None = None) -> None:
        self.memory: dict[str, Any] = dictionary if dictionary is not None else {}
        self._e_tag = 1

    async def read(self, keys: list[str]) -> dict[str, Any]:
        if keys is None:
            raise TypeError("MemoryStorage.read(): keys are required")
        record_storage_operation("memory", "read", len(keys))
        return {
            key: copy.deepcopy(self.memory[key])
            for key in keys
            if self.memory.get(key) is not None
        }

    async def write(self, changes: dict[str, Any]) -> None:
        if changes is None:
            raise TypeError("MemoryStorage.write(): changes are required")
        record_storage_operation("memory", "write", len(changes))
        for key, new_value in changes.items():
            _check_etag(key, self.memory.get(key), new_value)
            stored = copy.deepcopy(new_value)
            if _has_etag(stored):
                _set_etag(stored, str(self._e_tag))
                self._e_tag += 1
            self.memory[key] = stored

    async def delete(self, keys: list[str]) -> None:
        if keys is None:
            raise TypeError("MemoryStorage.delete(): keys are required")
        record_storage_operation("memory", "delete", len(keys))
        for key in keys:
            self.memory.pop(key, None)


class RedisStorage(Storage):
    """Redis-backed storage for production use.

    Values are encoded with the typed JSON codec so models and dataclasses
    come back as their concrete classes. The eTag check reads the current
    value before writing; it is not transactional across processes.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        prefix: str = "palaver:state:",
        ttl: int | None = None,
    ) -> None:
        """Initialize Redis storage.

        Args:
            redis_url: Redis connection URL
            prefix: Key prefix for namespacing state
            ttl: Optional expiry in seconds applied on every write
        """
        self.redis_url = redis_url
        self.prefix = prefix
        self.ttl = ttl
        self._client: aioredis.Redis | None = None

    async def _get_client(self) -> aioredis.Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._client = await aioredis.from_url(
                self.redis_url, encoding="utf-8", decode_responses=True
            )
        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def read(self, keys: list[str]) -> dict[str, Any]:
        if keys is None:
            raise TypeError("RedisStorage.read(): keys are required")
        if not keys:
            return {}
        client = await self._get_client()
        raw_values = await client.mget([self._make_key(key) for key in keys])
        record_storage_operation("redis", "read", len(keys))
        return {
            key: serialization.loads(raw)
            for key, raw in zip(keys, raw_values, strict=True)
            if raw is not None
        }

    async def write(self, changes: dict[str, Any]) -> None:
        if changes is None:
            raise TypeError("RedisStorage.write(): changes are required")
        if not changes:
            return
        client = await self._get_client()
        for key, new_value in changes.items():
            full_key = self._make_key(key)
            if _has_etag(new_value):
                current = await client.get(full_key)
                if current is not None:
                    _check_etag(key, serialization.loads(current), new_value)
                new_value = copy.deepcopy(new_value)
                _set_etag(new_value, uuid.uuid4().hex)
            await client.set(full_key, serialization.dumps(new_value), ex=self.ttl)
        record_storage_operation("redis", "write", len(changes))

    async def delete(self, keys: list[str]) -> None:
        if keys is None:
            raise TypeError("RedisStorage.delete(): keys are required")
        if not keys:
            return
        client = await self._get_client()
        await client.delete(*[self._make_key(key) for key in keys])
        record_storage_operation("redis", "delete", len(keys))

    async def ping(self) -> bool:
        client = await self._get_client()
        return bool(await client.ping())

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def get_storage(settings: Settings | None = None) -> Storage:
    """Factory creating the configured storage backend.

    Settings:
        PALAVER_STORAGE: 'memory' or 'redis', default: 'memory'
        PALAVER_REDIS_URL: Redis URL, default: 'redis://localhost:6379'
        PALAVER_STORAGE_PREFIX: Key prefix, default: 'palaver:state:'
        PALAVER_STATE_TTL: Optional expiry in seconds

    Returns:
        Configured storage instance
    """
    settings = settings or get_settings()
    backend = settings.storage.lower()

    if backend == "redis":
        logger.info("Using Redis storage at %s", settings.redis_url)
        return RedisStorage(
            redis_url=settings.redis_url,
            prefix=settings.storage_prefix,
            ttl=settings.state_ttl,
        )
    if backend != "memory":
        raise ValueError(f"Unknown storage backend: {settings.storage}")
    return MemoryStorage()
