"""
Blob key-value backends for booking persistence.

A backend stores one opaque string per key. BookingStore keeps the whole
collection under a single key, so only get/set are needed.

Key format (redis/file): {key}, e.g. "clinic_bookings".
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import redis.asyncio as aioredis

from clinic_booking.config import AppConfig, StorageConfig, settings

logger = logging.getLogger(__name__)


class BlobBackend(Protocol):
    """Durable get/set blob store. Errors propagate as exceptions."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...


class MemoryBackend:
    """Dict-backed backend for tests and the console demo."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileBackend:
    """One file per key under a directory.

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so readers see either the old or the new blob.
    """

    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)


class RedisBackend:
    """Plain GET/SET on a Redis string key."""

    def __init__(self, url: str, client: Optional[aioredis.Redis] = None) -> None:
        self.url = url
        self.redis = client or aioredis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> Optional[str]:
        value = await self.redis.get(key)
        if isinstance(value, bytes):
            return value.decode()
        return value

    async def set(self, key: str, value: str) -> None:
        await self.redis.set(key, value)

    async def close(self) -> None:
        await self.redis.aclose()


def create_backend(config: AppConfig = settings) -> BlobBackend:
    """Build the backend named by STORAGE_BACKEND."""
    storage: StorageConfig = config.storage
    if storage.backend == "file":
        logger.info("Using file storage in %s", storage.storage_dir)
        return JsonFileBackend(storage.storage_dir)
    if storage.backend == "redis":
        logger.info("Using redis storage at %s", storage.redis_url)
        return RedisBackend(storage.redis_url)
    logger.info("Using in-memory storage; bookings are lost on exit")
    return MemoryBackend()
