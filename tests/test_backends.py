"""Tests for the blob key-value backends."""

from typing import Optional

import pytest

from clinic_booking.config import AppConfig, StorageConfig
from clinic_booking.storage.backends import (
    JsonFileBackend,
    MemoryBackend,
    RedisBackend,
    create_backend,
)


class FakeRedis:
    """Just enough of redis.asyncio.Redis for GET/SET."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.closed = False

    async def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value.encode()

    async def aclose(self) -> None:
        self.closed = True


class TestMemoryBackend:
    @pytest.mark.asyncio
    async def test_missing_key(self):
        assert await MemoryBackend().get("nope") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self):
        backend = MemoryBackend()
        await backend.set("k", "[]")
        assert await backend.get("k") == "[]"

    @pytest.mark.asyncio
    async def test_initial_data_is_copied(self):
        initial = {"k": "v"}
        backend = MemoryBackend(initial)
        await backend.set("k", "w")
        assert initial == {"k": "v"}


class TestJsonFileBackend:
    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        assert await JsonFileBackend(str(tmp_path)).get("clinic_bookings") is None

    @pytest.mark.asyncio
    async def test_write_creates_directory(self, tmp_path):
        directory = tmp_path / "nested" / "data"
        backend = JsonFileBackend(str(directory))
        await backend.set("clinic_bookings", '[{"id": 1}]')
        assert (directory / "clinic_bookings.json").read_text(encoding="utf-8") == '[{"id": 1}]'

    @pytest.mark.asyncio
    async def test_overwrite_leaves_no_temp_files(self, tmp_path):
        backend = JsonFileBackend(str(tmp_path))
        await backend.set("clinic_bookings", "[]")
        await backend.set("clinic_bookings", "[1]")
        assert await backend.get("clinic_bookings") == "[1]"
        assert [p.name for p in tmp_path.iterdir()] == ["clinic_bookings.json"]

    @pytest.mark.asyncio
    async def test_unicode_round_trip(self, tmp_path):
        backend = JsonFileBackend(str(tmp_path))
        await backend.set("k", '["أحمد"]')
        assert await backend.get("k") == '["أحمد"]'


class TestRedisBackend:
    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self):
        fake = FakeRedis()
        backend = RedisBackend("redis://localhost:6379/0", client=fake)
        await backend.set("clinic_bookings", "[]")
        assert await backend.get("clinic_bookings") == "[]"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        backend = RedisBackend("redis://localhost:6379/0", client=FakeRedis())
        assert await backend.get("clinic_bookings") is None

    @pytest.mark.asyncio
    async def test_close(self):
        fake = FakeRedis()
        await RedisBackend("redis://localhost:6379/0", client=fake).close()
        assert fake.closed


class TestCreateBackend:
    def test_memory(self):
        config = AppConfig(storage=StorageConfig(backend="memory"))
        assert isinstance(create_backend(config), MemoryBackend)

    def test_file(self, tmp_path):
        config = AppConfig(storage=StorageConfig(backend="file", storage_dir=str(tmp_path)))
        backend = create_backend(config)
        assert isinstance(backend, JsonFileBackend)
        assert backend.directory == tmp_path

    def test_redis(self):
        config = AppConfig(storage=StorageConfig(backend="redis", redis_url="redis://cache:6379/1"))
        backend = create_backend(config)
        assert isinstance(backend, RedisBackend)
        assert backend.url == "redis://cache:6379/1"
