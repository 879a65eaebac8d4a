"""
Unit tests for the persistence adapters.

The file adapter runs against tmp_path; the Redis adapter runs against a
mocked async client (the real server is covered by the integration suite).
"""

import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from portal_economy.core.exceptions import PersistenceError, StateCorruptionError
from portal_economy.modules.state.persistence import (
    InMemoryPersistence,
    JsonFilePersistence,
    RedisPersistence,
)

RECORD = {"lastOnline": "2026-01-15T12:00:00Z", "coins": 42, "level": 2}


@pytest.mark.unit
@pytest.mark.asyncio
class TestInMemoryPersistence:
    async def test_save_then_load(self):
        adapter = InMemoryPersistence()

        await adapter.save(RECORD)

        assert await adapter.load() == RECORD
        assert adapter.save_count == 1

    async def test_loaded_record_is_a_copy(self):
        adapter = InMemoryPersistence(initial=RECORD)

        loaded = await adapter.load()
        loaded["coins"] = 0

        assert adapter.record["coins"] == 42

    async def test_simulated_failures(self):
        adapter = InMemoryPersistence()
        adapter.fail_saves = True
        adapter.fail_loads = True

        with pytest.raises(PersistenceError):
            await adapter.save(RECORD)
        with pytest.raises(PersistenceError):
            await adapter.load()


@pytest.mark.unit
@pytest.mark.asyncio
class TestJsonFilePersistence:
    async def test_missing_file_loads_none(self, tmp_path):
        adapter = JsonFilePersistence(tmp_path / "state.json")

        assert await adapter.load() is None

    async def test_save_creates_parent_dirs_and_round_trips(self, tmp_path):
        # Arrange
        path = tmp_path / "nested" / "dir" / "state.json"
        adapter = JsonFilePersistence(path)

        # Act
        await adapter.save(RECORD)

        # Assert
        assert json.loads(path.read_text(encoding="utf-8")) == RECORD
        assert await adapter.load() == RECORD

    async def test_save_leaves_no_temp_files(self, tmp_path):
        adapter = JsonFilePersistence(tmp_path / "state.json")

        await adapter.save(RECORD)
        await adapter.save({**RECORD, "coins": 43})

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    async def test_invalid_json_is_corruption(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StateCorruptionError):
            await JsonFilePersistence(path).load()

    async def test_invalid_utf8_is_corruption(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_bytes(b"\xff\xfe\x00garbage")

        with pytest.raises(StateCorruptionError):
            await JsonFilePersistence(path).load()

    async def test_non_object_json_is_corruption(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.raises(StateCorruptionError):
            await JsonFilePersistence(path).load()

    async def test_unwritable_location_raises_persistence_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        adapter = JsonFilePersistence(blocker / "state.json")

        with pytest.raises(PersistenceError) as exc_info:
            await adapter.save(RECORD)

        assert exc_info.value.error_code == "PERSISTENCE_SAVE_FAILED"


@pytest.fixture
def redis_client(mocker):
    client = mocker.MagicMock()
    client.get = mocker.AsyncMock(return_value=None)
    client.set = mocker.AsyncMock(return_value=True)
    client.aclose = mocker.AsyncMock()
    return client


@pytest.mark.unit
@pytest.mark.asyncio
class TestRedisPersistence:
    async def test_key_is_namespaced_by_profile(self, redis_client):
        adapter = RedisPersistence(redis_client, "alice", key_prefix="test:state")

        assert adapter.key == "test:state:alice"

    async def test_save_writes_json_string(self, redis_client):
        adapter = RedisPersistence(redis_client, "alice")

        await adapter.save(RECORD)

        key, payload = redis_client.set.await_args.args
        assert key == "portal_economy:state:alice"
        assert json.loads(payload) == RECORD

    async def test_load_parses_stored_json(self, redis_client):
        redis_client.get.return_value = json.dumps(RECORD)
        adapter = RedisPersistence(redis_client, "alice")

        assert await adapter.load() == RECORD

    async def test_load_accepts_bytes(self, redis_client):
        redis_client.get.return_value = json.dumps(RECORD).encode("utf-8")
        adapter = RedisPersistence(redis_client, "alice")

        assert await adapter.load() == RECORD

    async def test_missing_key_loads_none(self, redis_client):
        assert await RedisPersistence(redis_client, "alice").load() is None

    async def test_redis_errors_become_persistence_errors(self, redis_client):
        redis_client.get.side_effect = RedisConnectionError("connection refused")
        redis_client.set.side_effect = RedisConnectionError("connection refused")
        adapter = RedisPersistence(redis_client, "alice")

        with pytest.raises(PersistenceError) as load_exc:
            await adapter.load()
        with pytest.raises(PersistenceError) as save_exc:
            await adapter.save(RECORD)

        assert load_exc.value.backend == "redis"
        assert save_exc.value.is_retryable is True

    async def test_garbage_value_is_corruption(self, redis_client):
        redis_client.get.return_value = "%%%"

        with pytest.raises(StateCorruptionError):
            await RedisPersistence(redis_client, "alice").load()

    async def test_undecodable_bytes_are_corruption(self, redis_client):
        redis_client.get.return_value = b"\xff\xfe"

        with pytest.raises(StateCorruptionError):
            await RedisPersistence(redis_client, "alice").load()

    async def test_client_side_decode_failure_is_corruption(self, redis_client):
        redis_client.get.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        with pytest.raises(StateCorruptionError):
            await RedisPersistence(redis_client, "alice").load()

    async def test_injected_client_is_not_closed(self, redis_client):
        await RedisPersistence(redis_client, "alice").close()

        redis_client.aclose.assert_not_awaited()

    async def test_owned_client_is_closed(self, redis_client):
        await RedisPersistence(redis_client, "alice", owns_client=True).close()

        redis_client.aclose.assert_awaited_once()
