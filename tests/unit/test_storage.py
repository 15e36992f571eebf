"""Tests for storage implementations and the typed JSON codec."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from palaver.core import MemoryStorage, RedisStorage, Storage, StoreItem, StoreItemConflictError, get_storage
from palaver.core import serialization
from palaver.dialogs import DialogInstance, DialogReason, DialogState
from palaver.models import ChannelAccount, Settings


@dataclass
class Profile:
    name: str = ""
    tags: list[str] = field(default_factory=list)


class Plain:
    def __init__(self):
        self.count = 3


class TestStorageInterface:
    def test_cannot_instantiate_abstract_class(self):
        with pytest.raises(TypeError):
            Storage()  # type: ignore


class TestMemoryStorage:
    """Tests for MemoryStorage."""

    @pytest.fixture
    def store(self) -> MemoryStorage:
        return MemoryStorage()

    @pytest.mark.asyncio
    async def test_write_and_read(self, store):
        await store.write({"a": {"x": 1}, "b": {"y": 2}})
        items = await store.read(["a", "b", "missing"])
        assert items == {"a": {"x": 1}, "b": {"y": 2}}

    @pytest.mark.asyncio
    async def test_reads_are_copies(self, store):
        await store.write({"a": {"x": 1}})
        items = await store.read(["a"])
        items["a"]["x"] = 99

        assert (await store.read(["a"]))["a"]["x"] == 1

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.write({"a": {"x": 1}})
        await store.delete(["a", "never-written"])
        assert await store.read(["a"]) == {}

    @pytest.mark.asyncio
    async def test_none_arguments_rejected(self, store):
        with pytest.raises(TypeError):
            await store.read(None)
        with pytest.raises(TypeError):
            await store.write(None)
        with pytest.raises(TypeError):
            await store.delete(None)

    @pytest.mark.asyncio
    async def test_etag_assigned_on_write(self, store):
        await store.write({"a": {"eTag": "*", "v": 1}})
        await store.write({"b": StoreItem(v=2)})

        items = await store.read(["a", "b"])
        assert items["a"]["eTag"] == "1"
        assert items["b"].e_tag == "2"

    @pytest.mark.asyncio
    async def test_matching_etag_succeeds(self, store):
        await store.write({"a": {"eTag": "*", "v": 1}})
        current = (await store.read(["a"]))["a"]
        current["v"] = 2

        await store.write({"a": current})

        assert (await store.read(["a"]))["a"]["v"] == 2

    @pytest.mark.asyncio
    async def test_stale_etag_conflicts(self, store):
        await store.write({"a": {"eTag": "*", "v": 1}})
        stale = (await store.read(["a"]))["a"]
        await store.write({"a": dict(stale, v=2)})

        with pytest.raises(StoreItemConflictError) as exc_info:
            await store.write({"a": dict(stale, v=3)})

        assert exc_info.value.status_code == 412
        assert exc_info.value.key == "a"

    @pytest.mark.asyncio
    async def test_wildcard_etag_overwrites(self, store):
        await store.write({"a": {"eTag": "*", "v": 1}})
        await store.write({"a": {"eTag": "*", "v": 5}})
        assert (await store.read(["a"]))["a"]["v"] == 5

    @pytest.mark.asyncio
    async def test_items_without_etag_always_overwrite(self, store):
        await store.write({"a": {"v": 1}})
        await store.write({"a": {"v": 2}})
        assert (await store.read(["a"]))["a"] == {"v": 2}

    @pytest.mark.asyncio
    async def test_null_etag_overwrites(self, store):
        await store.write({"a": {"eTag": "*", "v": 1}})

        await store.write({"a": {"eTag": None, "v": 2}})

        stored = (await store.read(["a"]))["a"]
        assert stored["v"] == 2
        assert stored["eTag"] not in (None, "*")

    def test_shared_dictionary(self):
        backing = {}
        store = MemoryStorage(backing)
        assert store.memory is backing


class TestRedisStorage:
    """Tests for RedisStorage with a mocked client."""

    @pytest.fixture
    def client(self):
        client = AsyncMock()
        client.mget.return_value = [None]
        client.get.return_value = None
        return client

    @pytest.fixture
    def store(self, client) -> RedisStorage:
        store = RedisStorage(prefix="test:", ttl=60)
        store._client = client
        return store

    @pytest.mark.asyncio
    async def test_write_sets_prefixed_key_with_ttl(self, store, client):
        await store.write({"k": {"v": 1}})

        client.set.assert_awaited_once()
        args, kwargs = client.set.call_args
        assert args[0] == "test:k"
        assert json.loads(args[1]) == {"v": 1}
        assert kwargs["ex"] == 60

    @pytest.mark.asyncio
    async def test_read_decodes_values(self, store, client):
        client.mget.return_value = [serialization.dumps({"v": 1}), None]

        items = await store.read(["a", "b"])

        client.mget.assert_awaited_once_with(["test:a", "test:b"])
        assert items == {"a": {"v": 1}}

    @pytest.mark.asyncio
    async def test_read_empty_keys_skips_redis(self, store, client):
        assert await store.read([]) == {}
        client.mget.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_write_assigns_new_etag(self, store, client):
        await store.write({"k": {"eTag": "*", "v": 1}})

        stored = serialization.loads(client.set.call_args.args[1])
        assert stored["eTag"] not in ("*", None)

    @pytest.mark.asyncio
    async def test_write_conflict(self, store, client):
        client.get.return_value = serialization.dumps({"eTag": "abc", "v": 1})

        with pytest.raises(StoreItemConflictError):
            await store.write({"k": {"eTag": "old", "v": 2}})
        client.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete(self, store, client):
        await store.delete(["a", "b"])
        client.delete.assert_awaited_once_with("test:a", "test:b")

    @pytest.mark.asyncio
    async def test_ping_and_close(self, store, client):
        client.ping.return_value = True

        assert await store.ping() is True
        await store.close()

        client.aclose.assert_awaited_once()
        assert store._client is None

    @pytest.mark.asyncio
    async def test_lazy_client_creation(self):
        store = RedisStorage(redis_url="redis://example:6379")
        fake = AsyncMock()
        fake.ping.return_value = True

        with patch("palaver.core.storage.aioredis.from_url", new=AsyncMock(return_value=fake)) as from_url:
            assert await store.ping() is True

        from_url.assert_awaited_once()
        assert from_url.call_args.args[0] == "redis://example:6379"


class TestGetStorage:
    def test_memory_default(self):
        assert isinstance(get_storage(Settings(_env_file=None)), MemoryStorage)

    def test_redis(self):
        settings = Settings(_env_file=None, storage="redis", storage_prefix="p:", state_ttl=10)
        store = get_storage(settings)

        assert isinstance(store, RedisStorage)
        assert store.prefix == "p:"
        assert store.ttl == 10

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            get_storage(Settings(_env_file=None, storage="cassandra"))


class TestSerialization:
    """Tests for the typed JSON codec used by Redis storage."""

    def test_primitives_pass_through(self):
        data = {"a": [1, "two", None, True, 1.5]}
        assert serialization.loads(serialization.dumps(data)) == data

    def test_dataclass_round_trip(self):
        restored = serialization.loads(serialization.dumps(Profile("Ada", ["x"])))
        assert restored == Profile("Ada", ["x"])

    def test_pydantic_model_round_trip(self):
        account = ChannelAccount(id="u1", name="Ada", role="user")

        restored = serialization.loads(serialization.dumps(account))

        assert isinstance(restored, ChannelAccount)
        assert restored.name == "Ada"

    def test_nested_dataclass_round_trip(self):
        state = DialogState(dialog_stack=[DialogInstance(id="main", state={"step": 1})])

        restored = serialization.loads(serialization.dumps(state))

        assert isinstance(restored, DialogState)
        assert restored.dialog_stack[0].id == "main"
        assert restored.dialog_stack[0].state == {"step": 1}

    def test_enum_and_datetime(self):
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        restored = serialization.loads(serialization.dumps([DialogReason.BEGIN_CALLED, moment]))
        assert restored == [DialogReason.BEGIN_CALLED, moment]

    def test_plain_object_round_trip(self):
        restored = serialization.loads(serialization.dumps(Plain()))
        assert isinstance(restored, Plain)
        assert restored.count == 3

    def test_type_tag(self):
        encoded = serialization.to_jsonable(Profile())
        assert encoded[serialization.TYPE_KEY] == f"{__name__}:Profile"

    def test_callables_rejected(self):
        with pytest.raises(TypeError):
            serialization.to_jsonable(lambda: None)

    def test_invalid_type_name(self):
        with pytest.raises(ValueError):
            serialization.resolve_type("no-colon")
