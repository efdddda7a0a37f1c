"""Tests for InMemoryKeyValueStore."""

import pytest

from larder.errors import StorageUnavailableError
from larder.kv.stores.inmemory import InMemoryKeyValueStore


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    """Create a fresh store for each test."""
    return InMemoryKeyValueStore()


class TestBasicOperations:
    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self, store):
        await store.set("local_repo:rewards", b"[]")
        assert await store.get("local_repo:rewards") == b"[]"

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, store):
        await store.delete("nope")

    @pytest.mark.asyncio
    async def test_delete_many(self, store):
        await store.set("a", b"1")
        await store.set("b", b"2")
        await store.set("c", b"3")

        await store.delete_many(["a", "c", "missing"])

        assert store.snapshot() == {"b": b"2"}

    @pytest.mark.asyncio
    async def test_keys_by_prefix_sorted(self, store):
        await store.set("archived_repo:B:rewards", b"[]")
        await store.set("archived_repo:A:rewards", b"[]")
        await store.set("local_repo:rewards", b"[]")

        assert await store.keys("archived_repo:") == [
            "archived_repo:A:rewards",
            "archived_repo:B:rewards",
        ]


class TestUnavailable:
    """Simulated local storage failure."""

    @pytest.mark.asyncio
    async def test_every_operation_raises(self, store):
        store.available = False

        with pytest.raises(StorageUnavailableError):
            await store.get("a")
        with pytest.raises(StorageUnavailableError):
            await store.set("a", b"1")
        with pytest.raises(StorageUnavailableError):
            await store.delete_many(["a"])
