"""Integration tests for RedisRemoteStore against a real Redis."""

import pytest
import pytest_asyncio

from larder.config.models.storage import RemoteStoreConfig
from larder.remote.stores.redis import RedisRemoteStore
from larder.repository.enums import Collection
from tests.factories import RecordFactory, ts


@pytest_asyncio.fixture
async def remote(redis_client, namespace):
    return RedisRemoteStore(redis_client, RemoteStoreConfig(key_prefix=namespace))


@pytest.mark.integration
class TestRedisRemoteStore:
    """Remote record layout and round trips."""

    @pytest.mark.asyncio
    async def test_reachable(self, remote):
        assert await remote.is_reachable() is True

    @pytest.mark.asyncio
    async def test_tenant_profile(self, remote, clean_redis):
        profile = RecordFactory.profile("A", updated_at=ts("2025-01-05T14:00:00Z"))
        await remote.push_record("A", Collection.PROFILE, profile)

        fetched = await remote.fetch_tenant("A")

        assert fetched is not None
        assert fetched.id == "A"
        assert fetched.updated_at == ts("2025-01-05T14:00:00Z")
        assert await remote.fetch_tenant("missing") is None

    @pytest.mark.asyncio
    async def test_records_indexed_per_collection(self, remote, clean_redis):
        await remote.push_record("A", Collection.REWARDS, RecordFactory.reward("r1"))
        await remote.push_record("A", Collection.REWARDS, RecordFactory.reward("r2"))
        await remote.push_record("B", Collection.REWARDS, RecordFactory.reward("r9"))

        assert await remote.fetch_id_set("A", Collection.REWARDS) == {"r1", "r2"}
        assert [r.id for r in await remote.fetch_all("A", Collection.REWARDS)] == ["r1", "r2"]

    @pytest.mark.asyncio
    async def test_delete_record(self, remote, clean_redis):
        await remote.push_record("A", Collection.CAMPAIGNS, RecordFactory.campaign("c1"))

        await remote.delete_record("A", Collection.CAMPAIGNS, "c1")

        assert await remote.fetch_id_set("A", Collection.CAMPAIGNS) == set()
        assert await remote.fetch_record("A", Collection.CAMPAIGNS, "c1") is None

    @pytest.mark.asyncio
    async def test_pushed_records_are_clean(self, remote, clean_redis):
        dirty = RecordFactory.customer("u1").model_copy(update={"dirty": True})
        await remote.push_record("A", Collection.CUSTOMERS, dirty)

        fetched = await remote.fetch_record("A", Collection.CUSTOMERS, "u1")

        assert fetched is not None
        assert fetched.dirty is False
