"""Tests for InMemoryRemoteStore."""

import pytest

from larder.errors import RemoteDataError, UnreachableError
from larder.repository.enums import Collection
from larder.repository.enums import CampaignStatus
from larder.repository.models import Reward
from tests.factories import RecordFactory, seed_remote


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_tenant(self, remote):
        seed_remote(remote, "A")

        profile = await remote.fetch_tenant("A")

        assert profile is not None
        assert profile.id == "A"
        assert await remote.fetch_tenant("B") is None

    @pytest.mark.asyncio
    async def test_fetch_all_decodes_typed_records(self, remote):
        seed_remote(
            remote,
            "A",
            records={Collection.REWARDS: [RecordFactory.reward("r2"), RecordFactory.reward("r1")]},
        )

        rewards = await remote.fetch_all("A", Collection.REWARDS)

        assert [r.id for r in rewards] == ["r1", "r2"]
        assert all(isinstance(r, Reward) for r in rewards)

    @pytest.mark.asyncio
    async def test_profile_id_set(self, remote):
        seed_remote(remote, "A")
        assert await remote.fetch_id_set("A", Collection.PROFILE) == {"A"}
        assert await remote.fetch_id_set("B", Collection.PROFILE) == set()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["draft", "scheduled", "active", "completed"])
    async def test_campaign_lifecycle_statuses(self, remote, status):
        seed_remote(remote, "A")
        remote.seed_wire("A", Collection.CAMPAIGNS, {"id": "c1", "name": "Summer", "status": status})

        campaign = await remote.fetch_record("A", Collection.CAMPAIGNS, "c1")

        assert campaign.status == CampaignStatus(status)

    @pytest.mark.asyncio
    async def test_undecodable_record_raises_remote_data_error(self, remote):
        seed_remote(remote, "A")
        remote.seed_wire("A", Collection.REWARDS, {"id": "r1", "requirement": "lots"})

        with pytest.raises(RemoteDataError) as exc_info:
            await remote.fetch_record("A", Collection.REWARDS, "r1")

        assert isinstance(exc_info.value, UnreachableError)
        assert exc_info.value.cause is not None


class TestPush:
    @pytest.mark.asyncio
    async def test_push_then_fetch(self, remote):
        await remote.push_record("A", Collection.CUSTOMERS, RecordFactory.customer("u1"))

        assert await remote.fetch_id_set("A", Collection.CUSTOMERS) == {"u1"}
        assert remote.pushed == [("A", Collection.CUSTOMERS, "u1")]

    @pytest.mark.asyncio
    async def test_delete(self, remote):
        await remote.push_record("A", Collection.CAMPAIGNS, RecordFactory.campaign("c1"))
        await remote.delete_record("A", Collection.CAMPAIGNS, "c1")

        assert await remote.fetch_record("A", Collection.CAMPAIGNS, "c1") is None


class TestReachability:
    @pytest.mark.asyncio
    async def test_offline_raises_unreachable(self, remote):
        remote.online = False

        assert await remote.is_reachable() is False
        with pytest.raises(UnreachableError):
            await remote.fetch_tenant("A")

    @pytest.mark.asyncio
    async def test_injected_failure_per_record(self, remote):
        remote.failing_ids.add("r1")

        with pytest.raises(UnreachableError):
            await remote.push_record("A", Collection.REWARDS, RecordFactory.reward("r1"))
        await remote.push_record("A", Collection.REWARDS, RecordFactory.reward("r2"))
