"""Tests for RepositoryDownloader."""

import pytest

from larder.errors import UnreachableError
from larder.repository.download import RepositoryDownloader
from larder.repository.enums import Collection
from tests.factories import RecordFactory, seed_remote, ts

R = Collection.REWARDS
C = Collection.CAMPAIGNS


@pytest.fixture
def downloader(repository, remote, manifest) -> RepositoryDownloader:
    return RepositoryDownloader(repository, remote, manifest)


class TestDownloadAll:
    @pytest.mark.asyncio
    async def test_downloads_tenant(self, downloader, repository, remote, manifest):
        seed_remote(
            remote,
            "B",
            updated_at=ts("2025-01-05T14:00:00Z"),
            records={
                R: [RecordFactory.reward("r1"), RecordFactory.reward("r2")],
                C: [RecordFactory.campaign("c1")],
                Collection.CUSTOMERS: [RecordFactory.customer("u1")],
            },
        )

        result = await downloader.download_all("B")

        assert result.profile_found is True
        assert result.counts == {R: 2, C: 1, Collection.CUSTOMERS: 1}
        assert repository.current_tenant_id == "B"
        profile = await repository.get_profile()
        assert profile.updated_at == ts("2025-01-05T14:00:00Z")
        assert all(not r.dirty for r in await repository.get(R))
        metadata = await repository.metadata()
        assert metadata.has_unsynced_changes is False
        assert metadata.last_downloaded_at is not None
        assert await manifest.expected_counts() == {R: 2, C: 1}
        assert await repository.queue.pending_count() == 0

    @pytest.mark.asyncio
    async def test_unreachable(self, downloader, repository, remote):
        seed_remote(remote, "B")
        remote.online = False

        with pytest.raises(UnreachableError):
            await downloader.download_all("B")

        assert await repository.exists() is False

    @pytest.mark.asyncio
    async def test_unknown_tenant_writes_nothing(self, downloader, repository, kv_store):
        result = await downloader.download_all("nobody")

        assert result.profile_found is False
        assert kv_store.snapshot() == {}

    @pytest.mark.asyncio
    async def test_local_deletes_preserved(self, downloader, repository, remote):
        seed_remote(
            remote,
            "A",
            records={
                R: [RecordFactory.reward("r1"), RecordFactory.reward("r2")],
                C: [RecordFactory.campaign("c1")],
            },
        )
        await downloader.download_all("A")
        await repository.delete(R, "r1")
        await repository.delete(C, "c1")

        result = await downloader.download_all("A")

        assert result.preserved_deletions == 2
        assert [r.id for r in await repository.get(R)] == ["r2"]
        assert await repository.get(C) == []
        assert [r.id for r in await repository.trash()] == ["r1"]
        assert (await repository.metadata()).has_unsynced_changes is True

    @pytest.mark.asyncio
    async def test_refuses_to_overwrite_other_tenant(self, downloader, repository, remote):
        await repository.save_profile(RecordFactory.profile("A"))
        seed_remote(remote, "B")

        with pytest.raises(ValueError):
            await downloader.download_all("B")

        assert repository.current_tenant_id == "A"
