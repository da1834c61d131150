"""Tests for per-category document counts."""

from datetime import datetime, timezone

import pytest

from scholar_archive.services.category_counter import CategoryCounter

ARCHIVED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def counter(session):
    return CategoryCounter(session)


class TestCountByCategory:
    @pytest.mark.asyncio
    async def test_empty_catalog_reports_every_bucket(self, counter):
        counts = await counter.count_by_category()

        assert counts.categories == {
            "THESIS": 0,
            "DISSERTATION": 0,
            "CONFLUENCE": 0,
            "SYNERGY": 0,
        }
        assert counts.total == 0

    @pytest.mark.asyncio
    async def test_spellings_merge_into_one_bucket(self, counter, make_volume):
        await make_volume("Synergy")
        await make_volume("SYNERGY")
        await make_volume(" synergy")

        counts = await counter.count_by_category()

        assert counts.categories["SYNERGY"] == 3
        assert counts.total == 3

    @pytest.mark.asyncio
    async def test_counts_standalone_works_and_live_volumes(self, counter, make_work, make_volume, link):
        await make_work("Thesis", "THESIS")
        await make_work("Dissertation", "dissertation")
        await make_work("Archived Thesis", "THESIS", deleted_at=ARCHIVED_AT)
        volume = await make_volume("CONFLUENCE")
        child = await make_work("Child", "CONFLUENCE")
        await link(volume, child)
        await make_volume("CONFLUENCE", deleted_at=ARCHIVED_AT)

        counts = await counter.count_by_category()

        assert counts.categories == {
            "THESIS": 1,
            "DISSERTATION": 1,
            "CONFLUENCE": 1,
            "SYNERGY": 0,
        }
        assert counts.total == 3

    @pytest.mark.asyncio
    async def test_unknown_category_counts_toward_fallback(self, counter, make_work):
        await make_work("Odd", "Journal")

        counts = await counter.count_by_category()

        assert counts.categories["CONFLUENCE"] == 1
