"""Tests for the unified catalog listing against an in-memory database."""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from scholar_archive.core.exceptions import ValidationError
from scholar_archive.schemas.documents import DocumentFilter
from scholar_archive.services.listing_service import ListingService

ARCHIVED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def service(session):
    return ListingService(session)


@pytest.fixture
async def catalog(make_work, make_volume, link):
    """Two standalone theses, one archived thesis, and a volume with children."""
    alpha = await make_work(
        "Alpha Study", "THESIS", date(2021, 5, 1),
        authors=["Ada Lovelace"], topics=["machine learning"],
    )
    beta = await make_work("Beta Study", "DISSERTATION", date(2019, 3, 1))
    archived = await make_work("Gamma Study", "THESIS", deleted_at=ARCHIVED_AT)

    volume = await make_volume(
        "CONFLUENCE", volume_number=5, start_year=2020, end_year=2021,
        issue_number=3, abstract_foreword="Collected essays on rivers",
    )
    child_one = await make_work("River Deltas", "CONFLUENCE", date(2020, 6, 1), topics=["hydrology"])
    child_two = await make_work("Estuaries", "CONFLUENCE", date(2021, 2, 1))
    await link(volume, child_one, position=0)
    await link(volume, child_two, position=1)

    return {
        "alpha": alpha,
        "beta": beta,
        "archived": archived,
        "volume": volume,
        "children": [child_one, child_two],
    }


class TestListDocuments:
    @pytest.mark.asyncio
    async def test_children_and_archived_rows_are_not_listed(self, service, catalog):
        page = await service.list_documents()

        listed = {(item.is_compiled, item.id) for item in page.items}
        assert listed == {
            (False, catalog["alpha"].id),
            (False, catalog["beta"].id),
            (True, catalog["volume"].id),
        }
        assert page.total_count == 3
        assert page.total_pages == 1
        assert page.error is None

    @pytest.mark.asyncio
    async def test_volume_item_shape(self, service, catalog):
        page = await service.list_documents(DocumentFilter(doc_types="compiled"))

        assert page.total_count == 1
        volume = page.items[0]
        assert volume.is_compiled is True
        assert volume.title == "CONFLUENCE Vol. 5 (2020-2021)"
        assert volume.description == "Collected essays on rivers"
        assert volume.category == "CONFLUENCE"
        assert volume.child_count == 2
        assert volume.secondary_field == "issue_number"
        assert volume.secondary_value == "3"
        assert volume.start_year == 2020
        assert volume.end_year == 2021
        assert volume.authors == []
        assert volume.topics == []

    @pytest.mark.asyncio
    async def test_works_carry_authors_and_topics(self, service, catalog):
        page = await service.list_documents(DocumentFilter(doc_types="single", sort_field="title"))

        alpha = page.items[0]
        assert alpha.title == "Alpha Study"
        assert [a.full_name for a in alpha.authors] == ["Ada Lovelace"]
        assert [t.name for t in alpha.topics] == ["machine learning"]
        assert alpha.publication_date == date(2021, 5, 1)
        assert alpha.child_count == 0
        assert alpha.secondary_field is None

    @pytest.mark.asyncio
    async def test_synergy_volume_reports_department(self, service, make_volume):
        await make_volume("Synergy", department="Engineering", issue_number=9, volume_number=1)

        page = await service.list_documents(DocumentFilter(doc_types="compiled"))

        item = page.items[0]
        assert item.category == "SYNERGY"
        assert item.secondary_field == "department"
        assert item.secondary_value == "Engineering"
        assert item.title == "SYNERGY Vol. 1"

    @pytest.mark.asyncio
    async def test_pages_partition_the_result(self, service, make_work, make_volume):
        for n in range(7):
            await make_work(f"Work {n}", "THESIS")
        for n in range(4):
            await make_volume("CONFLUENCE", volume_number=n + 1)

        seen = []
        total = None
        for page_number in range(1, 5):
            page = await service.list_documents(DocumentFilter(page=page_number, page_size=3))
            total = page.total_count
            assert page.total_pages == 4
            seen.extend((item.is_compiled, item.id) for item in page.items)

        assert total == 11
        assert len(seen) == 11
        assert len(set(seen)) == 11

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, service, catalog):
        page = await service.list_documents(DocumentFilter(page=5, page_size=10))

        assert page.items == []
        assert page.total_count == 3

    @pytest.mark.asyncio
    async def test_category_filter_hides_empty_volumes(self, service, catalog, make_volume, make_work):
        await make_volume("CONFLUENCE", volume_number=6)
        standalone = await make_work("Loose Essay", "confluence")

        page = await service.list_documents(DocumentFilter(category="CONFLUENCE"))

        listed = {(item.is_compiled, item.id) for item in page.items}
        assert listed == {(True, catalog["volume"].id), (False, standalone.id)}
        assert page.total_count == 2

    @pytest.mark.asyncio
    async def test_empty_volume_listed_without_category_filter(self, service, make_volume):
        empty = await make_volume("CONFLUENCE", volume_number=6)

        page = await service.list_documents()

        assert [(item.is_compiled, item.id) for item in page.items] == [(True, empty.id)]
        assert page.items[0].child_count == 0

    @pytest.mark.asyncio
    async def test_child_count_ignores_other_categories(self, service, catalog, make_work, link):
        stray = await make_work("Stray Thesis", "THESIS")
        await link(catalog["volume"], stray, position=2)

        page = await service.list_documents(DocumentFilter(doc_types="compiled"))

        assert page.items[0].child_count == 2

    @pytest.mark.asyncio
    async def test_search_matches_author_and_volume_abstract(self, service, catalog):
        by_author = await service.list_documents(DocumentFilter(search="lovelace"))
        by_abstract = await service.list_documents(DocumentFilter(search="RIVERS"))

        assert [(i.is_compiled, i.id) for i in by_author.items] == [(False, catalog["alpha"].id)]
        assert [(i.is_compiled, i.id) for i in by_abstract.items] == [(True, catalog["volume"].id)]

    @pytest.mark.asyncio
    async def test_search_matches_synthesized_volume_title(self, service, catalog):
        page = await service.list_documents(DocumentFilter(search="Vol. 5"))

        assert [(i.is_compiled, i.id) for i in page.items] == [(True, catalog["volume"].id)]

    @pytest.mark.asyncio
    async def test_search_wildcards_are_literal(self, service, catalog):
        page = await service.list_documents(DocumentFilter(search="%"))

        assert page.total_count == 0

    @pytest.mark.asyncio
    async def test_keyword_matches_topics(self, service, catalog):
        work_match = await service.list_documents(DocumentFilter(keyword="machine"))
        volume_match = await service.list_documents(DocumentFilter(keyword="hydro"))

        assert [(i.is_compiled, i.id) for i in work_match.items] == [(False, catalog["alpha"].id)]
        assert [(i.is_compiled, i.id) for i in volume_match.items] == [(True, catalog["volume"].id)]

    @pytest.mark.asyncio
    async def test_sort_by_publication_date_puts_nulls_last(self, service, catalog):
        page = await service.list_documents(
            DocumentFilter(sort_field="publicationDate", sort_order="DESC")
        )

        assert [item.title for item in page.items] == [
            "Alpha Study",
            "Beta Study",
            "CONFLUENCE Vol. 5 (2020-2021)",
        ]

    @pytest.mark.asyncio
    async def test_unknown_sort_field_falls_back_to_id(self, service, make_work):
        first = await make_work("Zulu", "THESIS")
        second = await make_work("Alpha", "THESIS")

        page = await service.list_documents(DocumentFilter(sort_field="bogus", sort_order="DESC"))

        assert [item.id for item in page.items] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_invalid_filter_raises_before_querying(self, service, session, monkeypatch):
        execute = AsyncMock()
        monkeypatch.setattr(session, "execute", execute)

        with pytest.raises(ValidationError):
            await service.list_documents(DocumentFilter(page_size=500))

        execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_failure_degrades_to_empty_page(self, service, session, monkeypatch):
        monkeypatch.setattr(
            session,
            "execute",
            AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("database is locked"))),
        )

        page = await service.list_documents(DocumentFilter(page=2))

        assert page.items == []
        assert page.total_count == 0
        assert page.page == 2
        assert page.error == "Documents could not be loaded"


class TestListArchived:
    @pytest.mark.asyncio
    async def test_lists_archived_volumes_and_standalone_works(
        self, service, make_work, make_volume, link
    ):
        volume = await make_volume("CONFLUENCE", volume_number=1, deleted_at=ARCHIVED_AT)
        child = await make_work("Child", "CONFLUENCE", deleted_at=ARCHIVED_AT)
        await link(volume, child)
        loose = await make_work("Loose", "THESIS", deleted_at=ARCHIVED_AT)
        await make_work("Live", "THESIS")

        page = await service.list_archived()

        listed = {(item.is_compiled, item.id) for item in page.items}
        assert listed == {(True, volume.id), (False, loose.id)}
        assert all(item.deleted_at is not None for item in page.items)

    @pytest.mark.asyncio
    async def test_child_archived_alone_is_listed(self, service, make_work, make_volume, link):
        volume = await make_volume("CONFLUENCE", volume_number=1)
        child = await make_work("Child", "CONFLUENCE", deleted_at=ARCHIVED_AT)
        await link(volume, child)

        page = await service.list_archived()

        assert [(item.is_compiled, item.id) for item in page.items] == [(False, child.id)]

    @pytest.mark.asyncio
    async def test_rejects_bad_page(self, service):
        with pytest.raises(ValidationError):
            await service.list_archived(page=0)
