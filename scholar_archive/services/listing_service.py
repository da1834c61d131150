"""Catalog listing over works and compiled volumes."""

import math
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.core.exceptions import AppError
from scholar_archive.repositories.author_repository import AuthorRepository
from scholar_archive.repositories.topic_repository import TopicRepository
from scholar_archive.schemas.documents import (
    AuthorOut,
    DocumentFilter,
    DocumentPage,
    ListItem,
    TopicOut,
)
from scholar_archive.services.base_service import BaseService
from scholar_archive.services.listing.filters import (
    ListingQuery,
    build_listing_query,
    validate_page,
)
from scholar_archive.services.listing.query_builder import LIST_COLUMNS, CatalogQueryBuilder
from scholar_archive.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ListingService(BaseService):
    """Paginated, filtered, sorted listing of works and volumes as one sequence.

    Archived rows never appear in ``list_documents``; they are only reachable
    through ``list_archived``.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.author_repo = AuthorRepository(session)
        self.topic_repo = TopicRepository(session)

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action in ("list_documents", "list_archived"):
            return await self._list_logic(kwargs["query"])
        raise AppError(f"Unknown action: {action}")

    async def list_documents(self, filters: Optional[DocumentFilter] = None) -> DocumentPage:
        """List live (non-archived) works and volumes.

        Raises:
            ValidationError: when the filter is rejected; nothing is queried
        """
        query = build_listing_query(filters or DocumentFilter())
        return await self.execute(action="list_documents", query=query)

    async def list_archived(self, page: int = 1, page_size: int = 10) -> DocumentPage:
        """List archived volumes and individually archived works."""
        validate_page(page, page_size)
        query = ListingQuery(page=page, page_size=page_size, archived=True)
        return await self.execute(action="list_archived", query=query)

    async def _list_logic(self, query: ListingQuery) -> DocumentPage:
        builder = CatalogQueryBuilder(query)
        combined = builder.combined()

        LOGGER.info(
            "Listing catalog",
            extra={
                "page": query.page,
                "page_size": query.page_size,
                "categories": [c.value for c in query.categories],
                "doc_types": query.doc_types.value,
                "sort": f"{query.sort_field.value} {query.sort_order.value}",
                "archived": query.archived,
            },
        )

        try:
            total_count = int(
                (await self.session.execute(builder.count_statement(combined))).scalar_one()
            )
            rows = (await self.session.execute(builder.page_statement(combined))).all()
            items = [self._to_item(row._mapping) for row in rows]
            await self._attach_authors_and_topics(items)
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Catalog listing failed: {str(e)}",
                exc_info=True,
                extra={"page": query.page},
            )
            await self.session.rollback()
            return DocumentPage(
                items=[],
                total_count=0,
                total_pages=0,
                page=query.page,
                page_size=query.page_size,
                error="Documents could not be loaded",
            )

        compiled = sum(1 for item in items if item.is_compiled)
        LOGGER.debug(
            f"Listing returned {len(items)} items ({compiled} compiled) of {total_count}"
        )

        return DocumentPage(
            items=items,
            total_count=total_count,
            total_pages=math.ceil(total_count / query.page_size) if total_count else 0,
            page=query.page,
            page_size=query.page_size,
        )

    @staticmethod
    def _to_item(row: Dict[str, Any]) -> ListItem:
        values = {name: row[name] for name in LIST_COLUMNS}
        values["is_compiled"] = bool(values["is_compiled"])
        values["child_count"] = int(values["child_count"] or 0)
        return ListItem(**values)

    async def _attach_authors_and_topics(self, items: List[ListItem]) -> None:
        """Second pass: authors and topics for the works on this page."""
        work_ids = [item.id for item in items if not item.is_compiled]
        if not work_ids:
            return

        authors = await self.author_repo.get_for_works(work_ids)
        topics = await self.topic_repo.get_for_works(work_ids)

        for item in items:
            if item.is_compiled:
                continue
            item.authors = [AuthorOut.model_validate(a) for a in authors.get(item.id, [])]
            item.topics = [TopicOut.model_validate(t) for t in topics.get(item.id, [])]
