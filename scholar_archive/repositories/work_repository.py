from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.database.models import Work
from scholar_archive.repositories.base_repository import BaseRepository
from scholar_archive.services import category_policy
from scholar_archive.utils.logging import get_logger

LOGGER = get_logger(__name__)


class WorkRepository(BaseRepository[Work]):
    """Repository for standalone works and volume children.

    Inherits from BaseRepository for standard CRUD operations.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, Work)

    async def create_work(
        self,
        title: str,
        category: str,
        description: Optional[str] = None,
        publication_date: Optional[date] = None,
        volume: Optional[str] = None,
        issue_number: Optional[str] = None,
        is_public: bool = False,
    ) -> Work:
        """Create a work record with its category stored in canonical form.

        Args:
            title: Work title
            category: Any accepted spelling of a category
            description: Abstract or summary
            publication_date: Optional publication date
            volume: Free-text volume label
            issue_number: Free-text issue label
            is_public: Whether the work is publicly visible

        Returns:
            Created Work record
        """
        canonical = category_policy.parse_strict(category)
        return await self.create(
            title=title,
            category=canonical.value,
            description=description,
            publication_date=publication_date,
            volume=volume,
            issue_number=issue_number,
            is_public=is_public,
        )

    async def get_many(self, work_ids: Sequence[int]) -> List[Work]:
        """Fetch the works with the given IDs, ordered by ID."""
        if not work_ids:
            return []
        result = await self.session.execute(
            select(Work).where(Work.id.in_(list(work_ids))).order_by(Work.id)
        )
        return list(result.scalars().all())

    async def get_ids_pointing_to(self, volume_id: int) -> List[int]:
        """IDs of works whose compiled_parent_id references the volume."""
        result = await self.session.execute(
            select(Work.id).where(Work.compiled_parent_id == volume_id).order_by(Work.id)
        )
        return list(result.scalars().all())

    async def mark_deleted(
        self,
        work_ids: Sequence[int],
        deleted_at: Optional[datetime],
        parent_id: Optional[int] = None,
    ) -> int:
        """Set (or clear) deleted_at on many works in one statement.

        When ``parent_id`` is given the compiled_parent_id column is
        re-stamped in the same statement.

        Returns:
            Number of rows updated
        """
        if not work_ids:
            return 0

        values = {"deleted_at": deleted_at}
        if parent_id is not None:
            values["compiled_parent_id"] = parent_id

        result = await self.session.execute(
            update(Work)
            .where(Work.id.in_(list(work_ids)))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.flush()

        LOGGER.debug(
            "Updated deleted_at on works",
            extra={"work_ids": list(work_ids), "deleted_at": str(deleted_at)},
        )
        return result.rowcount

    async def set_parent(self, work_ids: Sequence[int], parent_id: Optional[int]) -> int:
        """Stamp compiled_parent_id; callers mutate volume_items in the same transaction."""
        if not work_ids:
            return 0
        result = await self.session.execute(
            update(Work)
            .where(Work.id.in_(list(work_ids)))
            .values(compiled_parent_id=parent_id)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.flush()
        return result.rowcount
