from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.database.models import Volume, VolumeItem, Work
from scholar_archive.repositories.base_repository import BaseRepository
from scholar_archive.utils.logging import get_logger

LOGGER = get_logger(__name__)


class VolumeRepository(BaseRepository[Volume]):
    """Repository for compiled volumes and their volume_items links.

    The volume_items table is the source of truth for membership. Methods
    that change it do not touch works.compiled_parent_id; the owning service
    stamps that column inside the same transaction.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, Volume)

    async def get_child_ids(self, volume_id: int) -> List[int]:
        """IDs of every work linked to the volume, in display order."""
        result = await self.session.execute(
            select(VolumeItem.work_id)
            .where(VolumeItem.volume_id == volume_id)
            .order_by(VolumeItem.position, VolumeItem.work_id)
        )
        return list(result.scalars().all())

    async def get_owner(self, work_id: int) -> Optional[VolumeItem]:
        """Return the link that makes the work a child, if any."""
        result = await self.session.execute(
            select(VolumeItem).where(VolumeItem.work_id == work_id).limit(1)
        )
        return result.scalar_one_or_none()

    async def next_position(self, volume_id: int) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.max(VolumeItem.position), -1)).where(
                VolumeItem.volume_id == volume_id
            )
        )
        return int(result.scalar_one()) + 1

    async def add_item(self, volume_id: int, work_id: int, position: int) -> VolumeItem:
        item = VolumeItem(volume_id=volume_id, work_id=work_id, position=position)
        self.session.add(item)
        await self.session.flush()
        return item

    async def remove_item(self, volume_id: int, work_id: int) -> bool:
        """Delete one link. Returns False when the pair does not exist."""
        result = await self.session.execute(
            delete(VolumeItem).where(
                VolumeItem.volume_id == volume_id,
                VolumeItem.work_id == work_id,
            )
        )
        await self.session.flush()
        return result.rowcount > 0

    async def remove_all_items(self, volume_id: int) -> int:
        result = await self.session.execute(
            delete(VolumeItem).where(VolumeItem.volume_id == volume_id)
        )
        await self.session.flush()
        return result.rowcount

    async def mark_deleted(self, volume_id: int, deleted_at: Optional[datetime]) -> None:
        await self.session.execute(
            update(Volume)
            .where(Volume.id == volume_id)
            .values(deleted_at=deleted_at)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.flush()

    async def get_children(self, volume_id: int) -> List[Tuple[Work, int]]:
        """Linked works with their link position, newest publication first.

        Archived children are included; they carry their own deleted_at.
        """
        result = await self.session.execute(
            select(Work, VolumeItem.position)
            .join(VolumeItem, VolumeItem.work_id == Work.id)
            .where(VolumeItem.volume_id == volume_id)
            .order_by(Work.publication_date.desc().nulls_last(), Work.id.asc())
        )
        return [(row[0], row[1]) for row in result.all()]

    async def count_children(self, volume_ids: Sequence[int], category: Optional[str] = None) -> Dict[int, int]:
        """Count linked works per volume, optionally restricted to one category."""
        if not volume_ids:
            return {}
        query = (
            select(VolumeItem.volume_id, func.count(VolumeItem.work_id))
            .join(Work, Work.id == VolumeItem.work_id)
            .where(VolumeItem.volume_id.in_(list(volume_ids)))
            .group_by(VolumeItem.volume_id)
        )
        if category is not None:
            query = query.where(func.upper(func.trim(Work.category)) == category)
        result = await self.session.execute(query)
        counts = {volume_id: 0 for volume_id in volume_ids}
        counts.update({row[0]: int(row[1]) for row in result.all()})
        return counts

    async def remove_work_links(self, work_id: int) -> int:
        """Delete every link pointing at a work; used before purging it."""
        result = await self.session.execute(
            delete(VolumeItem).where(VolumeItem.work_id == work_id)
        )
        await self.session.flush()
        return result.rowcount
