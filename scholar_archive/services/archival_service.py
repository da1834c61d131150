"""Soft-delete, restore and purge of volumes and works."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.core.exceptions import (
    AlreadyArchivedError,
    AppError,
    NotArchivedError,
    NotFoundError,
)
from scholar_archive.repositories.volume_repository import VolumeRepository
from scholar_archive.repositories.work_repository import WorkRepository
from scholar_archive.schemas.documents import ArchivalResult, DocumentPage
from scholar_archive.services.base_service import BaseService
from scholar_archive.services.listing_service import ListingService
from scholar_archive.utils.logging import get_logger

LOGGER = get_logger(__name__)

VOLUME = "Compiled document"
WORK = "Document"


class ArchivalService(BaseService):
    """Archive lifecycle for volumes and individual works.

    Archiving a volume cascades to every work linked through volume_items,
    stamping all of them and the volume with one timestamp inside a single
    transaction. Restoring a volume does not restore its children.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.volume_repo = VolumeRepository(session)
        self.work_repo = WorkRepository(session)

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action == "archive":
            return await self._archive_logic(kwargs["volume_id"])
        elif action == "restore":
            return await self._restore_logic(kwargs["volume_id"])
        elif action == "archive_work":
            return await self._archive_work_logic(kwargs["work_id"])
        elif action == "restore_work":
            return await self._restore_work_logic(kwargs["work_id"])
        elif action == "hard_delete_volume":
            return await self._hard_delete_volume_logic(kwargs["volume_id"])
        elif action == "hard_delete_work":
            return await self._hard_delete_work_logic(kwargs["work_id"])
        else:
            raise AppError(f"Unknown action: {action}")

    async def archive(self, volume_id: int) -> ArchivalResult:
        """Archive a volume and all of its linked works atomically.

        Raises:
            NotFoundError: the volume does not exist
            AlreadyArchivedError: the volume is already archived
            StoreError: the cascade failed and was rolled back
        """
        return await self.execute(action="archive", volume_id=volume_id)

    async def restore(self, volume_id: int) -> ArchivalResult:
        """Clear the volume's deleted_at; children stay archived."""
        return await self.execute(action="restore", volume_id=volume_id)

    async def archive_work(self, work_id: int) -> ArchivalResult:
        return await self.execute(action="archive_work", work_id=work_id)

    async def restore_work(self, work_id: int) -> ArchivalResult:
        return await self.execute(action="restore_work", work_id=work_id)

    async def hard_delete_volume(self, volume_id: int) -> ArchivalResult:
        """Permanently delete an archived volume; its works are detached, not deleted."""
        return await self.execute(action="hard_delete_volume", volume_id=volume_id)

    async def hard_delete_work(self, work_id: int) -> ArchivalResult:
        return await self.execute(action="hard_delete_work", work_id=work_id)

    async def list_archived(self, page: int = 1, page_size: int = 10) -> DocumentPage:
        return await ListingService(self.session).list_archived(page=page, page_size=page_size)

    async def _archive_logic(self, volume_id: int) -> ArchivalResult:
        async with self.transaction():
            volume = await self.volume_repo.get_by_id(volume_id, for_update=True)
            if not volume:
                raise NotFoundError(VOLUME, volume_id)
            if volume.deleted_at is not None:
                raise AlreadyArchivedError(VOLUME, volume_id)

            now = datetime.now(timezone.utc)
            child_ids = await self.volume_repo.get_child_ids(volume_id)

            # Re-stamping the parent pointer repairs any drift from the join table
            await self.work_repo.mark_deleted(child_ids, now, parent_id=volume_id)
            await self.volume_repo.mark_deleted(volume_id, now)

        LOGGER.info(
            f"Archived volume {volume_id} with {len(child_ids)} children",
            extra={"volume_id": volume_id, "work_ids": child_ids, "deleted_at": now.isoformat()},
        )
        return ArchivalResult(
            action="archive",
            target="compiled",
            target_id=volume_id,
            affected_work_ids=child_ids,
            timestamp=now,
        )

    async def _restore_logic(self, volume_id: int) -> ArchivalResult:
        async with self.transaction():
            volume = await self.volume_repo.get_by_id(volume_id, for_update=True)
            if not volume:
                raise NotFoundError(VOLUME, volume_id)
            if volume.deleted_at is None:
                raise NotArchivedError(VOLUME, volume_id)

            await self.volume_repo.mark_deleted(volume_id, None)

        now = datetime.now(timezone.utc)
        LOGGER.info(f"Restored volume {volume_id}", extra={"volume_id": volume_id})
        return ArchivalResult(action="restore", target="compiled", target_id=volume_id, timestamp=now)

    async def _archive_work_logic(self, work_id: int) -> ArchivalResult:
        async with self.transaction():
            work = await self.work_repo.get_by_id(work_id, for_update=True)
            if not work:
                raise NotFoundError(WORK, work_id)
            if work.deleted_at is not None:
                raise AlreadyArchivedError(WORK, work_id)

            now = datetime.now(timezone.utc)
            await self.work_repo.mark_deleted([work_id], now)

        LOGGER.info(f"Archived document {work_id}", extra={"work_id": work_id})
        return ArchivalResult(
            action="archive",
            target="document",
            target_id=work_id,
            affected_work_ids=[work_id],
            timestamp=now,
        )

    async def _restore_work_logic(self, work_id: int) -> ArchivalResult:
        async with self.transaction():
            work = await self.work_repo.get_by_id(work_id, for_update=True)
            if not work:
                raise NotFoundError(WORK, work_id)
            if work.deleted_at is None:
                raise NotArchivedError(WORK, work_id)

            await self.work_repo.mark_deleted([work_id], None)

        now = datetime.now(timezone.utc)
        LOGGER.info(f"Restored document {work_id}", extra={"work_id": work_id})
        return ArchivalResult(
            action="restore",
            target="document",
            target_id=work_id,
            affected_work_ids=[work_id],
            timestamp=now,
        )

    async def _hard_delete_volume_logic(self, volume_id: int) -> ArchivalResult:
        async with self.transaction():
            volume = await self.volume_repo.get_by_id(volume_id, for_update=True)
            if not volume:
                raise NotFoundError(VOLUME, volume_id)
            if volume.deleted_at is None:
                raise NotArchivedError(VOLUME, volume_id)

            child_ids = await self.volume_repo.get_child_ids(volume_id)
            pointing = await self.work_repo.get_ids_pointing_to(volume_id)
            detached = sorted(set(child_ids) | set(pointing))

            await self.volume_repo.remove_all_items(volume_id)
            await self.work_repo.set_parent(detached, None)
            await self.volume_repo.delete(volume_id)

        now = datetime.now(timezone.utc)
        LOGGER.warning(
            f"Permanently deleted volume {volume_id}",
            extra={"volume_id": volume_id, "detached_work_ids": detached},
        )
        return ArchivalResult(
            action="hard_delete",
            target="compiled",
            target_id=volume_id,
            affected_work_ids=detached,
            timestamp=now,
        )

    async def _hard_delete_work_logic(self, work_id: int) -> ArchivalResult:
        async with self.transaction():
            work = await self.work_repo.get_by_id(work_id, for_update=True)
            if not work:
                raise NotFoundError(WORK, work_id)
            if work.deleted_at is None:
                raise NotArchivedError(WORK, work_id)

            await self.volume_repo.remove_work_links(work_id)
            await self.work_repo.delete(work_id)

        now = datetime.now(timezone.utc)
        LOGGER.warning(f"Permanently deleted document {work_id}", extra={"work_id": work_id})
        return ArchivalResult(
            action="hard_delete",
            target="document",
            target_id=work_id,
            affected_work_ids=[work_id],
            timestamp=now,
        )
