"""Enumerates the works that belong to a compiled volume."""

from typing import Any, List

from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.core.exceptions import AppError, ConsistencyViolationError, NotFoundError
from scholar_archive.repositories.author_repository import AuthorRepository
from scholar_archive.repositories.topic_repository import TopicRepository
from scholar_archive.repositories.volume_repository import VolumeRepository
from scholar_archive.repositories.work_repository import WorkRepository
from scholar_archive.schemas.documents import AuthorOut, TopicOut, WorkDetail
from scholar_archive.services import category_policy
from scholar_archive.services.base_service import BaseService
from scholar_archive.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ChildResolver(BaseService):
    """Lists a volume's children through the volume_items join table.

    Membership comes only from the join table. ``compiled_parent_id`` is
    checked against it and any drift is reported instead of silently
    preferring one side.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.volume_repo = VolumeRepository(session)
        self.work_repo = WorkRepository(session)
        self.author_repo = AuthorRepository(session)
        self.topic_repo = TopicRepository(session)

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action == "list_children":
            return await self._list_children_logic(kwargs["volume_id"])
        elif action == "verify_links":
            return await self._verify_links_logic(kwargs["volume_id"])
        else:
            raise AppError(f"Unknown action: {action}")

    async def list_children(self, volume_id: int) -> List[WorkDetail]:
        """Return the volume's children, newest publication first.

        Raises:
            NotFoundError: the volume does not exist
            ConsistencyViolationError: join table and parent pointers disagree
        """
        return await self.execute(action="list_children", volume_id=volume_id)

    async def verify_links(self, volume_id: int) -> None:
        """Raise ConsistencyViolationError when the two link representations drift."""
        await self.execute(action="verify_links", volume_id=volume_id)

    async def _verify_links_logic(self, volume_id: int) -> None:
        linked = set(await self.volume_repo.get_child_ids(volume_id))
        pointing = set(await self.work_repo.get_ids_pointing_to(volume_id))
        drift = linked ^ pointing
        if drift:
            LOGGER.error(
                "Volume child links are inconsistent",
                extra={
                    "volume_id": volume_id,
                    "only_in_join_table": sorted(linked - pointing),
                    "only_in_parent_pointer": sorted(pointing - linked),
                },
            )
            raise ConsistencyViolationError(volume_id, drift)

    async def _list_children_logic(self, volume_id: int) -> List[WorkDetail]:
        volume = await self.volume_repo.get_by_id(volume_id)
        if not volume:
            raise NotFoundError("Compiled document", volume_id)

        await self._verify_links_logic(volume_id)

        expected = category_policy.expected_child_category(volume.category)
        rows = await self.volume_repo.get_children(volume_id)

        children = []
        for work, position in rows:
            if category_policy.normalize(work.category) != expected:
                LOGGER.warning(
                    "Skipping child with a category that does not match its volume",
                    extra={
                        "volume_id": volume_id,
                        "work_id": work.id,
                        "work_category": work.category,
                        "expected": expected,
                    },
                )
                continue
            children.append((work, position))

        if not children:
            return []

        work_ids = [work.id for work, _ in children]
        authors = await self.author_repo.get_for_works(work_ids)
        topics = await self.topic_repo.get_for_works(work_ids)

        result = []
        for work, position in children:
            detail = WorkDetail(
                id=work.id,
                title=work.title,
                description=work.description,
                publication_date=work.publication_date,
                category=work.category,
                volume=work.volume,
                issue_number=work.issue_number,
                compiled_parent_id=work.compiled_parent_id,
                is_public=work.is_public,
                deleted_at=work.deleted_at,
                position=position,
                authors=[AuthorOut.model_validate(a) for a in authors.get(work.id, [])],
                topics=[TopicOut.model_validate(t) for t in topics.get(work.id, [])],
            )
            result.append(detail)

        LOGGER.info(
            f"Resolved {len(result)} children for volume {volume_id}",
            extra={"volume_id": volume_id, "skipped": len(rows) - len(result)},
        )
        return result
