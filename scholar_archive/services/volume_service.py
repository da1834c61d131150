"""Create, update and curate compiled volumes."""

from typing import Any, Dict, List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.core.exceptions import AppError, NotFoundError, ValidationError
from scholar_archive.database.models import Volume
from scholar_archive.repositories.volume_repository import VolumeRepository
from scholar_archive.repositories.work_repository import WorkRepository
from scholar_archive.schemas.documents import VolumeCreate, VolumeDetail, VolumeUpdate
from scholar_archive.services import category_policy
from scholar_archive.services.base_service import BaseService
from scholar_archive.services.category_policy import CategoryRule
from scholar_archive.services.listing.expressions import synthesize_volume_title
from scholar_archive.utils.logging import get_logger

LOGGER = get_logger(__name__)

VOLUME = "Compiled document"
WORK = "Document"


class VolumeService(BaseService):
    """Volume lifecycle outside of archiving.

    Every change to membership writes the volume_items row and the child's
    compiled_parent_id in the same transaction.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.volume_repo = VolumeRepository(session)
        self.work_repo = WorkRepository(session)

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action == "create_volume":
            return await self._create_logic(kwargs["data"])
        elif action == "get_volume":
            return await self._get_logic(kwargs["volume_id"])
        elif action == "update_volume":
            return await self._update_logic(kwargs["volume_id"], kwargs["patch"])
        elif action == "add_works":
            return await self._add_works_logic(kwargs["volume_id"], kwargs["work_ids"])
        elif action == "remove_work":
            return await self._remove_work_logic(kwargs["volume_id"], kwargs["work_id"])
        else:
            raise AppError(f"Unknown action: {action}")

    async def create_volume(self, data: VolumeCreate) -> VolumeDetail:
        """Create a volume and optionally link an initial set of works.

        Raises:
            ValidationError: non-compiled category, inactive secondary field
                supplied, or a work that cannot join the volume
            NotFoundError: one of ``document_ids`` does not exist
        """
        return await self.execute(action="create_volume", data=data)

    async def get_volume(self, volume_id: int) -> VolumeDetail:
        return await self.execute(action="get_volume", volume_id=volume_id)

    async def update_volume(self, volume_id: int, patch: VolumeUpdate) -> VolumeDetail:
        """Apply the fields present in ``patch``."""
        return await self.execute(action="update_volume", volume_id=volume_id, patch=patch)

    async def add_works(self, volume_id: int, work_ids: Sequence[int]) -> VolumeDetail:
        """Link works to the volume; pairs that already exist are left alone."""
        return await self.execute(action="add_works", volume_id=volume_id, work_ids=list(work_ids))

    async def remove_work(self, volume_id: int, work_id: int) -> VolumeDetail:
        return await self.execute(action="remove_work", volume_id=volume_id, work_id=work_id)

    # Helpers

    @staticmethod
    def _check_secondary_fields(rule: CategoryRule, values: Dict[str, Any]) -> None:
        inactive = rule.inactive_field.value
        if values.get(inactive) is not None:
            raise ValidationError(
                f"{inactive} cannot be set on a {rule.canonical_name} volume; "
                f"it uses {rule.secondary_field.value}",
                field=inactive,
            )

    async def _get_or_404(self, volume_id: int, for_update: bool = False) -> Volume:
        volume = await self.volume_repo.get_by_id(volume_id, for_update=for_update)
        if not volume:
            raise NotFoundError(VOLUME, volume_id)
        return volume

    async def _link_works(self, volume: Volume, work_ids: Sequence[int]) -> List[int]:
        """Validate and link works. Returns the IDs that were newly linked."""
        unique_ids = list(dict.fromkeys(work_ids))
        works = {work.id: work for work in await self.work_repo.get_many(unique_ids)}

        missing = [work_id for work_id in unique_ids if work_id not in works]
        if missing:
            raise NotFoundError(WORK, missing[0])

        expected = category_policy.expected_child_category(volume.category)
        position = await self.volume_repo.next_position(volume.id)
        linked = []

        for work_id in unique_ids:
            work = works[work_id]
            if category_policy.normalize(work.category) != expected:
                raise ValidationError(
                    f"Document {work_id} is {work.category}; "
                    f"only {expected} documents can join this volume",
                    field="document_ids",
                )
            if work.deleted_at is not None:
                raise ValidationError(
                    f"Document {work_id} is archived and cannot join a volume",
                    field="document_ids",
                )

            owner = await self.volume_repo.get_owner(work_id)
            if owner is not None:
                if owner.volume_id == volume.id:
                    continue
                raise ValidationError(
                    f"Document {work_id} already belongs to compiled document {owner.volume_id}",
                    field="document_ids",
                )

            await self.volume_repo.add_item(volume.id, work_id, position)
            position += 1
            linked.append(work_id)

        await self.work_repo.set_parent(linked, volume.id)
        return linked

    async def _to_detail(self, volume: Volume) -> VolumeDetail:
        # Server-side defaults (created_at, updated_at) are expired after flush
        await self.session.refresh(volume)

        rule = category_policy.resolve(volume.category)
        counts = await self.volume_repo.count_children([volume.id], category=rule.canonical_name)

        return VolumeDetail(
            id=volume.id,
            title=synthesize_volume_title(
                volume.category,
                volume.volume_number,
                volume.start_year,
                volume.end_year,
                title=volume.title,
            ),
            category=rule.canonical_name,
            start_year=volume.start_year,
            end_year=volume.end_year,
            volume_number=volume.volume_number,
            secondary_field=rule.secondary_field.value,
            secondary_value=category_policy.secondary_value(volume),
            issue_number=volume.issue_number,
            department=volume.department,
            foreword=volume.foreword,
            abstract_foreword=volume.abstract_foreword,
            child_count=counts.get(volume.id, 0),
            created_at=volume.created_at,
            updated_at=volume.updated_at,
            deleted_at=volume.deleted_at,
        )

    # Actions

    async def _create_logic(self, data: VolumeCreate) -> VolumeDetail:
        category = category_policy.parse_compiled(data.category)
        rule = category_policy.resolve(category.value)
        values = data.model_dump(exclude={"document_ids"})
        self._check_secondary_fields(rule, values)

        values["category"] = rule.canonical_name
        values[rule.inactive_field.value] = None

        async with self.transaction():
            volume = await self.volume_repo.create(**values)
            linked = await self._link_works(volume, data.document_ids)

        LOGGER.info(
            f"Created compiled document {volume.id}",
            extra={"volume_id": volume.id, "category": rule.canonical_name, "work_ids": linked},
        )
        return await self._to_detail(volume)

    async def _get_logic(self, volume_id: int) -> VolumeDetail:
        volume = await self._get_or_404(volume_id)
        return await self._to_detail(volume)

    async def _update_logic(self, volume_id: int, patch: VolumeUpdate) -> VolumeDetail:
        values = patch.model_dump(exclude_unset=True)

        async with self.transaction():
            volume = await self._get_or_404(volume_id, for_update=True)
            current = category_policy.canonical_name(volume.category)

            if values.get("category") is not None:
                values["category"] = category_policy.parse_compiled(values["category"]).value
            else:
                values.pop("category", None)

            target = values.get("category", current)
            rule = category_policy.resolve(target)
            self._check_secondary_fields(rule, values)

            if target != current:
                if await self.volume_repo.get_child_ids(volume_id):
                    raise ValidationError(
                        f"Compiled document {volume_id} has linked documents; "
                        f"remove them before changing its category",
                        field="category",
                    )
                values[rule.inactive_field.value] = None

            await self.volume_repo.update(volume_id, **values)

        LOGGER.info(
            f"Updated compiled document {volume_id}",
            extra={"volume_id": volume_id, "fields": sorted(values)},
        )
        return await self._to_detail(volume)

    async def _add_works_logic(self, volume_id: int, work_ids: List[int]) -> VolumeDetail:
        if not work_ids:
            raise ValidationError("At least one document ID is required", field="document_ids")

        async with self.transaction():
            volume = await self._get_or_404(volume_id, for_update=True)
            if volume.deleted_at is not None:
                raise ValidationError(
                    f"Compiled document {volume_id} is archived", field="volume_id"
                )
            linked = await self._link_works(volume, work_ids)

        LOGGER.info(
            f"Linked {len(linked)} documents to compiled document {volume_id}",
            extra={"volume_id": volume_id, "work_ids": linked},
        )
        return await self._to_detail(volume)

    async def _remove_work_logic(self, volume_id: int, work_id: int) -> VolumeDetail:
        async with self.transaction():
            volume = await self._get_or_404(volume_id, for_update=True)
            if not await self.volume_repo.remove_item(volume_id, work_id):
                raise NotFoundError(f"Document in compiled document {volume_id}", work_id)
            await self.work_repo.set_parent([work_id], None)

        LOGGER.info(
            f"Unlinked document {work_id} from compiled document {volume_id}",
            extra={"volume_id": volume_id, "work_id": work_id},
        )
        return await self._to_detail(volume)
