"""Per-category totals for the catalog dashboard."""

from typing import Any, Dict

from sqlalchemy import exists, func, select

from scholar_archive.core.exceptions import AppError
from scholar_archive.database.models import Volume, VolumeItem, Work
from scholar_archive.schemas.documents import CategoryCounts
from scholar_archive.services import category_policy
from scholar_archive.services.base_service import BaseService
from scholar_archive.services.category_policy import Category
from scholar_archive.utils.logging import get_logger

LOGGER = get_logger(__name__)


class CategoryCounter(BaseService):
    """Counts standalone live works plus live volumes per canonical category."""

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.get("action")

        if action == "count_by_category":
            return await self._count_logic()
        raise AppError(f"Unknown action: {action}")

    async def count_by_category(self) -> CategoryCounts:
        return await self.execute(action="count_by_category")

    async def _count_logic(self) -> CategoryCounts:
        counts: Dict[str, int] = {category.value: 0 for category in Category}

        # Grouped on the raw normalized text; canonicalization happens below
        work_key = func.upper(func.trim(Work.category))
        works = await self.session.execute(
            select(work_key, func.count(Work.id))
            .where(
                Work.deleted_at.is_(None),
                ~exists().where(VolumeItem.work_id == Work.id),
            )
            .group_by(work_key)
        )
        for raw, count in works.all():
            counts[category_policy.canonical_name(raw)] += int(count)

        volume_key = func.upper(func.trim(Volume.category))
        volumes = await self.session.execute(
            select(volume_key, func.count(Volume.id))
            .where(Volume.deleted_at.is_(None))
            .group_by(volume_key)
        )
        for raw, count in volumes.all():
            counts[category_policy.canonical_name(raw)] += int(count)

        total = sum(counts.values())
        LOGGER.debug("Counted documents by category", extra={"counts": counts, "total": total})
        return CategoryCounts(categories=counts, total=total)
