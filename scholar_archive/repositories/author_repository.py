from typing import Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.database.models import Author, WorkAuthor
from scholar_archive.repositories.base_repository import BaseRepository
from scholar_archive.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AuthorRepository(BaseRepository[Author]):
    """Read access to authors, plus the link helpers used when seeding works."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Author)

    async def get_or_create(self, full_name: str) -> Author:
        result = await self.session.execute(
            select(Author).where(Author.full_name == full_name).limit(1)
        )
        author = result.scalar_one_or_none()
        if author:
            return author
        return await self.create(full_name=full_name)

    async def link(self, work_id: int, author_ids: Sequence[int]) -> None:
        """Attach authors to a work, ignoring links that already exist."""
        existing = set(
            (await self.session.execute(
                select(WorkAuthor.author_id).where(WorkAuthor.work_id == work_id)
            )).scalars().all()
        )
        for author_id in author_ids:
            if author_id not in existing:
                self.session.add(WorkAuthor(work_id=work_id, author_id=author_id))
                existing.add(author_id)
        await self.session.flush()

    async def get_for_works(self, work_ids: Sequence[int]) -> Dict[int, List[Author]]:
        """Authors per work for a batch of works, ordered by name."""
        authors: Dict[int, List[Author]] = {work_id: [] for work_id in work_ids}
        if not work_ids:
            return authors

        result = await self.session.execute(
            select(WorkAuthor.work_id, Author)
            .join(Author, Author.id == WorkAuthor.author_id)
            .where(WorkAuthor.work_id.in_(list(work_ids)))
            .order_by(Author.full_name, Author.id)
        )
        for work_id, author in result.all():
            authors.setdefault(work_id, []).append(author)
        return authors
