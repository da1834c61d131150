from typing import Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.database.models import Topic, WorkTopic
from scholar_archive.repositories.base_repository import BaseRepository


class TopicRepository(BaseRepository[Topic]):
    """Read access to research topics linked to works."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Topic)

    async def get_or_create(self, name: str) -> Topic:
        result = await self.session.execute(select(Topic).where(Topic.name == name))
        topic = result.scalar_one_or_none()
        if topic:
            return topic
        return await self.create(name=name)

    async def link(self, work_id: int, topic_ids: Sequence[int]) -> None:
        existing = set(
            (await self.session.execute(
                select(WorkTopic.topic_id).where(WorkTopic.work_id == work_id)
            )).scalars().all()
        )
        for topic_id in topic_ids:
            if topic_id not in existing:
                self.session.add(WorkTopic(work_id=work_id, topic_id=topic_id))
                existing.add(topic_id)
        await self.session.flush()

    async def get_for_works(self, work_ids: Sequence[int]) -> Dict[int, List[Topic]]:
        topics: Dict[int, List[Topic]] = {work_id: [] for work_id in work_ids}
        if not work_ids:
            return topics

        result = await self.session.execute(
            select(WorkTopic.work_id, Topic)
            .join(Topic, Topic.id == WorkTopic.topic_id)
            .where(WorkTopic.work_id.in_(list(work_ids)))
            .order_by(Topic.name, Topic.id)
        )
        for work_id, topic in result.all():
            topics.setdefault(work_id, []).append(topic)
        return topics
