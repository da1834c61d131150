"""Repository layer modules."""

from scholar_archive.repositories.author_repository import AuthorRepository
from scholar_archive.repositories.topic_repository import TopicRepository
from scholar_archive.repositories.volume_repository import VolumeRepository
from scholar_archive.repositories.work_repository import WorkRepository

__all__ = [
    "AuthorRepository",
    "TopicRepository",
    "VolumeRepository",
    "WorkRepository",
]
