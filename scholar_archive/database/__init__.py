"""Database module for SQLAlchemy models."""

from scholar_archive.core.database import Base, engine, get_async_session
from scholar_archive.database.models import (
    Author,
    Topic,
    Volume,
    VolumeItem,
    Work,
    WorkAuthor,
    WorkTopic,
)

__all__ = [
    "Base",
    "engine",
    "get_async_session",
    "Author",
    "Topic",
    "Volume",
    "VolumeItem",
    "Work",
    "WorkAuthor",
    "WorkTopic",
]
