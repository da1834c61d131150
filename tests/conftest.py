"""Pytest configuration and shared fixtures."""

import os

# Settings and the module-level engine are built at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("AUTO_MIGRATE", "false")

from datetime import date, datetime
from functools import partial
from typing import AsyncGenerator, Iterable, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from scholar_archive.core.database import Base
from scholar_archive.database.models import Volume, VolumeItem, Work
from scholar_archive.main import app
from scholar_archive.repositories.author_repository import AuthorRepository
from scholar_archive.repositories.topic_repository import TopicRepository


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client.

    Returns:
        TestClient: FastAPI test client instance
    """
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}


@pytest_asyncio.fixture
async def session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test, schema created from the models."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as db_session:
        yield db_session

    await engine.dispose()


async def _create_work(
    session: AsyncSession,
    title: str,
    category: str = "THESIS",
    publication_date: Optional[date] = None,
    description: Optional[str] = None,
    authors: Iterable[str] = (),
    topics: Iterable[str] = (),
    deleted_at: Optional[datetime] = None,
) -> Work:
    """Insert a work as stored, without canonicalizing its category."""
    work = Work(
        title=title,
        category=category,
        publication_date=publication_date,
        description=description,
        deleted_at=deleted_at,
    )
    session.add(work)
    await session.flush()

    author_repo = AuthorRepository(session)
    author_ids = [(await author_repo.get_or_create(name)).id for name in authors]
    if author_ids:
        await author_repo.link(work.id, author_ids)

    topic_repo = TopicRepository(session)
    topic_ids = [(await topic_repo.get_or_create(name)).id for name in topics]
    if topic_ids:
        await topic_repo.link(work.id, topic_ids)

    await session.commit()
    return work


async def _create_volume(
    session: AsyncSession,
    category: str = "CONFLUENCE",
    title: Optional[str] = None,
    volume_number: Optional[int] = None,
    start_year: Optional[int] = None,
    end_year: Optional[int] = None,
    issue_number: Optional[int] = None,
    department: Optional[str] = None,
    abstract_foreword: Optional[str] = None,
    deleted_at: Optional[datetime] = None,
) -> Volume:
    volume = Volume(
        category=category,
        title=title,
        volume_number=volume_number,
        start_year=start_year,
        end_year=end_year,
        issue_number=issue_number,
        department=department,
        abstract_foreword=abstract_foreword,
        deleted_at=deleted_at,
    )
    session.add(volume)
    await session.commit()
    return volume


async def _create_link(
    session: AsyncSession,
    volume: Volume,
    work: Work,
    position: int = 0,
    set_parent: bool = True,
) -> None:
    """Link a work to a volume; ``set_parent=False`` leaves the pointer drifted."""
    session.add(VolumeItem(volume_id=volume.id, work_id=work.id, position=position))
    if set_parent:
        work.compiled_parent_id = volume.id
    await session.commit()


@pytest.fixture
def make_work(session: AsyncSession):
    """Factory for committed works bound to the test session."""
    return partial(_create_work, session)


@pytest.fixture
def make_volume(session: AsyncSession):
    return partial(_create_volume, session)


@pytest.fixture
def link(session: AsyncSession):
    return partial(_create_link, session)
