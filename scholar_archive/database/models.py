"""SQLAlchemy models for the archive tables."""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scholar_archive.core.database import Base


class WorkAuthor(Base):
    """Association between works and their authors."""

    __tablename__ = "work_authors"

    work_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("works.id", ondelete="CASCADE"), primary_key=True
    )
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("authors.id", ondelete="CASCADE"), primary_key=True
    )


class WorkTopic(Base):
    """Association between works and research topics."""

    __tablename__ = "work_topics"

    work_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("works.id", ondelete="CASCADE"), primary_key=True
    )
    topic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("topics.id", ondelete="CASCADE"), primary_key=True
    )


class Author(Base):
    """Author attached to works for display."""

    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    works: Mapped[list["Work"]] = relationship(
        "Work", secondary="work_authors", back_populates="authors"
    )


class Topic(Base):
    """Research topic (keyword) attached to works."""

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    works: Mapped[list["Work"]] = relationship(
        "Work", secondary="work_topics", back_populates="topics"
    )


class Volume(Base):
    """Compiled document: a themed collection that references works.

    Only one of ``issue_number`` / ``department`` is meaningful for a row;
    which one is decided by the category policy, never by nullness.
    """

    __tablename__ = "volumes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    start_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    end_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    volume_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    issue_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    foreword: Mapped[str | None] = mapped_column(
        String(1024), nullable=True, comment="Path to the prepared foreword file"
    )
    abstract_foreword: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    items: Mapped[list["VolumeItem"]] = relationship(
        "VolumeItem", back_populates="volume", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_volumes_deleted_at", "deleted_at"),
    )


class Work(Base):
    """Standalone archived document, or a child item of a volume."""

    __tablename__ = "works"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    publication_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    volume: Mapped[str | None] = mapped_column(String(64), nullable=True)
    issue_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # Denormalized copy of the volume_items link; written only alongside it
    compiled_parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("volumes.id", ondelete="SET NULL"), nullable=True
    )
    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    authors: Mapped[list["Author"]] = relationship(
        "Author", secondary="work_authors", back_populates="works"
    )
    topics: Mapped[list["Topic"]] = relationship(
        "Topic", secondary="work_topics", back_populates="works"
    )

    __table_args__ = (
        Index("ix_works_category", "category"),
        Index("ix_works_deleted_at", "deleted_at"),
        Index("ix_works_compiled_parent_id", "compiled_parent_id"),
    )


class VolumeItem(Base):
    """Authoritative link between a volume and one of its works."""

    __tablename__ = "volume_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    volume_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("volumes.id", ondelete="CASCADE"), nullable=False
    )
    work_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("works.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    volume: Mapped["Volume"] = relationship("Volume", back_populates="items")
    work: Mapped["Work"] = relationship("Work")

    __table_args__ = (
        UniqueConstraint("volume_id", "work_id", name="uq_volume_item_pair"),
        Index("ix_volume_items_work_id", "work_id"),
    )
