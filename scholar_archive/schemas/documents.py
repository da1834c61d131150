"""Pydantic models for the catalog, volume and archive operations."""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str


class TopicOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class DocumentFilter(BaseModel):
    """Raw listing parameters as received from a caller.

    Values are checked by the listing service, which raises the
    application's ValidationError rather than pydantic's.
    """

    page: int = Field(default=1, description="1-based page number")
    page_size: int = Field(default=10, description="Items per page (1-50)")
    category: Optional[str] = Field(
        default=None, description="'All', one category, or a comma-separated set"
    )
    search: Optional[str] = Field(default=None, description="Free text over title, description, authors")
    keyword: Optional[str] = Field(default=None, description="Topic name fragment")
    sort_field: str = Field(default="id", description="id, title, publicationDate, category, createdAt")
    sort_order: str = Field(default="ASC", description="ASC or DESC")
    doc_types: str = Field(default="all", description="all, compiled or single")


class ListItem(BaseModel):
    """A work or a volume normalized to one listable shape."""

    id: int
    title: str
    description: str = ""
    category: str
    volume: Optional[str] = None
    issue_number: Optional[str] = None
    secondary_field: Optional[Literal["issue_number", "department"]] = None
    secondary_value: Optional[str] = None
    child_count: int = 0
    is_compiled: bool
    publication_date: Optional[date] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    authors: list[AuthorOut] = Field(default_factory=list)
    topics: list[TopicOut] = Field(default_factory=list)


class DocumentPage(BaseModel):
    items: list[ListItem] = Field(default_factory=list)
    total_count: int = 0
    total_pages: int = 0
    page: int = 1
    page_size: int = 10
    error: Optional[str] = Field(
        default=None, description="Set when the listing degraded to an empty page"
    )


class WorkDetail(BaseModel):
    """A child work as returned by the child resolver."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    publication_date: Optional[date] = None
    category: str
    volume: Optional[str] = None
    issue_number: Optional[str] = None
    compiled_parent_id: Optional[int] = None
    is_public: bool = False
    deleted_at: Optional[datetime] = None
    position: Optional[int] = None
    authors: list[AuthorOut] = Field(default_factory=list)
    topics: list[TopicOut] = Field(default_factory=list)


class VolumeCreate(BaseModel):
    category: str
    title: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    volume_number: Optional[int] = None
    issue_number: Optional[int] = None
    department: Optional[str] = None
    foreword: Optional[str] = None
    abstract_foreword: Optional[str] = None
    document_ids: list[int] = Field(default_factory=list)


class VolumeUpdate(BaseModel):
    """Partial update; only fields that were sent are applied."""

    category: Optional[str] = None
    title: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    volume_number: Optional[int] = None
    issue_number: Optional[int] = None
    department: Optional[str] = None
    foreword: Optional[str] = None
    abstract_foreword: Optional[str] = None


class VolumeDetail(BaseModel):
    id: int
    title: str
    category: str
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    volume_number: Optional[int] = None
    secondary_field: Literal["issue_number", "department"]
    secondary_value: Optional[str] = None
    issue_number: Optional[int] = None
    department: Optional[str] = None
    foreword: Optional[str] = None
    abstract_foreword: Optional[str] = None
    child_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class AddWorksRequest(BaseModel):
    document_ids: list[int] = Field(..., min_length=1)


class ArchiveRequest(BaseModel):
    id: int
    kind: Literal["compiled", "document"] = "compiled"


class ArchivalResult(BaseModel):
    """Structured record of what an archival operation changed."""

    action: Literal["archive", "restore", "hard_delete"]
    target: Literal["compiled", "document"]
    target_id: int
    affected_work_ids: list[int] = Field(default_factory=list)
    timestamp: datetime


class CategoryCounts(BaseModel):
    categories: dict[str, int]
    total: int
