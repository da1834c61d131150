"""Typed listing query built from raw caller parameters."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from scholar_archive.core.config import settings
from scholar_archive.core.exceptions import ValidationError
from scholar_archive.schemas.documents import DocumentFilter
from scholar_archive.services import category_policy
from scholar_archive.services.category_policy import Category


class SortField(str, Enum):
    ID = "id"
    TITLE = "title"
    PUBLICATION_DATE = "publication_date"
    CATEGORY = "category"
    CREATED_AT = "created_at"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class DocTypes(str, Enum):
    ALL = "all"
    COMPILED = "compiled"
    SINGLE = "single"


SORT_FIELD_ALIASES = {
    "id": SortField.ID,
    "title": SortField.TITLE,
    "publicationdate": SortField.PUBLICATION_DATE,
    "publication_date": SortField.PUBLICATION_DATE,
    "category": SortField.CATEGORY,
    "document_type": SortField.CATEGORY,
    "createdat": SortField.CREATED_AT,
    "created_at": SortField.CREATED_AT,
}


@dataclass(frozen=True)
class ListingQuery:
    """Validated listing parameters consumed by the query builder."""

    page: int = 1
    page_size: int = 10
    categories: Tuple[Category, ...] = ()
    search: Optional[str] = None
    keyword: Optional[str] = None
    sort_field: SortField = SortField.ID
    sort_order: SortOrder = SortOrder.ASC
    doc_types: DocTypes = DocTypes.ALL
    archived: bool = False

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def include_works(self) -> bool:
        return self.doc_types in (DocTypes.ALL, DocTypes.SINGLE)

    @property
    def include_volumes(self) -> bool:
        return self.doc_types in (DocTypes.ALL, DocTypes.COMPILED)

    @property
    def category_filter_active(self) -> bool:
        return bool(self.categories)


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_page(page: int, page_size: int) -> None:
    if page < 1:
        raise ValidationError(f"page must be >= 1, got {page}", field="page")
    if page_size < 1 or page_size > settings.max_page_size:
        raise ValidationError(
            f"page_size must be between 1 and {settings.max_page_size}, got {page_size}",
            field="page_size",
        )


def resolve_sort(sort_field: Optional[str], sort_order: Optional[str]) -> Tuple[SortField, SortOrder]:
    """Map sort input onto the allow-list.

    Unknown fields fall back to ``id`` ascending; an unknown order on a known
    field falls back to ascending.
    """
    field = SORT_FIELD_ALIASES.get((sort_field or "").strip().lower())
    if field is None:
        return SortField.ID, SortOrder.ASC
    order = (sort_order or "").strip().upper()
    return field, SortOrder.DESC if order == SortOrder.DESC.value else SortOrder.ASC


def build_listing_query(raw: DocumentFilter, archived: bool = False) -> ListingQuery:
    """Validate raw parameters and produce a ListingQuery.

    Raises:
        ValidationError: bad page, page size, category or document type
    """
    validate_page(raw.page, raw.page_size)

    try:
        doc_types = DocTypes((raw.doc_types or "all").strip().lower())
    except ValueError:
        raise ValidationError(
            f"docTypes must be one of all, compiled, single; got {raw.doc_types!r}",
            field="doc_types",
        )

    categories = tuple(category_policy.parse_filter(raw.category))
    sort_field, sort_order = resolve_sort(raw.sort_field, raw.sort_order)

    return ListingQuery(
        page=raw.page,
        page_size=raw.page_size,
        categories=categories,
        search=_clean_text(raw.search),
        keyword=_clean_text(raw.keyword),
        sort_field=sort_field,
        sort_order=sort_order,
        doc_types=doc_types,
        archived=archived,
    )
