"""Builds the unioned works/volumes catalog query.

Every user-supplied value reaches the database as a bound parameter; the
builder only chooses which clauses to attach.
"""

from typing import List

from sqlalchemy import (
    Date,
    Integer,
    String,
    and_,
    cast,
    exists,
    false,
    func,
    null,
    or_,
    select,
    true,
    union_all,
)
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from scholar_archive.database.models import (
    Author,
    Topic,
    Volume,
    VolumeItem,
    Work,
    WorkAuthor,
    WorkTopic,
)
from scholar_archive.services.listing import expressions
from scholar_archive.services.listing.filters import ListingQuery, SortField, SortOrder

# Column order shared by both branches of the union
LIST_COLUMNS = (
    "id",
    "title",
    "description",
    "category",
    "volume",
    "issue_number",
    "secondary_field",
    "secondary_value",
    "child_count",
    "is_compiled",
    "publication_date",
    "start_year",
    "end_year",
    "created_at",
    "deleted_at",
)


class CatalogQueryBuilder:
    """Compose the listing, count and page statements for one ListingQuery."""

    def __init__(self, query: ListingQuery):
        self.query = query
        self._categories = [category.value for category in query.categories]

    # Shared predicates

    def _deleted_clause(self, column) -> ColumnElement:
        if self.query.archived:
            return column.is_not(None)
        return column.is_(None)

    def _volume_child_count(self, canonical: ColumnElement) -> ColumnElement:
        """Correlated count of linked works carrying the volume's category."""
        return (
            select(func.count(VolumeItem.id))
            .join(Work, Work.id == VolumeItem.work_id)
            .where(
                VolumeItem.volume_id == Volume.id,
                expressions.normalized_category(Work.category) == canonical,
            )
            .correlate(Volume)
            .scalar_subquery()
        )

    # Branches

    def works_select(self) -> Select:
        """Standalone works: not linked to any volume through volume_items."""
        category = expressions.canonical_category(Work.category)
        is_child = exists().where(VolumeItem.work_id == Work.id)

        conditions: List[ColumnElement] = [self._deleted_clause(Work.deleted_at)]
        if self.query.archived:
            # Cascade-archived children are reached through their volume
            parent_archived = (
                exists()
                .where(VolumeItem.work_id == Work.id)
                .where(VolumeItem.volume_id == Volume.id)
                .where(Volume.deleted_at.is_not(None))
            )
            conditions.append(~parent_archived)
        else:
            conditions.append(~is_child)

        if self.query.search:
            term = self.query.search
            author_match = (
                exists()
                .where(WorkAuthor.work_id == Work.id)
                .where(Author.id == WorkAuthor.author_id)
                .where(Author.full_name.icontains(term, autoescape=True))
            )
            conditions.append(
                or_(
                    Work.title.icontains(term, autoescape=True),
                    Work.description.icontains(term, autoescape=True),
                    author_match,
                )
            )

        if self.query.keyword:
            conditions.append(
                exists()
                .where(WorkTopic.work_id == Work.id)
                .where(Topic.id == WorkTopic.topic_id)
                .where(Topic.name.icontains(self.query.keyword, autoescape=True))
            )

        if self.query.category_filter_active:
            conditions.append(category.in_(self._categories))

        return select(
            Work.id.label("id"),
            func.coalesce(Work.title, "Untitled Document", type_=String).label("title"),
            func.coalesce(Work.description, "", type_=String).label("description"),
            category.label("category"),
            cast(Work.volume, String).label("volume"),
            cast(Work.issue_number, String).label("issue_number"),
            cast(null(), String).label("secondary_field"),
            cast(null(), String).label("secondary_value"),
            cast(0, Integer).label("child_count"),
            false().label("is_compiled"),
            Work.publication_date.label("publication_date"),
            cast(null(), Integer).label("start_year"),
            cast(null(), Integer).label("end_year"),
            Work.created_at.label("created_at"),
            Work.deleted_at.label("deleted_at"),
        ).where(and_(*conditions))

    def volumes_select(self) -> Select:
        category = expressions.canonical_category(Volume.category)
        title = expressions.volume_title(category)
        field = expressions.secondary_field_for(category)
        child_count = self._volume_child_count(category)

        conditions: List[ColumnElement] = [self._deleted_clause(Volume.deleted_at)]

        if self.query.search:
            term = self.query.search
            conditions.append(
                or_(
                    title.icontains(term, autoescape=True),
                    Volume.abstract_foreword.icontains(term, autoescape=True),
                )
            )

        if self.query.keyword:
            conditions.append(
                exists()
                .where(VolumeItem.volume_id == Volume.id)
                .where(WorkTopic.work_id == VolumeItem.work_id)
                .where(Topic.id == WorkTopic.topic_id)
                .where(Topic.name.icontains(self.query.keyword, autoescape=True))
            )

        if self.query.category_filter_active:
            conditions.append(category.in_(self._categories))
            # An empty shell must not satisfy a targeted category query
            conditions.append(child_count > 0)

        return select(
            Volume.id.label("id"),
            title.label("title"),
            func.coalesce(Volume.abstract_foreword, "", type_=String).label("description"),
            category.label("category"),
            cast(Volume.volume_number, String).label("volume"),
            cast(Volume.issue_number, String).label("issue_number"),
            field.label("secondary_field"),
            expressions.volume_secondary_value(field).label("secondary_value"),
            child_count.label("child_count"),
            true().label("is_compiled"),
            cast(null(), Date).label("publication_date"),
            Volume.start_year.label("start_year"),
            Volume.end_year.label("end_year"),
            Volume.created_at.label("created_at"),
            Volume.deleted_at.label("deleted_at"),
        ).where(and_(*conditions))

    # Statements

    def combined(self):
        """The filtered union as a subquery; None when no branch applies."""
        branches = []
        if self.query.include_works:
            branches.append(self.works_select())
        if self.query.include_volumes:
            branches.append(self.volumes_select())
        if not branches:
            return None
        if len(branches) == 1:
            return branches[0].subquery("combined_docs")
        return union_all(*branches).subquery("combined_docs")

    def count_statement(self, combined) -> Select:
        return select(func.count()).select_from(combined)

    def page_statement(self, combined) -> Select:
        column = {
            SortField.ID: combined.c.id,
            SortField.TITLE: combined.c.title,
            SortField.PUBLICATION_DATE: combined.c.publication_date,
            SortField.CATEGORY: combined.c.category,
            SortField.CREATED_AT: combined.c.created_at,
        }[self.query.sort_field]

        primary = column.desc() if self.query.sort_order is SortOrder.DESC else column.asc()

        return (
            select(*[combined.c[name] for name in LIST_COLUMNS])
            .order_by(
                primary.nulls_last(),
                combined.c.id.asc(),
                # Works and volumes have independent id sequences
                combined.c.is_compiled.asc(),
            )
            .limit(self.query.page_size)
            .offset(self.query.offset)
        )
