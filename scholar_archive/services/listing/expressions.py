"""SQL expressions shared by the listing, counting and volume queries.

Each expression has a Python twin so values computed in SQL (for sorting and
searching) and values rendered for a single record always agree.
"""

from typing import Optional

from sqlalchemy import String, and_, case, cast, func, literal, type_coerce
from sqlalchemy.sql.elements import ColumnElement

from scholar_archive.database.models import Volume
from scholar_archive.services import category_policy
from scholar_archive.services.category_policy import Category, SecondaryField


def _text(value: str) -> ColumnElement:
    return literal(value, String)


def normalized_category(column) -> ColumnElement:
    return func.upper(func.trim(column), type_=String)


def canonical_category(column) -> ColumnElement:
    """Canonical category name; unknown values map to the fallback category."""
    normalized = normalized_category(column)
    return case(
        (normalized.in_([c.value for c in Category]), normalized),
        else_=_text(category_policy.fallback_category().value),
    )


def secondary_field_for(canonical: ColumnElement) -> ColumnElement:
    """Name of the active secondary field, driven by the category policy."""
    return case(
        *[
            (canonical == category.value, _text(field.value))
            for category, field in category_policy.SECONDARY_FIELDS.items()
        ],
        else_=_text(category_policy.SECONDARY_FIELDS[category_policy.fallback_category()].value),
    )


def volume_secondary_value(field_expr: ColumnElement) -> ColumnElement:
    return case(
        (field_expr == SecondaryField.DEPARTMENT.value, Volume.department),
        else_=cast(Volume.issue_number, String),
    )


def volume_title(canonical: Optional[ColumnElement] = None) -> ColumnElement:
    """Explicit title, or "<CATEGORY> Vol. <n> (<start>-<end>)" with parts omitted when missing."""
    if canonical is None:
        canonical = canonical_category(Volume.category)

    start = cast(Volume.start_year, String)
    end = cast(Volume.end_year, String)

    volume_part = case(
        (Volume.volume_number.is_not(None), _text(" Vol. ") + cast(Volume.volume_number, String)),
        else_=_text(""),
    )
    years_part = case(
        (
            and_(Volume.start_year.is_not(None), Volume.end_year.is_not(None)),
            _text(" (") + start + _text("-") + end + _text(")"),
        ),
        (Volume.start_year.is_not(None), _text(" (") + start + _text(")")),
        (Volume.end_year.is_not(None), _text(" (") + end + _text(")")),
        else_=_text(""),
    )
    synthesized = type_coerce(canonical, String) + volume_part + years_part
    return func.coalesce(func.nullif(func.trim(Volume.title), ""), synthesized, type_=String)


def synthesize_volume_title(
    category: Optional[str],
    volume_number: Optional[int],
    start_year: Optional[int],
    end_year: Optional[int],
    title: Optional[str] = None,
) -> str:
    if title and title.strip():
        return title.strip()

    parts = [category_policy.canonical_name(category)]
    if volume_number is not None:
        parts.append(f" Vol. {volume_number}")
    if start_year is not None and end_year is not None:
        parts.append(f" ({start_year}-{end_year})")
    elif start_year is not None:
        parts.append(f" ({start_year})")
    elif end_year is not None:
        parts.append(f" ({end_year})")
    return "".join(parts)
