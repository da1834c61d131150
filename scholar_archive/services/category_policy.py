"""Category policy: canonical names and the volume secondary-field rule.

A volume carries either an issue number or a department, never both. Which
one is active depends only on the category, so every read and write of those
columns goes through :func:`resolve` instead of checking which column happens
to be populated.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from scholar_archive.core.exceptions import ValidationError
from scholar_archive.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Category(str, Enum):
    THESIS = "THESIS"
    DISSERTATION = "DISSERTATION"
    CONFLUENCE = "CONFLUENCE"
    SYNERGY = "SYNERGY"


class SecondaryField(str, Enum):
    ISSUE_NUMBER = "issue_number"
    DEPARTMENT = "department"


COMPILED_CATEGORIES = frozenset({Category.CONFLUENCE, Category.SYNERGY})

SECONDARY_FIELDS = {
    Category.THESIS: SecondaryField.ISSUE_NUMBER,
    Category.DISSERTATION: SecondaryField.ISSUE_NUMBER,
    Category.CONFLUENCE: SecondaryField.ISSUE_NUMBER,
    Category.SYNERGY: SecondaryField.DEPARTMENT,
}


@dataclass(frozen=True)
class CategoryRule:
    """Resolved policy for one category value."""

    canonical_name: str
    secondary_field: SecondaryField
    recognized: bool

    @property
    def inactive_field(self) -> SecondaryField:
        if self.secondary_field is SecondaryField.DEPARTMENT:
            return SecondaryField.ISSUE_NUMBER
        return SecondaryField.DEPARTMENT


def normalize(value: Optional[str]) -> str:
    """Case- and whitespace-normalize a raw category value."""
    return (value or "").strip().upper()


def _match(value: Optional[str]) -> Optional[Category]:
    try:
        return Category(normalize(value))
    except ValueError:
        return None


def fallback_category() -> Category:
    from scholar_archive.core.config import settings

    fallback = _match(settings.fallback_category)
    return fallback or Category.CONFLUENCE


def resolve(value: Optional[str]) -> CategoryRule:
    """Resolve a raw category to its canonical name and secondary field.

    Unrecognized values resolve to the configured fallback category instead
    of failing. Matching is exact after normalization; a value that merely
    contains a category name is not recognized.
    """
    category = _match(value)
    recognized = category is not None
    if category is None:
        category = fallback_category()
        LOGGER.warning(
            f"Unrecognized category {value!r} resolved to fallback {category.value}",
            extra={"category": value, "fallback": category.value},
        )
    return CategoryRule(
        canonical_name=category.value,
        secondary_field=SECONDARY_FIELDS[category],
        recognized=recognized,
    )


def canonical_name(value: Optional[str]) -> str:
    return resolve(value).canonical_name


def secondary_field(value: Optional[str]) -> SecondaryField:
    return resolve(value).secondary_field


def parse_strict(value: Optional[str], field: str = "category") -> Category:
    """Parse a category or raise ValidationError; used on filter and write paths."""
    category = _match(value)
    if category is None:
        raise ValidationError(
            f"Unknown category {value!r}; expected one of "
            f"{', '.join(c.value for c in Category)}",
            field=field,
        )
    return category


def parse_compiled(value: Optional[str], field: str = "category") -> Category:
    """Parse a category that must be valid for a volume."""
    category = parse_strict(value, field=field)
    if category not in COMPILED_CATEGORIES:
        raise ValidationError(
            f"Category {category.value} cannot be used for a compiled volume",
            field=field,
        )
    return category


def expected_child_category(volume_category: Optional[str]) -> str:
    """Category a work must carry to be a legitimate child of the volume."""
    return canonical_name(volume_category)


def parse_filter(raw: Optional[str]) -> List[Category]:
    """Parse a category filter: "All", one category, or a comma-separated set.

    Returns an empty list when no category restriction applies.
    """
    if raw is None or not raw.strip() or raw.strip().lower() == "all":
        return []
    parts: Iterable[str] = (part for part in raw.split(",") if part.strip())
    categories: List[Category] = []
    for part in parts:
        category = parse_strict(part)
        if category not in categories:
            categories.append(category)
    return categories


def secondary_value(volume) -> Optional[str]:
    """Return the active secondary identifier of a volume as text."""
    rule = resolve(volume.category)
    if rule.secondary_field is SecondaryField.DEPARTMENT:
        return volume.department
    return str(volume.issue_number) if volume.issue_number is not None else None
