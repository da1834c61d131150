"""Unioned catalog query: filters, SQL expressions and the query builder."""

from scholar_archive.services.listing.filters import (
    DocTypes,
    ListingQuery,
    SortField,
    SortOrder,
    build_listing_query,
)
from scholar_archive.services.listing.query_builder import CatalogQueryBuilder

__all__ = [
    "CatalogQueryBuilder",
    "DocTypes",
    "ListingQuery",
    "SortField",
    "SortOrder",
    "build_listing_query",
]
