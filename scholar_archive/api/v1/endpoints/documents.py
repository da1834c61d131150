import asyncio
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.core.config import settings
from scholar_archive.core.database import get_async_session as get_session
from scholar_archive.schemas.documents import DocumentFilter
from scholar_archive.schemas.responses import ApiResponse
from scholar_archive.services.category_counter import CategoryCounter
from scholar_archive.services.listing_service import ListingService
from scholar_archive.utils.logging import get_logger
from scholar_archive.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


async def get_listing_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> ListingService:
    return ListingService(db_session)


async def get_category_counter(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> CategoryCounter:
    return CategoryCounter(db_session)


@router.get(
    "/",
    response_model=ApiResponse,
    summary="List documents and compiled documents",
    operation_id="list_documents",
)
async def list_documents(
    request: Request,
    page: int = Query(1, description="1-based page number"),
    size: int = Query(settings.default_page_size, description="Items per page"),
    category: Optional[str] = Query(None, description="'All', a category, or a comma-separated set"),
    search: Optional[str] = Query(None),
    keyword: Optional[str] = Query(None),
    sort: str = Query("id", description="id, title, publicationDate, category, createdAt"),
    order: str = Query("ASC"),
    doc_types: str = Query("all", alias="docTypes", description="all, compiled or single"),
    listing_service: Annotated[ListingService, Depends(get_listing_service)] = None,
) -> ApiResponse:
    """List works and volumes as one paginated sequence."""
    filters = DocumentFilter(
        page=page,
        page_size=size,
        category=category,
        search=search,
        keyword=keyword,
        sort_field=sort,
        sort_order=order,
        doc_types=doc_types,
    )
    result = await asyncio.wait_for(
        listing_service.list_documents(filters),
        timeout=settings.request_timeout_seconds,
    )

    message = "Documents retrieved successfully"
    if result.error:
        message = result.error

    return create_api_response(
        data=result,
        message=message,
        status=result.error is None,
        request=request,
    )


@router.get(
    "/count-by-category",
    response_model=ApiResponse,
    summary="Count documents per category",
    operation_id="count_documents_by_category",
)
async def count_by_category(
    request: Request,
    counter: Annotated[CategoryCounter, Depends(get_category_counter)] = None,
) -> ApiResponse:
    """Standalone documents plus compiled documents per canonical category."""
    counts = await counter.count_by_category()

    return create_api_response(
        data=counts,
        message="Category counts retrieved successfully",
        request=request,
    )
