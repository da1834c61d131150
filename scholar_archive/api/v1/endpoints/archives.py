import asyncio
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.core.config import settings
from scholar_archive.core.database import get_async_session as get_session
from scholar_archive.schemas.documents import ArchiveRequest
from scholar_archive.schemas.responses import ApiResponse
from scholar_archive.services.archival_service import ArchivalService
from scholar_archive.utils.logging import get_logger
from scholar_archive.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()

Kind = Literal["compiled", "document"]


async def get_archival_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> ArchivalService:
    return ArchivalService(db_session)


@router.get(
    "/",
    response_model=ApiResponse,
    summary="List archived documents",
    operation_id="list_archived_documents",
)
async def list_archived(
    request: Request,
    page: int = Query(1),
    size: int = Query(settings.default_page_size),
    archival_service: Annotated[ArchivalService, Depends(get_archival_service)] = None,
) -> ApiResponse:
    result = await archival_service.list_archived(page=page, page_size=size)

    return create_api_response(
        data=result,
        message=result.error or "Archived documents retrieved successfully",
        status=result.error is None,
        request=request,
    )


@router.post(
    "/",
    response_model=ApiResponse,
    summary="Archive a compiled document or a document",
    operation_id="archive_document",
)
async def archive(
    request: Request,
    payload: ArchiveRequest,
    archival_service: Annotated[ArchivalService, Depends(get_archival_service)] = None,
) -> ApiResponse:
    """Archiving a compiled document also archives every document it contains."""
    if payload.kind == "compiled":
        operation = archival_service.archive(payload.id)
    else:
        operation = archival_service.archive_work(payload.id)

    result = await asyncio.wait_for(operation, timeout=settings.request_timeout_seconds)

    return create_api_response(
        data=result,
        message=f"Archived {payload.kind} {payload.id}",
        request=request,
    )


@router.delete(
    "/{target_id}",
    response_model=ApiResponse,
    summary="Restore an archived compiled document or document",
    operation_id="restore_document",
)
async def restore(
    request: Request,
    target_id: int,
    kind: Kind = Query("compiled"),
    archival_service: Annotated[ArchivalService, Depends(get_archival_service)] = None,
) -> ApiResponse:
    if kind == "compiled":
        result = await archival_service.restore(target_id)
    else:
        result = await archival_service.restore_work(target_id)

    return create_api_response(
        data=result,
        message=f"Restored {kind} {target_id}",
        request=request,
    )


@router.delete(
    "/{target_id}/hard-delete",
    response_model=ApiResponse,
    summary="Permanently delete an archived compiled document or document",
    operation_id="hard_delete_document",
)
async def hard_delete(
    request: Request,
    target_id: int,
    kind: Kind = Query("compiled"),
    archival_service: Annotated[ArchivalService, Depends(get_archival_service)] = None,
) -> ApiResponse:
    if kind == "compiled":
        result = await archival_service.hard_delete_volume(target_id)
    else:
        result = await archival_service.hard_delete_work(target_id)

    return create_api_response(
        data=result,
        message=f"Permanently deleted {kind} {target_id}",
        request=request,
    )
