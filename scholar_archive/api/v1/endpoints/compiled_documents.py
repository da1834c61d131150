from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from scholar_archive.core.database import get_async_session as get_session
from scholar_archive.schemas.documents import AddWorksRequest, VolumeCreate, VolumeUpdate
from scholar_archive.schemas.responses import ApiResponse
from scholar_archive.services.child_resolver import ChildResolver
from scholar_archive.services.volume_service import VolumeService
from scholar_archive.utils.logging import get_logger
from scholar_archive.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


async def get_volume_service(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> VolumeService:
    return VolumeService(db_session)


async def get_child_resolver(
    db_session: Annotated[AsyncSession, Depends(get_session)]
) -> ChildResolver:
    return ChildResolver(db_session)


@router.post(
    "/",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a compiled document",
    operation_id="create_compiled_document",
)
async def create_compiled_document(
    request: Request,
    payload: VolumeCreate,
    volume_service: Annotated[VolumeService, Depends(get_volume_service)] = None,
) -> ApiResponse:
    volume = await volume_service.create_volume(payload)

    return create_api_response(
        data=volume,
        message=f"Compiled document {volume.id} created",
        request=request,
    )


@router.get(
    "/{volume_id}",
    response_model=ApiResponse,
    summary="Get compiled document details",
    operation_id="get_compiled_document",
)
async def get_compiled_document(
    request: Request,
    volume_id: int,
    volume_service: Annotated[VolumeService, Depends(get_volume_service)] = None,
) -> ApiResponse:
    volume = await volume_service.get_volume(volume_id)

    return create_api_response(
        data=volume,
        message="Compiled document retrieved successfully",
        request=request,
    )


@router.put(
    "/{volume_id}",
    response_model=ApiResponse,
    summary="Update a compiled document",
    operation_id="update_compiled_document",
)
async def update_compiled_document(
    request: Request,
    volume_id: int,
    payload: VolumeUpdate,
    volume_service: Annotated[VolumeService, Depends(get_volume_service)] = None,
) -> ApiResponse:
    volume = await volume_service.update_volume(volume_id, payload)

    return create_api_response(
        data=volume,
        message="Compiled document updated successfully",
        request=request,
    )


@router.post(
    "/{volume_id}/documents",
    response_model=ApiResponse,
    summary="Add documents to a compiled document",
    operation_id="add_documents_to_compiled_document",
)
async def add_documents(
    request: Request,
    volume_id: int,
    payload: AddWorksRequest,
    volume_service: Annotated[VolumeService, Depends(get_volume_service)] = None,
) -> ApiResponse:
    volume = await volume_service.add_works(volume_id, payload.document_ids)

    return create_api_response(
        data=volume,
        message="Documents added successfully",
        request=request,
    )


@router.delete(
    "/{volume_id}/documents/{work_id}",
    response_model=ApiResponse,
    summary="Remove a document from a compiled document",
    operation_id="remove_document_from_compiled_document",
)
async def remove_document(
    request: Request,
    volume_id: int,
    work_id: int,
    volume_service: Annotated[VolumeService, Depends(get_volume_service)] = None,
) -> ApiResponse:
    volume = await volume_service.remove_work(volume_id, work_id)

    return create_api_response(
        data=volume,
        message=f"Document {work_id} removed",
        request=request,
    )


@router.get(
    "/{volume_id}/children",
    response_model=ApiResponse,
    summary="List the documents in a compiled document",
    operation_id="list_compiled_document_children",
)
async def list_children(
    request: Request,
    volume_id: int,
    child_resolver: Annotated[ChildResolver, Depends(get_child_resolver)] = None,
) -> ApiResponse:
    """Children come from the join table, newest publication first."""
    children = await child_resolver.list_children(volume_id)

    return create_api_response(
        data=children,
        message=f"Retrieved {len(children)} documents",
        request=request,
    )
