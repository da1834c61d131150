"""Exception handlers that turn application errors into RFC 7807 responses."""

import asyncio
from typing import Dict, Type

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from scholar_archive.core.exceptions import (
    AlreadyArchivedError,
    AppError,
    ConsistencyViolationError,
    NotArchivedError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from scholar_archive.utils.logging import get_logger
from scholar_archive.utils.responses import create_error_detail

LOGGER = get_logger(__name__)

# Checked in order; the first matching class wins
ERROR_STATUS: Dict[Type[AppError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyArchivedError: status.HTTP_409_CONFLICT,
    NotArchivedError: status.HTTP_409_CONFLICT,
    ConsistencyViolationError: status.HTTP_409_CONFLICT,
    StoreError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

ERROR_TITLES: Dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "Invalid Request",
    status.HTTP_404_NOT_FOUND: "Not Found",
    status.HTTP_409_CONFLICT: "Conflict",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "Internal Server Error",
    status.HTTP_504_GATEWAY_TIMEOUT: "Request Timeout",
}


def status_for_error(exc: AppError) -> int:
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def problem_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    error_detail = create_error_detail(
        title=ERROR_TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        request=request,
    )
    return JSONResponse(status_code=status_code, content=error_detail.model_dump(mode="json"))


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code >= 500:
        LOGGER.error(
            f"Request failed: {exc.message}",
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
        # Store internals are not exposed to callers
        detail = exc.message if isinstance(exc, StoreError) else "An unexpected error occurred"
    else:
        LOGGER.info(
            f"Request rejected: {exc.message}",
            extra={"path": request.url.path, "status": status_code},
        )
        detail = exc.message
    return problem_response(request, status_code, detail)


async def timeout_handler(request: Request, exc: asyncio.TimeoutError) -> JSONResponse:
    LOGGER.error("Request timed out", extra={"path": request.url.path})
    return problem_response(
        request,
        status.HTTP_504_GATEWAY_TIMEOUT,
        "The operation did not complete in time",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(asyncio.TimeoutError, timeout_handler)
