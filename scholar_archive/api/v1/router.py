from fastapi import APIRouter

from scholar_archive.api.v1.endpoints import archives, compiled_documents, documents

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(
    compiled_documents.router, prefix="/compiled-documents", tags=["Compiled Documents"]
)
api_router.include_router(archives.router, prefix="/archives", tags=["Archives"])

__all__ = ["api_router"]
