from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from intellivault.config import settings
from intellivault.core.repositories.implementations.supabase.note_repository import (
    SupabaseNoteRepository,
)
from intellivault.db.base import get_supabase_admin_client
from intellivault.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

SERVICE_NAME = "intellivault-api"
SERVICE_VERSION = "0.1.0"


@router.get("/")
async def health_check():
    """Health check endpoint."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
        }
    )


@router.get("/ready")
async def readiness_check():
    """Readiness check endpoint; probes the configured storage backend."""
    if settings.storage_backend == "memory":
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "ready", "database": "memory", "api_prefix": settings.api_prefix},
        )

    db_status = "connected"
    status_code = status.HTTP_200_OK
    try:
        await SupabaseNoteRepository(get_supabase_admin_client()).ping()
    except Exception as e:
        logger.error("Readiness probe failed", extra={"error_type": type(e).__name__})
        db_status = f"error: {str(e)}"
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if status_code == status.HTTP_200_OK else "degraded",
            "database": db_status,
            "api_prefix": settings.api_prefix,
        }
    )
