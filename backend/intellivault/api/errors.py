from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import status
from fastapi.responses import JSONResponse

from intellivault.core.exceptions import (
    ConflictError,
    IntelliVaultError,
    NotFoundError,
    TransientSyncError,
    UnauthenticatedError,
    ValidationFailure,
)
from intellivault.utils.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = get_logger(__name__)

_STATUS_BY_ERROR: dict[type[IntelliVaultError], int] = {
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    ValidationFailure: 422,
    TransientSyncError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: IntelliVaultError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


async def handle_domain_error(request: Request, exc: IntelliVaultError) -> JSONResponse:
    status_code = status_for(exc)
    logger.debug(
        "Request rejected",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "code": exc.code.name,
        },
    )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Map the domain error taxonomy onto HTTP responses."""
    app.add_exception_handler(IntelliVaultError, handle_domain_error)
