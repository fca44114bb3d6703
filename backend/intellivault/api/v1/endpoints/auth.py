from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends

from intellivault.api.v1.schemas.auth import PrincipalRead
from intellivault.dependencies import get_current_user

if TYPE_CHECKING:
    from intellivault.core.schemas.auth import AuthUser

router = APIRouter(
    responses={
        401: {"description": "Unauthorized"},
    }
)


@router.get("/me", response_model=PrincipalRead)
async def read_current_user(current_user: AuthUser = Depends(get_current_user)):
    """Return the principal behind the bearer token."""
    return PrincipalRead.model_validate(current_user)
