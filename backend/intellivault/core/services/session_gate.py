from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from intellivault.core.schemas.auth import AuthUser
from intellivault.db.base import create_request_supabase_client
from intellivault.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from supabase import Client

logger = get_logger(__name__)


class SessionGate(ABC):
    """Resolves a bearer token into the calling principal.

    Identity and session issuance live outside this service; the gate only
    consumes their output.
    """

    @abstractmethod
    async def resolve(self, token: str) -> AuthUser | None:  # pragma: no cover - interface only
        """Return the principal for ``token`` or None if it is not valid."""


class SupabaseSessionGate(SessionGate):
    """Validates Supabase-issued JWTs via the auth API."""

    def __init__(self, client_factory: Callable[[str | None], Client] = create_request_supabase_client) -> None:
        self._client_factory = client_factory

    async def resolve(self, token: str) -> AuthUser | None:
        supabase = self._client_factory(token)
        try:
            resp = await asyncio.to_thread(lambda: supabase.auth.get_user(token))
        except Exception as err:
            error_msg = str(err).lower()
            logger.warning(
                "JWT validation failed",
                extra={
                    "error_type": type(err).__name__,
                    "error_summary": error_msg[:100] if error_msg else "Unknown error",
                    "jwt_length": len(token),
                },
            )
            return None

        user = getattr(resp, "user", None)
        user_id = getattr(user, "id", None)
        if not user_id:
            logger.warning("JWT resolved without a user id")
            return None
        return principal_from_user(user)


def principal_from_user(user: Any) -> AuthUser:
    """Map a Supabase auth user onto the principal used by the core."""
    email = getattr(user, "email", None) or ""
    metadata = getattr(user, "user_metadata", None) or {}
    name = metadata.get("name") or metadata.get("full_name") or email.split("@")[0]
    return AuthUser(
        id=user.id,
        name=name,
        email=email,
        role=getattr(user, "role", None),
    )
