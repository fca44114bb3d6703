from __future__ import annotations

from uuid import UUID  # noqa: TCH003

from intellivault.core.models.base import AppBaseModel


class AuthUser(AppBaseModel):
    """Authenticated principal resolved by the session gate."""

    id: UUID
    name: str
    email: str
    role: str | None = None
