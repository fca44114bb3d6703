from __future__ import annotations

from uuid import UUID  # noqa: TCH003

from .common import ApiModel


class PrincipalRead(ApiModel):
    id: UUID
    name: str
    email: str
