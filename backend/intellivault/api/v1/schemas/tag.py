from __future__ import annotations

from datetime import datetime  # noqa: TCH003
from uuid import UUID  # noqa: TCH003

from pydantic import Field, model_validator

from .common import ApiModel


class TagCreate(ApiModel):
    title: str = Field(description="Tag title, unique per user ignoring case")
    color: str | None = Field(default=None, description="Palette name or #rrggbb")


class TagUpdate(ApiModel):
    title: str | None = None
    color: str | None = None


class TagAttach(ApiModel):
    """Attach an existing tag by id, or a tag by title (created if missing)."""

    tag_id: UUID | None = None
    title: str | None = None
    color: str | None = None

    @model_validator(mode="after")
    def validate_target(self) -> TagAttach:
        if (self.tag_id is None) == (self.title is None):
            raise ValueError("Provide exactly one of tagId or title")
        if self.tag_id is not None and self.color is not None:
            raise ValueError("color can only be given together with title")
        return self


class TagRefRead(ApiModel):
    id: UUID
    title: str
    color: str


class TagRead(TagRefRead):
    created_at: datetime
    updated_at: datetime
