from __future__ import annotations

from datetime import datetime  # noqa: TCH003
from typing import Any
from uuid import UUID  # noqa: TCH003

from pydantic import Field, field_serializer

from intellivault.core.models.document import DocumentNode  # noqa: TCH001

from .common import ApiModel
from .tag import TagRefRead  # noqa: TCH001


class NoteCreate(ApiModel):
    title: str | None = Field(default=None, description="Defaults to the template title or 'Untitled'")
    content: dict[str, Any] | None = Field(default=None, description="Editor document JSON")
    template: str | None = Field(default=None, description="blank, meeting, journal or todo")


class NoteUpdate(ApiModel):
    title: str | None = None
    content: dict[str, Any] | None = None
    expected_version: int | None = Field(
        default=None,
        ge=1,
        description="Reject the write with 409 unless the note is still at this version",
    )


class NoteRead(ApiModel):
    id: UUID
    title: str
    content: DocumentNode
    content_text: str
    version: int
    created_at: datetime
    updated_at: datetime

    @field_serializer("content")
    def serialize_content(self, content: DocumentNode) -> dict[str, Any]:
        return content.to_json()


class NoteSummaryRead(ApiModel):
    id: UUID
    title: str
    content_text: str
    created_at: datetime
    updated_at: datetime
    tags: list[TagRefRead] = Field(default_factory=list)
