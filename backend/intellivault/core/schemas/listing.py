from __future__ import annotations

from datetime import datetime  # noqa: TCH003
from enum import Enum
from uuid import UUID  # noqa: TCH003

from pydantic import Field

from intellivault.core.models.base import AppBaseModel


class NoteSort(str, Enum):
    """Column a note listing is ordered by."""

    UPDATED_AT = "updated_at"
    CREATED_AT = "created_at"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ListingQuery(AppBaseModel):
    """Caller intent for a note listing."""

    tag_id: UUID | None = None
    sort: NoteSort = NoteSort.UPDATED_AT
    order: SortOrder = SortOrder.DESC
    limit: int | None = Field(default=None, ge=1, le=500)

    @property
    def descending(self) -> bool:
        return self.order is SortOrder.DESC


class TagRef(AppBaseModel):
    """Tag fields embedded in a note listing."""

    id: UUID
    title: str
    color: str


class NoteSummary(AppBaseModel):
    """List projection of a note; the full document is intentionally absent."""

    id: UUID
    title: str
    content_text: str
    created_at: datetime
    updated_at: datetime


class NoteWithTags(NoteSummary):
    tags: list[TagRef] = Field(default_factory=list)
