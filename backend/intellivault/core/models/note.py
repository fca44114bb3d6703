from __future__ import annotations

from uuid import UUID, uuid4

from pydantic import Field, model_validator

from .base import TimestampedModel
from .document import DocumentNode, empty_document, project_text

DEFAULT_NOTE_TITLE = "Untitled"


class Note(TimestampedModel):
    """Note domain model.

    ``content`` is the canonical editable document. ``content_text`` is derived
    from it on every construction and cannot be set independently: whatever
    value a caller or a storage row supplies is replaced by the projection.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique note identifier")
    user_id: UUID = Field(description="Owner of the note")

    # Length limits are configurable and enforced by NoteService.
    title: str = Field(default=DEFAULT_NOTE_TITLE, description="Note title")
    content: DocumentNode = Field(default_factory=empty_document, description="Structured document")
    content_text: str = Field(default="", description="Plain-text projection of content")

    # Optimistic concurrency token; bumped by every successful mutation.
    version: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def derive_content_text(self) -> Note:
        self.content_text = project_text(self.content)
        return self
