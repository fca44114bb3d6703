from __future__ import annotations

from typing import TYPE_CHECKING, Any

from intellivault.core.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationFailure,
    require_principal,
)
from intellivault.core.models.document import (
    DocumentLimits,
    empty_document,
    parse_document,
    project_text,
)
from intellivault.core.models.note import DEFAULT_NOTE_TITLE, Note
from intellivault.core.models.templates import get_template
from intellivault.core.schemas.listing import ListingQuery
from intellivault.utils.ids import parse_uuid
from intellivault.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from intellivault.core.repositories.note_repository import NoteRepository
    from intellivault.core.schemas.listing import NoteSummary

logger = get_logger(__name__)


class NoteService:
    """Service for managing notes with owner-scoped access.

    All note writes go through here: ``content_text`` is always recomputed
    from the exact document handed to storage.
    """

    def __init__(self, repo: NoteRepository, *, limits: DocumentLimits, max_title_length: int = 255) -> None:
        self._repo = repo
        self._limits = limits
        self._max_title_length = max_title_length

    async def create_note(self, create_dto: Any, user_id: UUID) -> Note:
        """Create a note from optional title, content or named template."""
        require_principal(user_id)
        raw_title = getattr(create_dto, "title", None)
        raw_content = getattr(create_dto, "content", None)
        template_name = getattr(create_dto, "template", None)

        if template_name is not None and raw_content is not None:
            raise ValidationFailure("Provide either content or a template, not both", field="template")

        default_title = DEFAULT_NOTE_TITLE
        if template_name is not None:
            template = get_template(template_name)
            if template is None:
                raise ValidationFailure(f"Unknown template '{template_name}'", field="template")
            content = template.build()
            default_title = template.title
        elif raw_content is not None:
            content = parse_document(raw_content, self._limits)
        else:
            content = empty_document()

        title = self._clean_title(raw_title) if raw_title is not None else default_title
        note = await self._repo.create(Note(user_id=user_id, title=title, content=content))
        logger.info("Note created", extra={"note_id": str(note.id), "user_id": str(user_id)})
        return note

    async def get_note(self, note_id: str | UUID, user_id: UUID) -> Note:
        """Return an owned note; absent and foreign notes both raise NotFoundError."""
        require_principal(user_id)
        note_uuid = parse_uuid(note_id)
        note = await self._repo.get(note_uuid, user_id=user_id) if note_uuid else None
        if note is None:
            logger.debug("Note lookup missed", extra={"note_id": str(note_id), "user_id": str(user_id)})
            raise NotFoundError("note", note_id)
        return note

    async def list_notes(
        self,
        user_id: UUID,
        query: ListingQuery | None = None,
        *,
        note_ids: Iterable[UUID] | None = None,
    ) -> Sequence[NoteSummary]:
        """List projections of the user's notes, ordered per ``query``."""
        require_principal(user_id)
        query = query or ListingQuery()
        return await self._repo.list_summaries(
            user_id=user_id,
            note_ids=list(note_ids) if note_ids is not None else None,
            sort=query.sort,
            descending=query.descending,
            limit=query.limit,
        )

    async def update_note(self, note_id: str | UUID, update_dto: Any, user_id: UUID) -> Note:
        """Apply a partial update of title and/or content.

        ``expected_version`` in the patch pins the write to the version the
        caller last saw; without it the write is pinned to the version read
        here, so two overlapping writers still cannot interleave.
        """
        existing = await self.get_note(note_id, user_id)

        raw_changes = update_dto.model_dump(exclude_unset=True)
        expected_version = raw_changes.pop("expected_version", None)
        if expected_version is not None and expected_version != existing.version:
            raise ConflictError.stale_version(existing.id, existing.version)

        changes: dict[str, Any] = {}
        if "title" in raw_changes:
            changes["title"] = self._clean_title(raw_changes["title"] or "")
        if "content" in raw_changes:
            source = raw_changes["content"]
            if source is None:
                raise ValidationFailure("Content cannot be null", field="content")
            document = parse_document(source, self._limits)
            changes["content"] = document.to_json()
            changes["content_text"] = project_text(document)

        if not changes:
            return existing

        updated = await self._repo.update_fields(
            existing.id,
            user_id=user_id,
            changes=changes,
            expected_version=existing.version,
        )
        if updated is None:
            # Deleted between the read above and the write.
            raise NotFoundError("note", note_id)
        logger.info(
            "Note updated",
            extra={
                "note_id": str(updated.id),
                "user_id": str(user_id),
                "version": updated.version,
                "fields": sorted(k for k in changes if k != "content_text"),
            },
        )
        return updated

    async def delete_note(self, note_id: str | UUID, user_id: UUID) -> None:
        """Delete an owned note and its tag links; the tags themselves stay."""
        require_principal(user_id)
        note_uuid = parse_uuid(note_id)
        deleted = await self._repo.delete(note_uuid, user_id=user_id) if note_uuid else False
        if not deleted:
            raise NotFoundError("note", note_id)
        logger.info("Note deleted", extra={"note_id": str(note_id), "user_id": str(user_id)})

    def _clean_title(self, title: str) -> str:
        cleaned = title.strip()
        if len(cleaned) > self._max_title_length:
            raise ValidationFailure(
                f"Title must be at most {self._max_title_length} characters", field="title"
            )
        return cleaned
