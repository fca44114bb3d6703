from __future__ import annotations

from typing import TYPE_CHECKING

from intellivault.core.exceptions import require_principal
from intellivault.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from intellivault.core.models.tag import Tag
    from intellivault.core.repositories.note_tag_repository import NoteTagRepository
    from intellivault.core.services.note_service import NoteService
    from intellivault.core.services.tag_service import TagService

logger = get_logger(__name__)


def _by_title(tags: Sequence[Tag]) -> list[Tag]:
    return sorted(tags, key=lambda t: (t.normalized_title, str(t.id)))


class NoteTagService:
    """Maintains the note/tag relation for one owner at a time.

    Links are set-like: attaching twice and detaching something that is not
    attached are both no-ops.
    """

    def __init__(self, repo: NoteTagRepository, *, notes: NoteService, tags: TagService) -> None:
        self._repo = repo
        self._notes = notes
        self._tags = tags

    async def attach_tag(self, note_id: UUID, tag_id: UUID, user_id: UUID) -> bool:
        """Link an owned tag to an owned note. Returns False if already linked."""
        require_principal(user_id)
        created = await self._repo.attach(user_id=user_id, note_id=note_id, tag_id=tag_id)
        if created:
            logger.info(
                "Tag attached",
                extra={"note_id": str(note_id), "tag_id": str(tag_id), "user_id": str(user_id)},
            )
        return created

    async def attach_tag_by_title(
        self,
        note_id: UUID,
        user_id: UUID,
        *,
        title: str,
        color: str | None = None,
    ) -> Tag:
        """Attach the tag with this title, creating it first if the owner has none."""
        # Resolve the note first so a foreign note never causes a tag to be created.
        note = await self._notes.get_note(note_id, user_id)
        tag, _ = await self._tags.get_or_create_tag(user_id, title=title, color=color)
        await self.attach_tag(note.id, tag.id, user_id)
        return tag

    async def detach_tag(self, note_id: UUID, tag_id: UUID, user_id: UUID) -> bool:
        """Remove a link if present. Returns False when nothing was attached."""
        require_principal(user_id)
        removed = await self._repo.detach(user_id=user_id, note_id=note_id, tag_id=tag_id)
        if removed:
            logger.info(
                "Tag detached",
                extra={"note_id": str(note_id), "tag_id": str(tag_id), "user_id": str(user_id)},
            )
        return removed

    async def tags_for_note(self, note_id: UUID, user_id: UUID) -> list[Tag]:
        """Tags linked to an owned note, sorted by title."""
        note = await self._notes.get_note(note_id, user_id)
        linked = await self._repo.tags_for_notes([note.id])
        return _by_title(linked.get(note.id, []))

    async def notes_for_tag(self, tag_id: UUID, user_id: UUID) -> set[UUID]:
        """Ids of notes linked to an owned tag."""
        tag = await self._tags.get_tag(tag_id, user_id)
        return await self._repo.note_ids_for_tag(tag.id)

    async def tags_for_notes(self, note_ids: Sequence[UUID]) -> dict[UUID, list[Tag]]:
        """Batch read for listings.

        ``note_ids`` must come from an owner-scoped read; ownership of the
        linked tags is not re-checked.
        """
        linked = await self._repo.tags_for_notes(note_ids)
        return {note_id: _by_title(tags) for note_id, tags in linked.items()}
