from __future__ import annotations

from typing import TYPE_CHECKING

from intellivault.core.exceptions import require_principal
from intellivault.core.schemas.listing import ListingQuery, NoteWithTags, TagRef

if TYPE_CHECKING:
    from uuid import UUID

    from intellivault.core.services.note_service import NoteService
    from intellivault.core.services.note_tag_service import NoteTagService


class ListingService:
    """Read-only composition of notes with their tags.

    Keeps application logic (filtering, ordering, joining) outside the
    transport layer. Only the caller's notes are read, and tags are joined
    only onto those notes, so nothing foreign can appear even transitively.
    """

    def __init__(self, notes: NoteService, links: NoteTagService) -> None:
        self._notes = notes
        self._links = links

    async def list_notes_with_tags(
        self,
        user_id: UUID,
        query: ListingQuery | None = None,
    ) -> list[NoteWithTags]:
        require_principal(user_id)
        query = query or ListingQuery()

        note_ids: set[UUID] | None = None
        if query.tag_id is not None:
            note_ids = await self._links.notes_for_tag(query.tag_id, user_id)
            if not note_ids:
                return []

        summaries = await self._notes.list_notes(user_id, query, note_ids=note_ids)
        tags_by_note = await self._links.tags_for_notes([s.id for s in summaries])

        return [
            NoteWithTags(
                **summary.model_dump(),
                tags=[
                    TagRef(id=t.id, title=t.title, color=t.color)
                    for t in tags_by_note.get(summary.id, [])
                ],
            )
            for summary in summaries
        ]
