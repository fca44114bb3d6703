from __future__ import annotations

from typing import TYPE_CHECKING

from intellivault.core.exceptions import NotFoundError
from intellivault.core.models.tag import NoteTag, Tag
from intellivault.core.repositories.note_tag_repository import NoteTagRepository

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from .store import MemoryStore


class MemoryNoteTagRepository(NoteTagRepository):
    """In-process implementation of the NoteTagRepository."""

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def attach(self, *, user_id: UUID, note_id: UUID, tag_id: UUID) -> bool:
        async with self._store.lock:
            note = self._store.notes.get(note_id)
            if note is None or note.user_id != user_id:
                raise NotFoundError("note", note_id)
            tag = self._store.tags.get(tag_id)
            if tag is None or tag.user_id != user_id:
                raise NotFoundError("tag", tag_id)

            key = (note_id, tag_id)
            if key in self._store.note_tags:
                return False
            self._store.note_tags[key] = NoteTag(note_id=note_id, tag_id=tag_id, user_id=user_id)
        return True

    async def detach(self, *, user_id: UUID, note_id: UUID, tag_id: UUID) -> bool:
        async with self._store.lock:
            link = self._store.note_tags.get((note_id, tag_id))
            if link is None or link.user_id != user_id:
                return False
            del self._store.note_tags[(note_id, tag_id)]
        return True

    async def tags_for_notes(self, note_ids: Sequence[UUID]) -> dict[UUID, list[Tag]]:
        wanted = set(note_ids)
        result: dict[UUID, list[Tag]] = {}
        for (note_id, tag_id) in self._store.note_tags:
            if note_id not in wanted:
                continue
            tag = self._store.tags.get(tag_id)
            if tag is not None:
                result.setdefault(note_id, []).append(tag.model_copy(deep=True))
        return result

    async def note_ids_for_tag(self, tag_id: UUID) -> set[UUID]:
        return {note_id for (note_id, linked_tag) in self._store.note_tags if linked_tag == tag_id}
