from __future__ import annotations

from typing import TYPE_CHECKING, Any

from intellivault.core.exceptions import ConflictError
from intellivault.core.models.note import Note
from intellivault.core.repositories.note_repository import NoteRepository
from intellivault.core.schemas.listing import NoteSort, NoteSummary

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from .store import MemoryStore


_MUTABLE_FIELDS = frozenset({"title", "content", "content_text"})


def _sort_key(sort: NoteSort) -> Callable[[Note], Any]:
    if sort is NoteSort.TITLE:
        return lambda n: (n.title.lower(), str(n.id))
    if sort is NoteSort.CREATED_AT:
        return lambda n: (n.created_at, str(n.id))
    return lambda n: (n.updated_at, str(n.id))


class MemoryNoteRepository(NoteRepository):
    """In-process implementation of the NoteRepository.

    Entities are copied on the way in and out so callers never hold a
    reference into the shared tables.
    """

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def create(self, note: Note) -> Note:
        async with self._store.lock:
            now = self._store.now()
            stored = note.model_copy(update={"created_at": now, "updated_at": now}, deep=True)
            self._store.notes[stored.id] = stored
        return stored.model_copy(deep=True)

    async def get(self, note_id: UUID, *, user_id: UUID) -> Note | None:
        note = self._owned(note_id, user_id)
        return note.model_copy(deep=True) if note else None

    async def list_summaries(
        self,
        *,
        user_id: UUID,
        note_ids: Sequence[UUID] | None = None,
        sort: NoteSort,
        descending: bool,
        limit: int | None = None,
    ) -> Sequence[NoteSummary]:
        notes = [n for n in self._store.notes.values() if n.user_id == user_id]
        if note_ids is not None:
            wanted = set(note_ids)
            notes = [n for n in notes if n.id in wanted]
        notes.sort(key=_sort_key(sort), reverse=descending)
        if limit is not None:
            notes = notes[:limit]
        return [
            NoteSummary(
                id=n.id,
                title=n.title,
                content_text=n.content_text,
                created_at=n.created_at,
                updated_at=n.updated_at,
            )
            for n in notes
        ]

    async def update_fields(
        self,
        note_id: UUID,
        *,
        user_id: UUID,
        changes: dict[str, Any],
        expected_version: int,
    ) -> Note | None:
        async with self._store.lock:
            current = self._owned(note_id, user_id)
            if current is None:
                return None
            if current.version != expected_version:
                raise ConflictError.stale_version(note_id, current.version)

            data = current.model_dump()
            data.update({k: v for k, v in changes.items() if k in _MUTABLE_FIELDS})
            data["version"] = current.version + 1
            data["updated_at"] = self._store.now()
            updated = Note.model_validate(data)
            self._store.notes[note_id] = updated
        return updated.model_copy(deep=True)

    async def delete(self, note_id: UUID, *, user_id: UUID) -> bool:
        async with self._store.lock:
            if self._owned(note_id, user_id) is None:
                return False
            del self._store.notes[note_id]
            self._store.unlink_note(note_id)
        return True

    async def ping(self) -> None:
        return None

    def _owned(self, note_id: UUID, user_id: UUID) -> Note | None:
        note = self._store.notes.get(note_id)
        if note is None or note.user_id != user_id:
            return None
        return note
