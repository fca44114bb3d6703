from __future__ import annotations

from typing import TYPE_CHECKING, Any

from intellivault.core.exceptions import ConflictError
from intellivault.core.models.note import Note
from intellivault.core.repositories.note_repository import NoteRepository
from intellivault.core.schemas.listing import NoteSort, NoteSummary
from intellivault.utils.logging import get_logger

from .base import SupabaseRepository

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


SUMMARY_COLUMNS = "id,title,content_text,created_at,updated_at"

# Generated column lower(title) with "C" collation, see schema.sql. The memory
# backend sorts by the same key.
ORDER_COLUMNS = {NoteSort.TITLE: "title_key"}


class SupabaseNoteRepository(SupabaseRepository, NoteRepository):
    """Supabase implementation of the NoteRepository.

    Assumes the ``notes`` table from ``backend/supabase/schema.sql``. Note/tag
    links live in ``note_tags`` with ``ON DELETE CASCADE`` foreign keys, so
    deleting a note here removes its links in the same statement.
    """

    TABLE_NAME = "notes"

    async def create(self, note: Note) -> Note:
        row = self._note_to_row(note)
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .insert(row)
            .execute()
        )
        data = self._first(resp.data)
        return self._row_to_note(data) if data else note

    async def get(self, note_id: UUID, *, user_id: UUID) -> Note | None:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("*")
            .eq("id", str(note_id))
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        row = self._first(resp.data)
        return self._row_to_note(row) if row else None

    async def list_summaries(
        self,
        *,
        user_id: UUID,
        note_ids: Sequence[UUID] | None = None,
        sort: NoteSort,
        descending: bool,
        limit: int | None = None,
    ) -> Sequence[NoteSummary]:
        if note_ids is not None and not note_ids:
            return []

        def _query():
            q = (
                self._client.table(self.TABLE_NAME)
                .select(SUMMARY_COLUMNS)
                .eq("user_id", str(user_id))
            )
            if note_ids is not None:
                q = q.in_("id", [str(i) for i in note_ids])
            column = ORDER_COLUMNS.get(sort, sort.value)
            q = q.order(column, desc=descending).order("id", desc=descending)
            if limit is not None:
                q = q.limit(limit)
            return q.execute()

        resp = await self._run(_query)
        return [NoteSummary.model_validate(r) for r in (resp.data or [])]

    async def update_fields(
        self,
        note_id: UUID,
        *,
        user_id: UUID,
        changes: dict[str, Any],
        expected_version: int,
    ) -> Note | None:
        payload: dict[str, Any] = {
            k: v for k, v in changes.items() if k in {"title", "content", "content_text"}
        }
        payload["version"] = expected_version + 1
        payload["updated_at"] = self._timestamp()

        # The version filter turns the UPDATE into a compare-and-swap.
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .update(payload)
            .eq("id", str(note_id))
            .eq("user_id", str(user_id))
            .eq("version", expected_version)
            .execute()
        )
        row = self._first(resp.data)
        if row:
            return self._row_to_note(row)

        current = await self.get(note_id, user_id=user_id)
        if current is None:
            return None
        logger.info(
            "Rejected stale note update",
            extra={"note_id": str(note_id), "expected": expected_version, "current": current.version},
        )
        raise ConflictError.stale_version(note_id, current.version)

    async def delete(self, note_id: UUID, *, user_id: UUID) -> bool:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .delete()
            .eq("id", str(note_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        return len(resp.data or []) > 0

    async def ping(self) -> None:
        await self._run(lambda: self._client.table(self.TABLE_NAME).select("id").limit(1).execute())

    @staticmethod
    def _row_to_note(row: dict[str, Any]) -> Note:
        normalized = dict(row)
        normalized.pop("title_key", None)
        if not normalized.get("content"):
            normalized.pop("content", None)
        return Note.model_validate(normalized)

    @classmethod
    def _note_to_row(cls, note: Note) -> dict[str, Any]:
        return {
            "id": str(note.id),
            "user_id": str(note.user_id),
            "title": note.title,
            "content": note.content.to_json(),
            "content_text": note.content_text,
            "version": note.version,
            "created_at": cls._timestamp(note.created_at),
            "updated_at": cls._timestamp(note.updated_at),
        }
