from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

from postgrest.exceptions import APIError

from intellivault.core.exceptions import NotFoundError
from intellivault.core.models.tag import Tag
from intellivault.core.repositories.note_tag_repository import NoteTagRepository
from intellivault.utils.logging import get_logger

from .base import FOREIGN_KEY_VIOLATION, SupabaseRepository
from .tag_repository import SupabaseTagRepository

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Sequence


class SupabaseNoteTagRepository(SupabaseRepository, NoteTagRepository):
    """Supabase implementation of the NoteTagRepository.

    ``note_tags`` carries ``user_id`` and references ``notes(id, user_id)`` and
    ``tags(id, user_id)`` through composite foreign keys, so the database
    itself rejects a link whose endpoints have different owners or have just
    been deleted (SQLSTATE 23503).
    """

    TABLE_NAME = "note_tags"

    async def attach(self, *, user_id: UUID, note_id: UUID, tag_id: UUID) -> bool:
        # Explicit reads give a precise NotFound; the FK check below is the guard.
        await self._require_owned("notes", "note", note_id, user_id)
        await self._require_owned("tags", "tag", tag_id, user_id)

        row = {"note_id": str(note_id), "tag_id": str(tag_id), "user_id": str(user_id)}
        try:
            resp = await self._run(
                lambda: self._client.table(self.TABLE_NAME)
                .upsert(row, on_conflict="note_id,tag_id", ignore_duplicates=True)
                .execute()
            )
        except APIError as err:
            if self._is_violation(err, FOREIGN_KEY_VIOLATION):
                raise NotFoundError("note", note_id) from err
            logger.error(
                "Tag attach failed",
                extra={"note_id": str(note_id), "tag_id": str(tag_id), "error": str(err)},
            )
            raise
        return bool(resp.data)

    async def detach(self, *, user_id: UUID, note_id: UUID, tag_id: UUID) -> bool:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .delete()
            .eq("note_id", str(note_id))
            .eq("tag_id", str(tag_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        return len(resp.data or []) > 0

    async def tags_for_notes(self, note_ids: Sequence[UUID]) -> dict[UUID, list[Tag]]:
        if not note_ids:
            return {}
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("note_id, tag:tags(*)")
            .in_("note_id", [str(i) for i in note_ids])
            .execute()
        )
        result: dict[UUID, list[Tag]] = {}
        for row in resp.data or []:
            tag_row: dict[str, Any] | None = row.get("tag")
            if not tag_row:
                continue
            result.setdefault(UUID(row["note_id"]), []).append(SupabaseTagRepository._row_to_tag(tag_row))
        return result

    async def note_ids_for_tag(self, tag_id: UUID) -> set[UUID]:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("note_id")
            .eq("tag_id", str(tag_id))
            .execute()
        )
        return {UUID(r["note_id"]) for r in (resp.data or [])}

    async def _require_owned(self, table: str, entity: str, entity_id: UUID, user_id: UUID) -> None:
        resp = await self._run(
            lambda: self._client.table(table)
            .select("id")
            .eq("id", str(entity_id))
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not resp.data:
            raise NotFoundError(entity, entity_id)
