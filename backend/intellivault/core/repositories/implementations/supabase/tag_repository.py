from __future__ import annotations

from typing import TYPE_CHECKING, Any

from postgrest.exceptions import APIError

from intellivault.core.exceptions import ConflictError
from intellivault.core.models.tag import Tag, normalize_tag_title
from intellivault.core.repositories.tag_repository import TagRepository
from intellivault.utils.logging import get_logger

from .base import UNIQUE_VIOLATION, SupabaseRepository

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


class SupabaseTagRepository(SupabaseRepository, TagRepository):
    """Supabase implementation of the TagRepository.

    Uniqueness is guarded by the ``tags_user_normalized_title_key`` unique index
    on ``(user_id, normalized_title)``; a violation surfaces as SQLSTATE 23505
    from the INSERT/UPDATE itself.
    """

    TABLE_NAME = "tags"

    async def create(self, tag: Tag) -> Tag:
        row = self._tag_to_row(tag)
        try:
            resp = await self._run(
                lambda: self._client.table(self.TABLE_NAME)
                .insert(row)
                .execute()
            )
        except APIError as err:
            if self._is_violation(err, UNIQUE_VIOLATION):
                raise ConflictError.duplicate_tag(tag.title) from err
            logger.error("Tag insert failed", extra={"tag_id": str(tag.id), "error": str(err)})
            raise
        data = self._first(resp.data)
        return self._row_to_tag(data) if data else tag

    async def get(self, tag_id: UUID, *, user_id: UUID) -> Tag | None:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("*")
            .eq("id", str(tag_id))
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        row = self._first(resp.data)
        return self._row_to_tag(row) if row else None

    async def get_by_title(self, title: str, *, user_id: UUID) -> Tag | None:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("*")
            .eq("user_id", str(user_id))
            .eq("normalized_title", normalize_tag_title(title))
            .limit(1)
            .execute()
        )
        row = self._first(resp.data)
        return self._row_to_tag(row) if row else None

    async def list(self, *, user_id: UUID) -> Sequence[Tag]:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("*")
            .eq("user_id", str(user_id))
            .execute()
        )
        return [self._row_to_tag(r) for r in (resp.data or [])]

    async def update_fields(
        self,
        tag_id: UUID,
        *,
        user_id: UUID,
        changes: dict[str, Any],
    ) -> Tag | None:
        payload: dict[str, Any] = {k: v for k, v in changes.items() if k in {"title", "color"}}
        if "title" in payload:
            payload["normalized_title"] = normalize_tag_title(payload["title"])
        payload["updated_at"] = self._timestamp()

        try:
            resp = await self._run(
                lambda: self._client.table(self.TABLE_NAME)
                .update(payload)
                .eq("id", str(tag_id))
                .eq("user_id", str(user_id))
                .execute()
            )
        except APIError as err:
            if self._is_violation(err, UNIQUE_VIOLATION):
                raise ConflictError.duplicate_tag(changes.get("title", "")) from err
            logger.error("Tag update failed", extra={"tag_id": str(tag_id), "error": str(err)})
            raise
        row = self._first(resp.data)
        return self._row_to_tag(row) if row else None

    async def delete(self, tag_id: UUID, *, user_id: UUID) -> bool:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .delete()
            .eq("id", str(tag_id))
            .eq("user_id", str(user_id))
            .execute()
        )
        return len(resp.data or []) > 0

    @staticmethod
    def _row_to_tag(row: dict[str, Any]) -> Tag:
        normalized = dict(row)
        normalized.pop("normalized_title", None)
        return Tag.model_validate(normalized)

    @classmethod
    def _tag_to_row(cls, tag: Tag) -> dict[str, Any]:
        return {
            "id": str(tag.id),
            "user_id": str(tag.user_id),
            "title": tag.title,
            "normalized_title": tag.normalized_title,
            "color": tag.color,
            "created_at": cls._timestamp(tag.created_at),
            "updated_at": cls._timestamp(tag.updated_at),
        }
