from __future__ import annotations

from typing import TYPE_CHECKING, Any

from intellivault.core.exceptions import ConflictError
from intellivault.core.models.tag import Tag, normalize_tag_title
from intellivault.core.repositories.tag_repository import TagRepository

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from .store import MemoryStore


class MemoryTagRepository(TagRepository):
    """In-process implementation of the TagRepository."""

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def create(self, tag: Tag) -> Tag:
        async with self._store.lock:
            if self._find_title(tag.user_id, tag.normalized_title) is not None:
                raise ConflictError.duplicate_tag(tag.title)
            now = self._store.now()
            stored = tag.model_copy(update={"created_at": now, "updated_at": now}, deep=True)
            self._store.tags[stored.id] = stored
        return stored.model_copy(deep=True)

    async def get(self, tag_id: UUID, *, user_id: UUID) -> Tag | None:
        tag = self._owned(tag_id, user_id)
        return tag.model_copy(deep=True) if tag else None

    async def get_by_title(self, title: str, *, user_id: UUID) -> Tag | None:
        tag = self._find_title(user_id, normalize_tag_title(title))
        return tag.model_copy(deep=True) if tag else None

    async def list(self, *, user_id: UUID) -> Sequence[Tag]:
        return [t.model_copy(deep=True) for t in self._store.tags.values() if t.user_id == user_id]

    async def update_fields(
        self,
        tag_id: UUID,
        *,
        user_id: UUID,
        changes: dict[str, Any],
    ) -> Tag | None:
        async with self._store.lock:
            current = self._owned(tag_id, user_id)
            if current is None:
                return None
            if "title" in changes:
                clash = self._find_title(user_id, normalize_tag_title(changes["title"]))
                if clash is not None and clash.id != tag_id:
                    raise ConflictError.duplicate_tag(changes["title"])

            data = current.model_dump()
            data.update({k: v for k, v in changes.items() if k in {"title", "color"}})
            data["updated_at"] = self._store.now()
            updated = Tag.model_validate(data)
            self._store.tags[tag_id] = updated
        return updated.model_copy(deep=True)

    async def delete(self, tag_id: UUID, *, user_id: UUID) -> bool:
        async with self._store.lock:
            if self._owned(tag_id, user_id) is None:
                return False
            del self._store.tags[tag_id]
            self._store.unlink_tag(tag_id)
        return True

    def _owned(self, tag_id: UUID, user_id: UUID) -> Tag | None:
        tag = self._store.tags.get(tag_id)
        if tag is None or tag.user_id != user_id:
            return None
        return tag

    def _find_title(self, user_id: UUID, normalized: str) -> Tag | None:
        for tag in self._store.tags.values():
            if tag.user_id == user_id and tag.normalized_title == normalized:
                return tag
        return None
