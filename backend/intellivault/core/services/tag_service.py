from __future__ import annotations

from typing import TYPE_CHECKING, Any

from intellivault.core.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationFailure,
    require_principal,
)
from intellivault.core.models.tag import Tag, clean_tag_title, normalize_color, normalize_tag_title
from intellivault.utils.ids import parse_uuid
from intellivault.utils.logging import get_logger

if TYPE_CHECKING:
    from uuid import UUID

    from intellivault.core.repositories.tag_repository import TagRepository

logger = get_logger(__name__)


class TagService:
    """Owner-scoped tag CRUD with per-owner, case-insensitive title uniqueness."""

    def __init__(
        self,
        repo: TagRepository,
        *,
        max_title_length: int = 50,
        default_color: str = "gray",
    ) -> None:
        self._repo = repo
        self._max_title_length = max_title_length
        self._default_color = normalize_color(default_color)

    async def create_tag(self, user_id: UUID, *, title: str, color: str | None = None) -> Tag:
        """Create a tag; a duplicate normalized title raises ConflictError."""
        require_principal(user_id)
        tag = Tag(
            user_id=user_id,
            title=self._validate_title(title),
            color=self._validate_color(color),
        )
        created = await self._repo.create(tag)
        logger.info("Tag created", extra={"tag_id": str(created.id), "user_id": str(user_id)})
        return created

    async def get_tag(self, tag_id: str | UUID, user_id: UUID) -> Tag:
        require_principal(user_id)
        tag_uuid = parse_uuid(tag_id)
        tag = await self._repo.get(tag_uuid, user_id=user_id) if tag_uuid else None
        if tag is None:
            raise NotFoundError("tag", tag_id)
        return tag

    async def list_tags(self, user_id: UUID) -> list[Tag]:
        """Return the user's tags sorted by normalized title."""
        require_principal(user_id)
        tags = await self._repo.list(user_id=user_id)
        return sorted(tags, key=lambda t: (t.normalized_title, str(t.id)))

    async def update_tag(self, tag_id: str | UUID, update_dto: Any, user_id: UUID) -> Tag:
        """Rename and/or recolor a tag in place."""
        return await self._update(tag_id, update_dto.model_dump(exclude_unset=True), user_id)

    async def rename_tag(self, tag_id: str | UUID, title: str, user_id: UUID) -> Tag:
        return await self._update(tag_id, {"title": title}, user_id)

    async def recolor_tag(self, tag_id: str | UUID, color: str, user_id: UUID) -> Tag:
        return await self._update(tag_id, {"color": color}, user_id)

    async def _update(self, tag_id: str | UUID, raw_changes: dict[str, Any], user_id: UUID) -> Tag:
        existing = await self.get_tag(tag_id, user_id)

        changes: dict[str, Any] = {}
        if raw_changes.get("title") is not None:
            changes["title"] = self._validate_title(raw_changes["title"])
        if "color" in raw_changes:
            changes["color"] = self._validate_color(raw_changes["color"])
        if not changes:
            return existing

        updated = await self._repo.update_fields(existing.id, user_id=user_id, changes=changes)
        if updated is None:
            raise NotFoundError("tag", tag_id)
        logger.info(
            "Tag updated",
            extra={"tag_id": str(updated.id), "user_id": str(user_id), "fields": sorted(changes)},
        )
        return updated

    async def delete_tag(self, tag_id: str | UUID, user_id: UUID) -> bool:
        """Delete a tag and its note links. Deleting a missing tag is a no-op."""
        require_principal(user_id)
        tag_uuid = parse_uuid(tag_id)
        if tag_uuid is None:
            return False
        deleted = await self._repo.delete(tag_uuid, user_id=user_id)
        if deleted:
            logger.info("Tag deleted", extra={"tag_id": str(tag_id), "user_id": str(user_id)})
        return deleted

    async def get_or_create_tag(
        self,
        user_id: UUID,
        *,
        title: str,
        color: str | None = None,
    ) -> tuple[Tag, bool]:
        """Return the tag with this normalized title, creating it if missing.

        The boolean is True when the tag was created by this call. A concurrent
        creator winning the race is resolved by re-reading its tag.
        """
        require_principal(user_id)
        cleaned = self._validate_title(title)
        existing = await self._repo.get_by_title(cleaned, user_id=user_id)
        if existing is not None:
            return existing, False
        try:
            return await self.create_tag(user_id, title=cleaned, color=color), True
        except ConflictError:
            winner = await self._repo.get_by_title(cleaned, user_id=user_id)
            if winner is None:
                raise
            return winner, False

    def _validate_title(self, title: str) -> str:
        cleaned = clean_tag_title(title or "")
        if not normalize_tag_title(cleaned):
            raise ValidationFailure("Tag title must not be empty", field="title")
        if len(cleaned) > self._max_title_length:
            raise ValidationFailure(
                f"Tag title must be at most {self._max_title_length} characters", field="title"
            )
        return cleaned

    def _validate_color(self, color: str | None) -> str:
        if color is None:
            return self._default_color
        try:
            return normalize_color(color)
        except ValueError as err:
            raise ValidationFailure(str(err), field="color") from err
