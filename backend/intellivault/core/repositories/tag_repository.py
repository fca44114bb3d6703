from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from intellivault.core.models.tag import Tag


class TagRepository(ABC):
    """Owner-scoped tag storage.

    Title uniqueness (normalized, per owner) is enforced by the write itself,
    never by a separate read-then-write check.
    """

    @abstractmethod
    async def create(self, tag: Tag) -> Tag:  # pragma: no cover - interface only
        """Persist a new tag.

        Raises:
            ConflictError: if the owner already has a tag with the same normalized title
        """

    @abstractmethod
    async def get(self, tag_id: UUID, *, user_id: UUID) -> Tag | None:  # pragma: no cover
        """Fetch an owned tag by id or return None."""

    @abstractmethod
    async def get_by_title(self, title: str, *, user_id: UUID) -> Tag | None:  # pragma: no cover
        """Fetch an owned tag by normalized title or return None."""

    @abstractmethod
    async def list(self, *, user_id: UUID) -> Sequence[Tag]:  # pragma: no cover
        """Return every tag owned by the user, in no particular order."""

    @abstractmethod
    async def update_fields(
        self,
        tag_id: UUID,
        *,
        user_id: UUID,
        changes: dict[str, Any],
    ) -> Tag | None:  # pragma: no cover
        """Update title and/or color. Return None when missing or foreign.

        Raises:
            ConflictError: if a rename collides with another tag of the owner
        """

    @abstractmethod
    async def delete(self, tag_id: UUID, *, user_id: UUID) -> bool:  # pragma: no cover
        """Delete an owned tag and its note links. Return True if a row was removed."""
