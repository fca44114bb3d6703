from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from intellivault.core.models.tag import Tag


class NoteTagRepository(ABC):
    """Storage for the note/tag many-to-many relation.

    ``attach`` verifies both endpoints belong to ``user_id`` in the same
    transaction as the insert. The read helpers take already-verified seed ids
    and do not re-check ownership of the other side; both sides of a link share
    one owner by construction.
    """

    @abstractmethod
    async def attach(self, *, user_id: UUID, note_id: UUID, tag_id: UUID) -> bool:  # pragma: no cover
        """Link a note and a tag. Return False if they were already linked.

        Raises:
            NotFoundError: if either endpoint is missing or owned by someone else
        """

    @abstractmethod
    async def detach(self, *, user_id: UUID, note_id: UUID, tag_id: UUID) -> bool:  # pragma: no cover
        """Remove a link. Return False if there was nothing to remove."""

    @abstractmethod
    async def tags_for_notes(self, note_ids: Sequence[UUID]) -> dict[UUID, list[Tag]]:  # pragma: no cover
        """Map each given note id to its linked tags (notes without tags may be absent)."""

    @abstractmethod
    async def note_ids_for_tag(self, tag_id: UUID) -> set[UUID]:  # pragma: no cover
        """Return the ids of notes linked to a tag."""
