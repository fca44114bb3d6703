from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from intellivault.core.models.note import Note
    from intellivault.core.schemas.listing import NoteSort, NoteSummary


class NoteRepository(ABC):
    """Abstract repository interface for notes.

    Every method is scoped by ``user_id``: a note owned by someone else is
    treated exactly like a note that does not exist. Implementations perform
    I/O and therefore expose async methods.
    """

    @abstractmethod
    async def create(self, note: Note) -> Note:  # pragma: no cover - interface only
        """Persist a new note and return the stored entity."""

    @abstractmethod
    async def get(self, note_id: UUID, *, user_id: UUID) -> Note | None:  # pragma: no cover
        """Fetch an owned note by id or return None."""

    @abstractmethod
    async def list_summaries(
        self,
        *,
        user_id: UUID,
        note_ids: Sequence[UUID] | None = None,
        sort: NoteSort,
        descending: bool,
        limit: int | None = None,
    ) -> Sequence[NoteSummary]:  # pragma: no cover
        """Return list projections of owned notes.

        Args:
            user_id: Owner whose notes are listed
            note_ids: Optional restriction to these ids (foreign ids are ignored)
            sort: Column to order by
            descending: Sort direction
            limit: Maximum number of rows, or None for all
        """

    @abstractmethod
    async def update_fields(
        self,
        note_id: UUID,
        *,
        user_id: UUID,
        changes: dict[str, Any],
        expected_version: int,
    ) -> Note | None:  # pragma: no cover
        """Compare-and-swap update on ``(id, user_id, version)``.

        Bumps ``version`` and ``updated_at`` with the write. Returns None when the
        note is missing or foreign.

        Raises:
            ConflictError: if the stored version no longer equals ``expected_version``
        """

    @abstractmethod
    async def delete(self, note_id: UUID, *, user_id: UUID) -> bool:  # pragma: no cover
        """Delete an owned note and its tag links. Return True if a row was removed."""

    @abstractmethod
    async def ping(self) -> None:  # pragma: no cover
        """Round-trip to storage; raises on failure."""
