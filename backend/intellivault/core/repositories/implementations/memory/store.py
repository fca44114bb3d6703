from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from intellivault.core.models.base import utcnow

if TYPE_CHECKING:
    from uuid import UUID

    from intellivault.core.models.note import Note
    from intellivault.core.models.tag import NoteTag, Tag


class MemoryStore:
    """Process-local tables shared by the memory repositories.

    All mutations take ``lock`` so that each repository call behaves like a
    single transaction: checks and the write they guard happen atomically.
    Reads go through without the lock; the event loop cannot interleave them
    with a mutation because no mutation awaits while holding partial state.
    """

    def __init__(self) -> None:
        self.notes: dict[UUID, Note] = {}
        self.tags: dict[UUID, Tag] = {}
        self.note_tags: dict[tuple[UUID, UUID], NoteTag] = {}
        self.lock = asyncio.Lock()
        self._clock: datetime | None = None

    def now(self) -> datetime:
        """Store-wide clock; every call returns a strictly later timestamp."""
        self._clock = next_timestamp(self._clock) if self._clock else utcnow()
        return self._clock

    def unlink_note(self, note_id: UUID) -> None:
        for key in [k for k in self.note_tags if k[0] == note_id]:
            del self.note_tags[key]

    def unlink_tag(self, tag_id: UUID) -> None:
        for key in [k for k in self.note_tags if k[1] == tag_id]:
            del self.note_tags[key]


def next_timestamp(previous: datetime) -> datetime:
    """Current time, nudged forward so it always sorts after ``previous``."""
    now = utcnow()
    if now > previous:
        return now
    return previous + timedelta(microseconds=1)
