"""Debounced, conflict-aware saving of one note's document.

A session owns the local copy of the document and the version the server
last acknowledged. Edits only touch the local buffer; saves happen after a
quiet period, on ``flush()`` and always on ``close()``. At most one save is in
flight, so every push carries the version returned by the previous one.
"""
from __future__ import annotations

import asyncio
import contextlib
import copy
from enum import Enum
from typing import TYPE_CHECKING, Any

from intellivault.config import settings
from intellivault.core.exceptions import ConflictError, IntelliVaultError, TransientSyncError
from intellivault.core.models.document import DocumentNode
from intellivault.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from intellivault.api.v1.schemas.note import NoteRead

    from .transport import NoteTransport

logger = get_logger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    DIRTY = "dirty"
    SAVING = "saving"
    CONFLICT = "conflict"
    FAILED = "failed"


class DocumentSyncSession:
    """Keeps a local document and the stored note converging.

    Usage::

        async with DocumentSyncSession(transport, note_id) as session:
            session.edit(document)
            ...
        # leaving the block flushes unsaved edits

    Failures never surface from background saves. A transient failure that
    outlives its retries, or any unexpected error, moves the session to
    ``FAILED``; a stale write moves it to ``CONFLICT``. Either error is raised
    from the next ``flush()`` or ``close()``. A conflict stays in place,
    blocking further saves, until ``resolve_conflict()`` is called.
    """

    def __init__(
        self,
        transport: NoteTransport,
        note_id: UUID,
        *,
        debounce_seconds: float | None = None,
        max_retries: int | None = None,
        backoff_base_seconds: float | None = None,
        on_state_change: Callable[[SyncState], None] | None = None,
    ) -> None:
        self.note_id = note_id
        self._transport = transport
        self._debounce_seconds = (
            settings.sync_debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self._max_retries = settings.sync_max_retries if max_retries is None else max_retries
        self._backoff_base_seconds = (
            settings.sync_backoff_base_seconds if backoff_base_seconds is None else backoff_base_seconds
        )
        self._on_state_change = on_state_change

        self._document: dict[str, Any] | None = None
        self._version: int | None = None
        self._state = SyncState.IDLE
        self._error: Exception | None = None

        # Bumped by every edit; a save only clears the dirty flag if no edit
        # arrived while it was in flight.
        self._generation = 0
        self._saved_generation = 0

        self._lock = asyncio.Lock()
        self._timer: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[None]] = set()
        self._loaded = False
        self._closing = False
        self._closed = False

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def version(self) -> int | None:
        """Last version acknowledged by the server."""
        return self._version

    @property
    def document(self) -> dict[str, Any] | None:
        return copy.deepcopy(self._document)

    @property
    def dirty(self) -> bool:
        return self._generation != self._saved_generation

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> DocumentSyncSession:
        if not self._loaded:
            await self.load()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def load(self) -> NoteRead:
        """Fetch the note and make it the local baseline."""
        note = await self._transport.fetch_note(self.note_id)
        self._accept_remote(note)
        self._loaded = True
        return note

    def edit(self, document: DocumentNode | dict[str, Any]) -> None:
        """Replace the local document and restart the debounce timer."""
        if self._closing:
            raise RuntimeError("Sync session is closed")
        if isinstance(document, DocumentNode):
            document = document.to_json()
        self._document = copy.deepcopy(document)
        self._generation += 1

        if self._state in (SyncState.CONFLICT, SyncState.FAILED):
            # Keep the edit locally; saving resumes once the error is handled.
            return
        if self._state is not SyncState.SAVING:
            self._set_state(SyncState.DIRTY)
        self._restart_timer()

    async def flush(self) -> None:
        """Save now if there are unsaved edits, then report any pending failure."""
        await self._stop_timer()
        await self._save_pending()
        self._raise_pending_error()

    async def close(self) -> None:
        """Flush unsaved edits and stop accepting new ones."""
        if self._closed:
            return
        self._closing = True
        try:
            await self.flush()
        finally:
            self._closed = True
            logger.debug("Sync session closed", extra={"note_id": str(self.note_id)})

    async def resolve_conflict(self, *, keep_local: bool = True) -> None:
        """Rebase on the server's current note after a conflict.

        With ``keep_local`` the local document is pushed on top of the latest
        version; otherwise the local edits are dropped in favour of the server copy.
        """
        async with self._lock:
            note = await self._transport.fetch_note(self.note_id)
            self._error = None
            if keep_local:
                self._version = note.version
                self._set_state(SyncState.DIRTY)
            else:
                self._accept_remote(note)
            logger.info(
                "Sync conflict resolved",
                extra={"note_id": str(self.note_id), "keep_local": keep_local, "version": note.version},
            )
        if keep_local:
            await self.flush()

    def _accept_remote(self, note: NoteRead) -> None:
        self._document = note.content.to_json()
        self._version = note.version
        self._saved_generation = self._generation
        self._set_state(SyncState.IDLE)

    def _restart_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.create_task(self._debounced_save())
        self._background.add(self._timer)
        self._timer.add_done_callback(self._background.discard)

    async def _stop_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None or timer.done():
            return
        timer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await timer

    async def _debounced_save(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        # From here on the save must not be cancelled by a newer edit.
        self._timer = None
        await self._save_pending()

    async def _save_pending(self) -> None:
        async with self._lock:
            if not self.dirty or self._state in (SyncState.CONFLICT, SyncState.FAILED):
                return
            generation = self._generation
            document = copy.deepcopy(self._document)
            self._set_state(SyncState.SAVING)
            try:
                note = await self._push_with_retry(document)
            except ConflictError as err:
                logger.warning(
                    "Note changed elsewhere; local edits kept",
                    extra={"note_id": str(self.note_id), "current_version": err.current_version},
                )
                self._error = err
                self._set_state(SyncState.CONFLICT)
                return
            except IntelliVaultError as err:
                logger.error(
                    "Note save failed",
                    extra={"note_id": str(self.note_id), "code": err.code.name},
                )
                self._error = err
                self._set_state(SyncState.FAILED)
                return
            except Exception as err:
                logger.exception("Note save failed unexpectedly", extra={"note_id": str(self.note_id)})
                self._error = err
                self._set_state(SyncState.FAILED)
                return

            self._version = note.version
            self._saved_generation = generation
            self._set_state(SyncState.DIRTY if self.dirty else SyncState.IDLE)
            logger.debug(
                "Note saved",
                extra={"note_id": str(self.note_id), "version": note.version},
            )

    async def _push_with_retry(self, document: dict[str, Any] | None) -> NoteRead:
        attempt = 0
        while True:
            try:
                return await self._transport.push_content(self.note_id, document, self._version)
            except TransientSyncError as err:
                if attempt >= self._max_retries:
                    raise
                delay = self._backoff_base_seconds * (2 ** attempt)
                attempt += 1
                logger.warning(
                    "Note save retry",
                    extra={
                        "note_id": str(self.note_id),
                        "attempt": attempt,
                        "delay": delay,
                        "status_code": err.status_code,
                    },
                )
                await asyncio.sleep(delay)

    def _raise_pending_error(self) -> None:
        err = self._error
        if err is None:
            return
        if self._state is SyncState.FAILED:
            # Reported once; the next flush retries from scratch.
            self._error = None
            self._set_state(SyncState.DIRTY if self.dirty else SyncState.IDLE)
        raise err

    def _set_state(self, state: SyncState) -> None:
        if state is self._state:
            return
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)
