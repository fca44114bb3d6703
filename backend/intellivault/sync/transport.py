from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import httpx

from intellivault.api.v1.schemas.note import NoteRead
from intellivault.config import settings
from intellivault.core.exceptions import (
    ConflictError,
    IntelliVaultError,
    NotFoundError,
    TransientSyncError,
    UnauthenticatedError,
    ValidationFailure,
)
from intellivault.utils.logging import get_logger

if TYPE_CHECKING:
    from uuid import UUID

logger = get_logger(__name__)


class NoteTransport(Protocol):
    """What a sync session needs from the note store."""

    async def fetch_note(self, note_id: UUID) -> NoteRead: ...

    async def push_content(
        self,
        note_id: UUID,
        content: dict[str, Any],
        expected_version: int | None,
    ) -> NoteRead: ...


class HttpNoteTransport:
    """NoteTransport over the notes HTTP API.

    Responses are mapped back onto the domain error taxonomy so callers handle
    a 409 from the server exactly like a ConflictError raised in-process.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def connect(
        cls,
        base_url: str,
        token: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> HttpNoteTransport:
        """Build a transport with its own client; ``base_url`` includes the API prefix."""
        client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout if timeout is not None else settings.sync_request_timeout_seconds,
            transport=transport,
        )
        return cls(client)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_note(self, note_id: UUID) -> NoteRead:
        return await self._request("GET", note_id)

    async def push_content(
        self,
        note_id: UUID,
        content: dict[str, Any],
        expected_version: int | None,
    ) -> NoteRead:
        body: dict[str, Any] = {"content": content}
        if expected_version is not None:
            body["expectedVersion"] = expected_version
        return await self._request("PATCH", note_id, json=body)

    async def _request(self, method: str, note_id: UUID, json: dict[str, Any] | None = None) -> NoteRead:
        try:
            response = await self._client.request(method, f"/notes/{note_id}", json=json)
        except httpx.HTTPError as err:
            logger.warning(
                "Note request failed",
                extra={"method": method, "note_id": str(note_id), "error_type": type(err).__name__},
            )
            raise TransientSyncError(f"Could not reach note service: {type(err).__name__}") from err

        if not response.is_success:
            raise _error_from_response(response, note_id)
        try:
            return NoteRead.model_validate(response.json())
        except ValueError as err:
            # JSONDecodeError and pydantic's ValidationError are both ValueErrors.
            logger.warning(
                "Unreadable note response",
                extra={
                    "method": method,
                    "note_id": str(note_id),
                    "status_code": response.status_code,
                    "content_type": response.headers.get("content-type"),
                },
            )
            raise TransientSyncError(
                f"Unreadable response from note service ({response.status_code})",
                status_code=response.status_code,
            ) from err


def _error_from_response(response: httpx.Response, note_id: UUID) -> IntelliVaultError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    detail = body.get("detail") if isinstance(body.get("detail"), str) else response.reason_phrase
    details = body.get("details") or {}

    status_code = response.status_code
    if status_code == 401:
        return UnauthenticatedError(detail)
    if status_code == 404:
        return NotFoundError("note", note_id)
    if status_code == 409:
        return ConflictError.stale_version(note_id, details.get("current_version"))
    if status_code >= 500 or status_code == 429:
        return TransientSyncError(f"Note service answered {status_code}", status_code=status_code)
    return ValidationFailure(detail or f"Request rejected with {status_code}")
