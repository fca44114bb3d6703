from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from postgrest.exceptions import APIError

from intellivault.core.models.base import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from supabase import Client

# PostgreSQL SQLSTATE codes surfaced by PostgREST.
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


class SupabaseRepository:
    """Shared plumbing for the PostgREST-backed repositories.

    supabase-py is synchronous; every call is pushed to a worker thread so the
    event loop is never blocked. Row-level security additionally scopes every
    query to ``auth.uid()``, and each query filters on ``user_id`` explicitly.
    """

    def __init__(self, client: Client) -> None:
        self._client: Client = client

    @staticmethod
    async def _run(func: Callable[[], Any]) -> Any:
        return await asyncio.to_thread(func)

    @staticmethod
    def _first(data: Any) -> dict[str, Any] | None:
        if isinstance(data, list) and data:
            return data[0]
        if isinstance(data, dict) and data:
            return data
        return None

    @staticmethod
    def _timestamp(value: datetime | None = None) -> str:
        return (value or utcnow()).isoformat()

    @staticmethod
    def _is_violation(err: APIError, sqlstate: str) -> bool:
        return getattr(err, "code", None) == sqlstate
