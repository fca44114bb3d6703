from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import Client  # noqa: TCH002

from intellivault.config import settings
from intellivault.core.exceptions import UnauthenticatedError
from intellivault.core.models.document import DocumentLimits
from intellivault.core.repositories.implementations.memory.note_repository import MemoryNoteRepository
from intellivault.core.repositories.implementations.memory.note_tag_repository import (
    MemoryNoteTagRepository,
)
from intellivault.core.repositories.implementations.memory.tag_repository import MemoryTagRepository
from intellivault.core.repositories.implementations.supabase.note_repository import (
    SupabaseNoteRepository,
)
from intellivault.core.repositories.implementations.supabase.note_tag_repository import (
    SupabaseNoteTagRepository,
)
from intellivault.core.repositories.implementations.supabase.tag_repository import (
    SupabaseTagRepository,
)
from intellivault.core.services.listing_service import ListingService
from intellivault.core.services.note_service import NoteService
from intellivault.core.services.note_tag_service import NoteTagService
from intellivault.core.services.session_gate import SessionGate, SupabaseSessionGate
from intellivault.core.services.tag_service import TagService
from intellivault.db.base import create_request_supabase_client
from intellivault.utils.logging import get_logger

logger = get_logger(__name__)

# Use auto_error=False to handle missing tokens gracefully
http_bearer = HTTPBearer(auto_error=False)

if TYPE_CHECKING:
    from intellivault.core.repositories.implementations.memory.store import MemoryStore
    from intellivault.core.repositories.note_repository import NoteRepository
    from intellivault.core.repositories.note_tag_repository import NoteTagRepository
    from intellivault.core.repositories.tag_repository import TagRepository
    from intellivault.core.schemas.auth import AuthUser


def get_session_gate() -> SessionGate:
    """Get the session gate that turns bearer tokens into principals."""
    return SupabaseSessionGate()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(http_bearer),
    gate: SessionGate = Depends(get_session_gate),
) -> AuthUser:
    """Resolve the caller or answer 401 before any storage access."""
    if not credentials:
        raise UnauthenticatedError("Authentication required")
    jwt = credentials.credentials
    if not jwt or len(jwt.split(".")) != 3:
        raise UnauthenticatedError("Invalid token format")
    user = await gate.resolve(jwt)
    if user is None:
        raise UnauthenticatedError("Token is invalid or expired")
    return user


def get_memory_store(request: Request) -> MemoryStore:
    return request.app.state.memory_store


def get_request_supabase_client(request: Request) -> Client | None:
    """Create a request-scoped Supabase client and set PostgREST bearer.

    Extracts the Authorization: Bearer <jwt> header if present and configures
    PostgREST to enforce RLS for the user. Returns None on the memory backend.
    """
    if settings.storage_backend == "memory":
        return None
    auth_header = request.headers.get("authorization") or request.headers.get("Authorization")
    jwt: str | None = None
    if auth_header and auth_header.lower().startswith("bearer "):
        jwt = auth_header.split(" ", 1)[1].strip()
    return create_request_supabase_client(jwt)


def get_note_repository(
    request: Request,
    client: Client | None = Depends(get_request_supabase_client),
) -> NoteRepository:
    """Get a request-scoped note repository instance."""
    if client is None:
        return MemoryNoteRepository(get_memory_store(request))
    return SupabaseNoteRepository(client)


def get_tag_repository(
    request: Request,
    client: Client | None = Depends(get_request_supabase_client),
) -> TagRepository:
    """Get a request-scoped tag repository instance."""
    if client is None:
        return MemoryTagRepository(get_memory_store(request))
    return SupabaseTagRepository(client)


def get_note_tag_repository(
    request: Request,
    client: Client | None = Depends(get_request_supabase_client),
) -> NoteTagRepository:
    """Get a request-scoped note/tag association repository instance."""
    if client is None:
        return MemoryNoteTagRepository(get_memory_store(request))
    return SupabaseNoteTagRepository(client)


def get_note_service(repo: NoteRepository = Depends(get_note_repository)) -> NoteService:
    """Get a request-scoped note service instance."""
    return NoteService(
        repo,
        limits=DocumentLimits(
            max_bytes=settings.max_document_bytes,
            max_depth=settings.max_document_depth,
        ),
        max_title_length=settings.max_title_length,
    )


def get_tag_service(repo: TagRepository = Depends(get_tag_repository)) -> TagService:
    """Get a request-scoped tag service instance."""
    return TagService(
        repo,
        max_title_length=settings.max_tag_title_length,
        default_color=settings.default_tag_color,
    )


def get_note_tag_service(
    repo: NoteTagRepository = Depends(get_note_tag_repository),
    notes: NoteService = Depends(get_note_service),
    tags: TagService = Depends(get_tag_service),
) -> NoteTagService:
    """Get a request-scoped association service instance."""
    return NoteTagService(repo, notes=notes, tags=tags)


def get_listing_service(
    notes: NoteService = Depends(get_note_service),
    links: NoteTagService = Depends(get_note_tag_service),
) -> ListingService:
    """Get a request-scoped listing service instance."""
    return ListingService(notes, links)
