from __future__ import annotations

import os

# Selected before any intellivault import so the app never needs Supabase.
os.environ["APP_STORAGE_BACKEND"] = "memory"

from typing import Any  # noqa: E402
from uuid import UUID  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from intellivault.core.models.document import DocumentLimits  # noqa: E402
from intellivault.core.repositories.implementations.memory.note_repository import (  # noqa: E402
    MemoryNoteRepository,
)
from intellivault.core.repositories.implementations.memory.note_tag_repository import (  # noqa: E402
    MemoryNoteTagRepository,
)
from intellivault.core.repositories.implementations.memory.store import MemoryStore  # noqa: E402
from intellivault.core.repositories.implementations.memory.tag_repository import (  # noqa: E402
    MemoryTagRepository,
)
from intellivault.core.schemas.auth import AuthUser  # noqa: E402
from intellivault.core.services.listing_service import ListingService  # noqa: E402
from intellivault.core.services.note_service import NoteService  # noqa: E402
from intellivault.core.services.note_tag_service import NoteTagService  # noqa: E402
from intellivault.core.services.session_gate import SessionGate  # noqa: E402
from intellivault.core.services.tag_service import TagService  # noqa: E402
from intellivault.dependencies import get_session_gate  # noqa: E402
from intellivault.main import create_app  # noqa: E402

ALICE = AuthUser(
    id=UUID("00000000-0000-4000-8000-00000000a11c"),
    name="Alice",
    email="alice@example.com",
)
BOB = AuthUser(
    id=UUID("00000000-0000-4000-8000-000000000b0b"),
    name="Bob",
    email="bob@example.com",
)

TOKENS = {
    "alice.token.sig": ALICE,
    "bob.token.sig": BOB,
}

API_BASE_URL = "http://testserver/api/v1"


class FakeSessionGate(SessionGate):
    """Resolves a fixed set of JWT-shaped tokens."""

    async def resolve(self, token: str) -> AuthUser | None:
        return TOKENS.get(token)


def bearer(user: AuthUser) -> dict[str, str]:
    token = next(t for t, u in TOKENS.items() if u.id == user.id)
    return {"Authorization": f"Bearer {token}"}


def text_doc(*paragraphs: str) -> dict[str, Any]:
    """Editor document with one paragraph per argument."""
    return {
        "type": "doc",
        "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": p}]} if p else {"type": "paragraph"}
            for p in paragraphs
        ],
    }


@pytest.fixture
def limits() -> DocumentLimits:
    return DocumentLimits(max_bytes=16 * 1024, max_depth=12)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def note_repo(store: MemoryStore) -> MemoryNoteRepository:
    return MemoryNoteRepository(store)


@pytest.fixture
def note_service(note_repo: MemoryNoteRepository, limits: DocumentLimits) -> NoteService:
    return NoteService(note_repo, limits=limits, max_title_length=80)


@pytest.fixture
def tag_service(store: MemoryStore) -> TagService:
    return TagService(MemoryTagRepository(store), max_title_length=20)


@pytest.fixture
def link_service(store: MemoryStore, note_service: NoteService, tag_service: TagService) -> NoteTagService:
    return NoteTagService(MemoryNoteTagRepository(store), notes=note_service, tags=tag_service)


@pytest.fixture
def listing_service(note_service: NoteService, link_service: NoteTagService) -> ListingService:
    return ListingService(note_service, link_service)


@pytest.fixture
def app():
    application = create_app()
    application.dependency_overrides[get_session_gate] = lambda: FakeSessionGate()
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=API_BASE_URL) as c:
        yield c
