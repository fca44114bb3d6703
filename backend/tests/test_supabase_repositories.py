"""Tests for the PostgREST repositories and session gate against a scripted client."""

from types import SimpleNamespace
from uuid import uuid4

import pytest
from postgrest.exceptions import APIError

from conftest import ALICE, text_doc
from intellivault.core.exceptions import ConflictError, NotFoundError
from intellivault.core.models.tag import Tag
from intellivault.core.repositories.implementations.supabase.note_repository import SupabaseNoteRepository
from intellivault.core.repositories.implementations.supabase.note_tag_repository import (
    SupabaseNoteTagRepository,
)
from intellivault.core.repositories.implementations.supabase.tag_repository import SupabaseTagRepository
from intellivault.core.schemas.listing import NoteSort
from intellivault.core.services.session_gate import SupabaseSessionGate, principal_from_user

TIMESTAMP = "2024-05-01T10:00:00+00:00"


class FakeQuery:
    """Records builder calls; ``execute`` answers with the client's next scripted result."""

    def __init__(self, client: "FakeClient", table: str) -> None:
        self.client = client
        self.table = table
        self.calls: list[tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return record

    def execute(self) -> SimpleNamespace:
        self.client.executed.append(self)
        result = self.client.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return SimpleNamespace(data=result)

    def call(self, name: str) -> tuple[tuple, dict]:
        return next((args, kwargs) for n, args, kwargs in self.calls if n == name)

    def filters(self) -> list[tuple]:
        return [args for n, args, _ in self.calls if n == "eq"]


class FakeClient:
    def __init__(self, *results) -> None:
        self.results = list(results)
        self.executed: list[FakeQuery] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


def api_error(code: str) -> APIError:
    return APIError({"message": "rejected", "code": code, "hint": None, "details": None})


def note_row(note_id, version: int, **overrides) -> dict:
    row = {
        "id": str(note_id),
        "user_id": str(ALICE.id),
        "title": "Plans",
        "title_key": "plans",
        "content": text_doc("Hello"),
        "content_text": "",
        "version": version,
        "created_at": TIMESTAMP,
        "updated_at": TIMESTAMP,
    }
    row.update(overrides)
    return row


def tag_row(tag_id, title: str = "Ideas") -> dict:
    return {
        "id": str(tag_id),
        "user_id": str(ALICE.id),
        "title": title,
        "normalized_title": title.lower(),
        "color": "blue",
        "created_at": TIMESTAMP,
        "updated_at": TIMESTAMP,
    }


class TestSupabaseNoteRepository:
    async def test_update_filters_on_the_expected_version(self) -> None:
        note_id = uuid4()
        client = FakeClient([note_row(note_id, 3, title="New")])
        repo = SupabaseNoteRepository(client)

        note = await repo.update_fields(note_id, user_id=ALICE.id, changes={"title": "New"}, expected_version=2)

        assert note.version == 3
        assert note.title == "New"
        assert note.content_text == "Hello"
        (query,) = client.executed
        (payload,), _ = query.call("update")
        assert payload["title"] == "New"
        assert payload["version"] == 3
        assert ("version", 2) in query.filters()
        assert ("user_id", str(ALICE.id)) in query.filters()

    async def test_missed_swap_on_existing_row_is_stale(self) -> None:
        note_id = uuid4()
        client = FakeClient([], [note_row(note_id, 5)])
        repo = SupabaseNoteRepository(client)

        with pytest.raises(ConflictError) as exc_info:
            await repo.update_fields(note_id, user_id=ALICE.id, changes={"title": "late"}, expected_version=2)

        assert exc_info.value.reason == ConflictError.STALE_VERSION
        assert exc_info.value.current_version == 5
        assert [q.calls[0][0] for q in client.executed] == ["update", "select"]

    async def test_missed_swap_on_missing_row_is_none(self) -> None:
        client = FakeClient([], [])
        repo = SupabaseNoteRepository(client)

        result = await repo.update_fields(uuid4(), user_id=ALICE.id, changes={"title": "x"}, expected_version=1)

        assert result is None

    @pytest.mark.parametrize(
        ("sort", "column"),
        [(NoteSort.TITLE, "title_key"), (NoteSort.UPDATED_AT, "updated_at"), (NoteSort.CREATED_AT, "created_at")],
    )
    async def test_listing_orders_by_sort_column(self, sort, column) -> None:
        client = FakeClient([])
        repo = SupabaseNoteRepository(client)

        await repo.list_summaries(user_id=ALICE.id, sort=sort, descending=False)

        (query,) = client.executed
        orders = [(args[0], kwargs["desc"]) for n, args, kwargs in query.calls if n == "order"]
        assert orders == [(column, False), ("id", False)]

    async def test_empty_id_filter_skips_the_query(self) -> None:
        client = FakeClient()
        repo = SupabaseNoteRepository(client)

        assert await repo.list_summaries(user_id=ALICE.id, note_ids=[], sort=NoteSort.TITLE, descending=True) == []
        assert client.executed == []


class TestSupabaseTagRepository:
    async def test_duplicate_insert_is_a_conflict(self) -> None:
        repo = SupabaseTagRepository(FakeClient(api_error("23505")))

        with pytest.raises(ConflictError) as exc_info:
            await repo.create(Tag(user_id=ALICE.id, title="Ideas"))

        assert exc_info.value.reason == ConflictError.DUPLICATE_TAG
        assert exc_info.value.details["title"] == "Ideas"

    async def test_duplicate_rename_is_a_conflict(self) -> None:
        repo = SupabaseTagRepository(FakeClient(api_error("23505")))

        with pytest.raises(ConflictError) as exc_info:
            await repo.update_fields(uuid4(), user_id=ALICE.id, changes={"title": "Work"})

        assert exc_info.value.reason == ConflictError.DUPLICATE_TAG

    async def test_other_database_errors_propagate(self) -> None:
        repo = SupabaseTagRepository(FakeClient(api_error("42501")))

        with pytest.raises(APIError):
            await repo.create(Tag(user_id=ALICE.id, title="Ideas"))

    async def test_rename_stores_the_normalized_title(self) -> None:
        tag_id = uuid4()
        client = FakeClient([tag_row(tag_id, "Deep Work")])
        repo = SupabaseTagRepository(client)

        tag = await repo.update_fields(tag_id, user_id=ALICE.id, changes={"title": "Deep Work"})

        assert tag.title == "Deep Work"
        (payload,), _ = client.executed[0].call("update")
        assert payload["normalized_title"] == "deep work"


class TestSupabaseNoteTagRepository:
    def _owned(self, note_id, tag_id, upsert_result) -> FakeClient:
        return FakeClient([{"id": str(note_id)}], [{"id": str(tag_id)}], upsert_result)

    async def test_attach_upserts_ignoring_duplicates(self) -> None:
        note_id, tag_id = uuid4(), uuid4()
        link = {"note_id": str(note_id), "tag_id": str(tag_id), "user_id": str(ALICE.id)}
        client = self._owned(note_id, tag_id, [link])

        created = await SupabaseNoteTagRepository(client).attach(user_id=ALICE.id, note_id=note_id, tag_id=tag_id)

        assert created is True
        upsert = client.executed[-1]
        assert upsert.table == "note_tags"
        (row,), kwargs = upsert.call("upsert")
        assert row == link
        assert kwargs == {"on_conflict": "note_id,tag_id", "ignore_duplicates": True}

    async def test_existing_link_reports_not_created(self) -> None:
        note_id, tag_id = uuid4(), uuid4()
        client = self._owned(note_id, tag_id, [])

        created = await SupabaseNoteTagRepository(client).attach(user_id=ALICE.id, note_id=note_id, tag_id=tag_id)

        assert created is False

    async def test_foreign_key_violation_is_not_found(self) -> None:
        note_id, tag_id = uuid4(), uuid4()
        client = self._owned(note_id, tag_id, api_error("23503"))

        with pytest.raises(NotFoundError):
            await SupabaseNoteTagRepository(client).attach(user_id=ALICE.id, note_id=note_id, tag_id=tag_id)

    async def test_foreign_tag_is_rejected_before_writing(self) -> None:
        note_id, tag_id = uuid4(), uuid4()
        client = FakeClient([{"id": str(note_id)}], [])

        with pytest.raises(NotFoundError) as exc_info:
            await SupabaseNoteTagRepository(client).attach(user_id=ALICE.id, note_id=note_id, tag_id=tag_id)

        assert exc_info.value.entity == "tag"
        assert [q.table for q in client.executed] == ["notes", "tags"]


class TestSessionGate:
    def _user(self, **overrides) -> SimpleNamespace:
        fields = {"id": str(ALICE.id), "email": "carol@example.com", "user_metadata": {}, "role": "authenticated"}
        fields.update(overrides)
        return SimpleNamespace(**fields)

    def test_name_falls_back_to_email_local_part(self) -> None:
        principal = principal_from_user(self._user())

        assert principal.id == ALICE.id
        assert principal.name == "carol"
        assert principal.email == "carol@example.com"
        assert principal.role == "authenticated"

    def test_metadata_name_wins(self) -> None:
        principal = principal_from_user(self._user(user_metadata={"full_name": "Carol Jones"}))
        assert principal.name == "Carol Jones"

    async def test_resolves_a_valid_token(self) -> None:
        user = self._user()
        client = SimpleNamespace(auth=SimpleNamespace(get_user=lambda token: SimpleNamespace(user=user)))
        gate = SupabaseSessionGate(client_factory=lambda token: client)

        principal = await gate.resolve("a.b.c")

        assert principal is not None
        assert principal.name == "carol"

    async def test_rejected_token_resolves_to_none(self) -> None:
        def get_user(token):
            raise RuntimeError("invalid JWT")

        client = SimpleNamespace(auth=SimpleNamespace(get_user=get_user))
        gate = SupabaseSessionGate(client_factory=lambda token: client)

        assert await gate.resolve("a.b.c") is None

    async def test_response_without_user_resolves_to_none(self) -> None:
        client = SimpleNamespace(auth=SimpleNamespace(get_user=lambda token: SimpleNamespace(user=None)))
        gate = SupabaseSessionGate(client_factory=lambda token: client)

        assert await gate.resolve("a.b.c") is None
