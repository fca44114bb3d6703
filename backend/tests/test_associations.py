"""Tests for note/tag links, including cascades on delete."""

import pytest

from conftest import ALICE, BOB
from intellivault.api.v1.schemas.note import NoteCreate
from intellivault.core.exceptions import NotFoundError


@pytest.fixture
async def note(note_service):
    return await note_service.create_note(NoteCreate(title="Plans"), ALICE.id)


@pytest.fixture
async def tag(tag_service):
    return await tag_service.create_tag(ALICE.id, title="Ideas", color="blue")


class TestAttach:
    async def test_attach_and_read_back(self, link_service, note, tag) -> None:
        assert await link_service.attach_tag(note.id, tag.id, ALICE.id) is True

        tags = await link_service.tags_for_note(note.id, ALICE.id)
        assert [t.id for t in tags] == [tag.id]
        assert await link_service.notes_for_tag(tag.id, ALICE.id) == {note.id}

    async def test_attach_is_idempotent(self, link_service, store, note, tag) -> None:
        await link_service.attach_tag(note.id, tag.id, ALICE.id)
        assert await link_service.attach_tag(note.id, tag.id, ALICE.id) is False
        assert len(store.note_tags) == 1

    async def test_cannot_attach_a_foreign_tag(self, link_service, tag_service, store, note) -> None:
        foreign = await tag_service.create_tag(BOB.id, title="Ideas")

        with pytest.raises(NotFoundError) as exc_info:
            await link_service.attach_tag(note.id, foreign.id, ALICE.id)

        assert exc_info.value.entity == "tag"
        assert store.note_tags == {}

    async def test_cannot_attach_to_a_foreign_note(self, link_service, store, note, tag) -> None:
        with pytest.raises(NotFoundError):
            await link_service.attach_tag(note.id, tag.id, BOB.id)
        assert store.note_tags == {}

    async def test_attach_by_title_creates_missing_tag(self, link_service, tag_service, note) -> None:
        tag = await link_service.attach_tag_by_title(note.id, ALICE.id, title="Later", color="red")

        assert tag.color == "red"
        assert [t.title for t in await link_service.tags_for_note(note.id, ALICE.id)] == ["Later"]
        assert [t.title for t in await tag_service.list_tags(ALICE.id)] == ["Later"]

    async def test_attach_by_title_reuses_existing_tag(self, link_service, tag_service, note, tag) -> None:
        attached = await link_service.attach_tag_by_title(note.id, ALICE.id, title="ideas")

        assert attached.id == tag.id
        assert len(await tag_service.list_tags(ALICE.id)) == 1

    async def test_attach_by_title_to_foreign_note_creates_nothing(self, link_service, tag_service, note) -> None:
        with pytest.raises(NotFoundError):
            await link_service.attach_tag_by_title(note.id, BOB.id, title="Sneaky")
        assert await tag_service.list_tags(BOB.id) == []

    async def test_tags_for_note_are_sorted(self, link_service, tag_service, note) -> None:
        for title in ("zeta", "Alpha", "mid"):
            await link_service.attach_tag_by_title(note.id, ALICE.id, title=title)

        titles = [t.title for t in await link_service.tags_for_note(note.id, ALICE.id)]
        assert titles == ["Alpha", "mid", "zeta"]


class TestDetach:
    async def test_detach_removes_only_the_link(self, link_service, tag_service, note, tag) -> None:
        await link_service.attach_tag(note.id, tag.id, ALICE.id)

        assert await link_service.detach_tag(note.id, tag.id, ALICE.id) is True

        assert await link_service.tags_for_note(note.id, ALICE.id) == []
        assert (await tag_service.get_tag(tag.id, ALICE.id)).title == "Ideas"

    async def test_detach_without_link_is_a_no_op(self, link_service, note, tag) -> None:
        assert await link_service.detach_tag(note.id, tag.id, ALICE.id) is False

    async def test_foreign_detach_leaves_link_in_place(self, link_service, note, tag) -> None:
        await link_service.attach_tag(note.id, tag.id, ALICE.id)

        assert await link_service.detach_tag(note.id, tag.id, BOB.id) is False
        assert len(await link_service.tags_for_note(note.id, ALICE.id)) == 1


class TestCascades:
    async def test_deleting_a_note_removes_its_links_but_keeps_tags(
        self, link_service, note_service, tag_service, store, note, tag
    ) -> None:
        await link_service.attach_tag(note.id, tag.id, ALICE.id)

        await note_service.delete_note(note.id, ALICE.id)

        assert store.note_tags == {}
        assert await link_service.notes_for_tag(tag.id, ALICE.id) == set()
        assert (await tag_service.get_tag(tag.id, ALICE.id)).id == tag.id

    async def test_deleting_a_tag_detaches_it_from_every_note(
        self, link_service, note_service, tag_service, note, tag
    ) -> None:
        other = await note_service.create_note(NoteCreate(title="Other"), ALICE.id)
        await link_service.attach_tag(note.id, tag.id, ALICE.id)
        await link_service.attach_tag(other.id, tag.id, ALICE.id)

        await tag_service.delete_tag(tag.id, ALICE.id)

        assert await link_service.tags_for_note(note.id, ALICE.id) == []
        assert await link_service.tags_for_note(other.id, ALICE.id) == []

    async def test_notes_for_foreign_tag_is_not_found(self, link_service, tag) -> None:
        with pytest.raises(NotFoundError):
            await link_service.notes_for_tag(tag.id, BOB.id)
