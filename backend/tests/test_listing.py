"""Tests for the notes-with-tags listing."""

from uuid import uuid4

import pytest

from conftest import ALICE, BOB, text_doc
from intellivault.api.v1.schemas.note import NoteCreate, NoteUpdate
from intellivault.core.exceptions import NotFoundError
from intellivault.core.schemas.listing import ListingQuery, NoteSort, SortOrder


async def test_end_to_end_listing_follows_content_changes(note_service, link_service, listing_service) -> None:
    note = await note_service.create_note(NoteCreate(), ALICE.id)
    await link_service.attach_tag_by_title(note.id, ALICE.id, title="Ideas", color="blue")

    listing = await listing_service.list_notes_with_tags(ALICE.id)

    assert len(listing) == 1
    assert listing[0].title == "Untitled"
    assert listing[0].content_text == ""
    assert [(t.title, t.color) for t in listing[0].tags] == [("Ideas", "blue")]

    await note_service.update_note(note.id, NoteUpdate(content=text_doc("Hello world")), ALICE.id)

    listing = await listing_service.list_notes_with_tags(ALICE.id)
    assert listing[0].content_text == "Hello world"


async def test_listing_never_includes_foreign_data(note_service, link_service, listing_service) -> None:
    mine = await note_service.create_note(NoteCreate(title="mine"), ALICE.id)
    theirs = await note_service.create_note(NoteCreate(title="theirs"), BOB.id)
    await link_service.attach_tag_by_title(mine.id, ALICE.id, title="shared name")
    await link_service.attach_tag_by_title(theirs.id, BOB.id, title="shared name")

    listing = await listing_service.list_notes_with_tags(ALICE.id)

    assert [n.id for n in listing] == [mine.id]
    assert len(listing[0].tags) == 1


async def test_summaries_exclude_the_document(note_service, listing_service) -> None:
    await note_service.create_note(NoteCreate(content=text_doc("body")), ALICE.id)

    (summary,) = await listing_service.list_notes_with_tags(ALICE.id)

    assert "content" not in summary.model_dump()
    assert summary.content_text == "body"


async def test_notes_without_tags_have_an_empty_list(note_service, listing_service) -> None:
    await note_service.create_note(NoteCreate(), ALICE.id)
    (summary,) = await listing_service.list_notes_with_tags(ALICE.id)
    assert summary.tags == []


async def test_filter_by_tag(note_service, link_service, tag_service, listing_service) -> None:
    tagged = await note_service.create_note(NoteCreate(title="tagged"), ALICE.id)
    await note_service.create_note(NoteCreate(title="plain"), ALICE.id)
    tag = await link_service.attach_tag_by_title(tagged.id, ALICE.id, title="Ideas")
    unused = await tag_service.create_tag(ALICE.id, title="Unused")

    filtered = await listing_service.list_notes_with_tags(ALICE.id, ListingQuery(tag_id=tag.id))
    empty = await listing_service.list_notes_with_tags(ALICE.id, ListingQuery(tag_id=unused.id))

    assert [n.title for n in filtered] == ["tagged"]
    assert empty == []


async def test_filter_by_foreign_or_unknown_tag_is_not_found(tag_service, listing_service) -> None:
    foreign = await tag_service.create_tag(BOB.id, title="Ideas")

    with pytest.raises(NotFoundError):
        await listing_service.list_notes_with_tags(ALICE.id, ListingQuery(tag_id=foreign.id))
    with pytest.raises(NotFoundError):
        await listing_service.list_notes_with_tags(ALICE.id, ListingQuery(tag_id=uuid4()))


async def test_sorting_is_applied_before_joining_tags(note_service, link_service, listing_service) -> None:
    for title in ("b", "a", "c"):
        note = await note_service.create_note(NoteCreate(title=title), ALICE.id)
        await link_service.attach_tag_by_title(note.id, ALICE.id, title=f"tag-{title}")

    listing = await listing_service.list_notes_with_tags(
        ALICE.id, ListingQuery(sort=NoteSort.TITLE, order=SortOrder.ASC, limit=2)
    )

    assert [(n.title, n.tags[0].title) for n in listing] == [("a", "tag-a"), ("b", "tag-b")]


async def test_title_sort_ignores_case(note_service, listing_service) -> None:
    for title in ("banana", "Apple", "cherry", "Banana split"):
        await note_service.create_note(NoteCreate(title=title), ALICE.id)

    listing = await listing_service.list_notes_with_tags(
        ALICE.id, ListingQuery(sort=NoteSort.TITLE, order=SortOrder.ASC)
    )

    assert [n.title for n in listing] == ["Apple", "banana", "Banana split", "cherry"]
