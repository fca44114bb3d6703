from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TCH003

from fastapi import APIRouter, Depends, Query, status

from intellivault.api.v1.schemas.note import NoteCreate, NoteRead, NoteSummaryRead, NoteUpdate
from intellivault.api.v1.schemas.tag import TagAttach, TagRead
from intellivault.core.schemas.listing import ListingQuery, NoteSort, SortOrder
from intellivault.dependencies import (
    get_current_user,
    get_listing_service,
    get_note_service,
    get_note_tag_service,
    get_tag_service,
)

if TYPE_CHECKING:
    from intellivault.core.schemas.auth import AuthUser
    from intellivault.core.services.listing_service import ListingService
    from intellivault.core.services.note_service import NoteService
    from intellivault.core.services.note_tag_service import NoteTagService
    from intellivault.core.services.tag_service import TagService

router = APIRouter()


@router.post("/", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    payload: NoteCreate,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    note = await service.create_note(payload, user_id=current_user.id)
    return NoteRead.model_validate(note)


@router.get("/", response_model=list[NoteSummaryRead])
async def list_notes(
    tag_id: UUID | None = None,
    sort: NoteSort = NoteSort.UPDATED_AT,
    order: SortOrder = SortOrder.DESC,
    limit: int | None = Query(default=None, ge=1, le=500),
    current_user: AuthUser = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service),
):
    """List the caller's notes with their tags; documents are not included."""
    query = ListingQuery(tag_id=tag_id, sort=sort, order=order, limit=limit)
    notes = await service.list_notes_with_tags(current_user.id, query)
    return [NoteSummaryRead.model_validate(n) for n in notes]


@router.get("/{note_id}", response_model=NoteRead)
async def get_note(
    note_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    note = await service.get_note(note_id, user_id=current_user.id)
    return NoteRead.model_validate(note)


@router.patch("/{note_id}", response_model=NoteRead)
async def update_note(
    note_id: UUID,
    payload: NoteUpdate,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    note = await service.update_note(note_id, payload, user_id=current_user.id)
    return NoteRead.model_validate(note)


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteService = Depends(get_note_service),
):
    await service.delete_note(note_id, user_id=current_user.id)
    return None


@router.get("/{note_id}/tags", response_model=list[TagRead])
async def list_note_tags(
    note_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteTagService = Depends(get_note_tag_service),
):
    tags = await service.tags_for_note(note_id, current_user.id)
    return [TagRead.model_validate(t) for t in tags]


@router.post("/{note_id}/tags", response_model=TagRead)
async def attach_tag(
    note_id: UUID,
    payload: TagAttach,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteTagService = Depends(get_note_tag_service),
    tags: TagService = Depends(get_tag_service),
):
    """Attach a tag to a note. Attaching an already attached tag is a no-op."""
    if payload.tag_id is not None:
        await service.attach_tag(note_id, payload.tag_id, current_user.id)
        tag = await tags.get_tag(payload.tag_id, current_user.id)
    else:
        tag = await service.attach_tag_by_title(
            note_id,
            current_user.id,
            title=payload.title,
            color=payload.color,
        )
    return TagRead.model_validate(tag)


@router.delete("/{note_id}/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def detach_tag(
    note_id: UUID,
    tag_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: NoteTagService = Depends(get_note_tag_service),
):
    await service.detach_tag(note_id, tag_id, current_user.id)
    return None
