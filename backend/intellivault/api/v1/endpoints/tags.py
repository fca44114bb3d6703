from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TCH003

from fastapi import APIRouter, Depends, status

from intellivault.api.v1.schemas.note import NoteSummaryRead
from intellivault.api.v1.schemas.tag import TagCreate, TagRead, TagUpdate
from intellivault.core.schemas.listing import ListingQuery
from intellivault.dependencies import get_current_user, get_listing_service, get_tag_service

if TYPE_CHECKING:
    from intellivault.core.schemas.auth import AuthUser
    from intellivault.core.services.listing_service import ListingService
    from intellivault.core.services.tag_service import TagService

router = APIRouter()


@router.get("/", response_model=list[TagRead])
async def list_tags(
    current_user: AuthUser = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
):
    tags = await service.list_tags(current_user.id)
    return [TagRead.model_validate(t) for t in tags]


@router.post("/", response_model=TagRead, status_code=status.HTTP_201_CREATED)
async def create_tag(
    payload: TagCreate,
    current_user: AuthUser = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
):
    tag = await service.create_tag(current_user.id, title=payload.title, color=payload.color)
    return TagRead.model_validate(tag)


@router.get("/{tag_id}", response_model=TagRead)
async def get_tag(
    tag_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
):
    tag = await service.get_tag(tag_id, current_user.id)
    return TagRead.model_validate(tag)


@router.patch("/{tag_id}", response_model=TagRead)
async def update_tag(
    tag_id: UUID,
    payload: TagUpdate,
    current_user: AuthUser = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
):
    tag = await service.update_tag(tag_id, payload, current_user.id)
    return TagRead.model_validate(tag)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
):
    """Delete a tag and detach it from every note. Unknown ids are ignored."""
    await service.delete_tag(tag_id, current_user.id)
    return None


@router.get("/{tag_id}/notes", response_model=list[NoteSummaryRead])
async def list_tag_notes(
    tag_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: ListingService = Depends(get_listing_service),
):
    notes = await service.list_notes_with_tags(current_user.id, ListingQuery(tag_id=tag_id))
    return [NoteSummaryRead.model_validate(n) for n in notes]
