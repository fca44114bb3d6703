from __future__ import annotations

import re
from datetime import datetime  # noqa: TCH003
from uuid import UUID, uuid4

from pydantic import Field

from .base import AppBaseModel, TimestampedModel, utcnow

TAG_PALETTE: tuple[str, ...] = (
    "gray",
    "red",
    "orange",
    "yellow",
    "green",
    "blue",
    "purple",
    "pink",
)

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def clean_tag_title(title: str) -> str:
    """Trim and collapse internal whitespace, preserving the caller's casing."""
    return " ".join(title.split())


def normalize_tag_title(title: str) -> str:
    """Key used for per-owner uniqueness: cleaned and case-folded."""
    return clean_tag_title(title).casefold()


def normalize_color(color: str) -> str:
    """Return the canonical color token or raise ValueError."""
    token = color.strip().lower()
    if token in TAG_PALETTE or _HEX_COLOR.match(token):
        return token
    raise ValueError(
        f"Unknown color '{color}'. Use one of {', '.join(TAG_PALETTE)} or a #rrggbb value"
    )


class Tag(TimestampedModel):
    """Tag domain model, unique per owner by normalized title."""

    id: UUID = Field(default_factory=uuid4, description="Unique tag identifier")
    user_id: UUID = Field(description="Owner of the tag")
    title: str = Field(min_length=1)
    color: str = Field(default="gray")

    @property
    def normalized_title(self) -> str:
        return normalize_tag_title(self.title)


class NoteTag(AppBaseModel):
    """Association row linking one note to one tag of the same owner."""

    note_id: UUID
    tag_id: UUID
    user_id: UUID
    created_at: datetime = Field(default_factory=utcnow)
