from __future__ import annotations

from uuid import UUID


def parse_uuid(value: str | UUID) -> UUID | None:
    """Return ``value`` as a UUID, or None if it is not one."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None
