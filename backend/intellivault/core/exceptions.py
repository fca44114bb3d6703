"""Domain exceptions for IntelliVault.

Every store, manager and service operation reports failure through one of the
classes below. The HTTP layer maps them to status codes in one place
(``intellivault.api.errors``); the document sync client maps status codes back
to the same classes so both sides share one taxonomy.
"""
from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Machine-readable error codes."""

    UNAUTHENTICATED = 1001

    NOTE_NOT_FOUND = 2001
    TAG_NOT_FOUND = 2002

    TAG_ALREADY_EXISTS = 3001
    STALE_VERSION = 3002

    VALIDATION_FAILED = 4001
    DOCUMENT_INVALID = 4002

    SYNC_TRANSIENT = 5001


class IntelliVaultError(Exception):
    """Base exception for all IntelliVault domain errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "detail": self.message,
            "code": self.code.name,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class UnauthenticatedError(IntelliVaultError):
    """Raised when an operation is attempted without a resolved principal."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code=ErrorCode.UNAUTHENTICATED)


class NotFoundError(IntelliVaultError):
    """Raised when an entity is absent or owned by someone else.

    The two cases are deliberately reported identically.
    """

    def __init__(self, entity: str, entity_id: Any, message: str | None = None):
        code = ErrorCode.TAG_NOT_FOUND if entity == "tag" else ErrorCode.NOTE_NOT_FOUND
        super().__init__(
            message or f"{entity.capitalize()} not found",
            code=code,
            details={f"{entity}_id": str(entity_id)},
        )
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(IntelliVaultError):
    """Raised on a uniqueness violation or a stale-version write."""

    DUPLICATE_TAG = "duplicate_tag"
    STALE_VERSION = "stale_version"

    def __init__(self, message: str, reason: str, details: dict[str, Any] | None = None):
        code = ErrorCode.STALE_VERSION if reason == self.STALE_VERSION else ErrorCode.TAG_ALREADY_EXISTS
        super().__init__(message, code=code, details={"reason": reason, **(details or {})})
        self.reason = reason

    @classmethod
    def duplicate_tag(cls, title: str) -> ConflictError:
        return cls(f"A tag named '{title}' already exists", cls.DUPLICATE_TAG, {"title": title})

    @classmethod
    def stale_version(cls, note_id: Any, current_version: int | None) -> ConflictError:
        return cls(
            "This note was changed elsewhere",
            cls.STALE_VERSION,
            {"note_id": str(note_id), "current_version": current_version},
        )

    @property
    def current_version(self) -> int | None:
        return self.details.get("current_version")


class ValidationFailure(IntelliVaultError):
    """Raised when input is malformed; always before any storage call."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        super().__init__(message, code=code, details={"field": field} if field else None)
        self.field = field


class TransientSyncError(IntelliVaultError):
    """Network or server-side failure while pushing a document; safe to retry."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(
            message,
            code=ErrorCode.SYNC_TRANSIENT,
            details={"status_code": status_code} if status_code else None,
        )
        self.status_code = status_code


def require_principal(user_id: Any) -> None:
    """Fail closed when no principal was resolved for the call."""
    if user_id is None:
        raise UnauthenticatedError()
