from .session import DocumentSyncSession, SyncState
from .transport import HttpNoteTransport, NoteTransport

__all__ = [
    "DocumentSyncSession",
    "HttpNoteTransport",
    "NoteTransport",
    "SyncState",
]
