"""
Persistence of recorded sessions.

Media goes to object storage, answer rows to the relational store.
"""

from impression_studio.persistence.object_store import SupabaseObjectStore
from impression_studio.persistence.session_persistence import (
    AnswerArchive,
    SessionPersistence,
    media_path,
    summarize_sessions,
)

__all__ = [
    "AnswerArchive",
    "SessionPersistence",
    "SupabaseObjectStore",
    "media_path",
    "summarize_sessions",
]
