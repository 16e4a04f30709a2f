"""
Database module for persistence.

Provides SQLAlchemy models and repository pattern for
recorded answers and creator profiles.
"""

from impression_studio.db.models import Base, CreatorProfileModel, TranscriptModel
from impression_studio.db.repository import (
    CreatorProfileRepository,
    TranscriptRepository,
    transcript_to_record,
)

__all__ = [
    "Base",
    "CreatorProfileModel",
    "TranscriptModel",
    "CreatorProfileRepository",
    "TranscriptRepository",
    "transcript_to_record",
]
