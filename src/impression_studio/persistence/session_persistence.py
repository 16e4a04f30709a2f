"""
Session archive.

Each answered question is persisted as a media object in the recordings
bucket plus one transcript row. Sessions are listed by grouping rows on
`session_id` and deleted by removing both their media and their rows.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from impression_studio.config import get_settings
from impression_studio.db.repository import TranscriptRepository, transcript_to_record
from impression_studio.orchestrator.schemas import MediaBlob, Recording, SessionSummary, TranscriptRecord
from impression_studio.persistence.object_store import SupabaseObjectStore

logger = logging.getLogger(__name__)


class AnswerArchive(Protocol):
    async def save_answer(
        self,
        user_id: str,
        session_id: str,
        recording: Recording,
        transcript: str | None,
    ) -> TranscriptRecord: ...


def media_path(user_id: str, session_id: str, question_index: int, blob: MediaBlob, stamp: datetime) -> str:
    """Object path for one answer: `{user}/{session}/q{index:02d}-{millis}.{ext}`."""
    return f"{user_id}/{session_id}/q{question_index:02d}-{int(stamp.timestamp() * 1000)}.{blob.extension}"


def summarize_sessions(records: list[TranscriptRecord]) -> list[SessionSummary]:
    """
    Group rows into per-session summaries, newest session first.

    A session's created_at is its earliest row; question_count counts rows and
    total_duration sums known durations.
    """
    grouped: dict[str, list[TranscriptRecord]] = defaultdict(list)
    for record in records:
        grouped[record.session_id].append(record)

    summaries = [
        SessionSummary(
            session_id=session_id,
            created_at=min(r.created_at for r in rows),
            question_count=len(rows),
            total_duration=sum(r.duration_seconds or 0 for r in rows),
        )
        for session_id, rows in grouped.items()
    ]
    summaries.sort(key=lambda s: s.created_at, reverse=True)
    return summaries


class SessionPersistence:
    """
    Answer archive backed by object storage and the relational store.

    Attributes:
        store: Media object store.
    """

    def __init__(
        self,
        store: SupabaseObjectStore | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """
        Initialize the archive.

        Args:
            store: Object store (creates default if None).
            session_factory: SQLAlchemy session factory (built from config if None).
        """
        self.store = store or SupabaseObjectStore()
        if session_factory is None:
            engine = create_async_engine(get_settings().database_url)
            session_factory = async_sessionmaker(engine, expire_on_commit=False)
        self._session_factory = session_factory

    async def close(self) -> None:
        await self.store.close()

    async def save_answer(
        self,
        user_id: str,
        session_id: str,
        recording: Recording,
        transcript: str | None,
    ) -> TranscriptRecord:
        """
        Upload the answer's media, then insert its transcript row.

        Raises:
            RemoteCallFailed: If the upload fails (no row is written).
        """
        video_path: str | None = None
        audio_path: str | None = None
        media = recording.media
        if media is not None and media.data:
            path = media_path(user_id, session_id, recording.question_index, media, recording.recorded_at)
            await self.store.upload(path, media.data, media.content_type)
            if media.content_type.startswith("audio/"):
                audio_path = path
            else:
                video_path = path

        now = datetime.now(timezone.utc)
        record = TranscriptRecord(
            session_id=session_id,
            question_index=recording.question_index,
            question=recording.question,
            transcript=transcript,
            video_path=video_path,
            audio_path=audio_path,
            duration_seconds=recording.duration,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )

        async with self._session_factory() as session:
            async with session.begin():
                model = await TranscriptRepository(session).insert(record)
                stored = transcript_to_record(model)
        logger.info(f"Saved answer q{recording.question_index} for session {session_id}")
        return stored

    async def list_records(self, user_id: str) -> list[TranscriptRecord]:
        async with self._session_factory() as session:
            rows = await TranscriptRepository(session).list_for_user(user_id)
            return [transcript_to_record(r) for r in rows]

    async def list_sessions(self, user_id: str) -> list[SessionSummary]:
        """Summaries of the user's sessions, newest first."""
        return summarize_sessions(await self.list_records(user_id))

    async def delete_session(self, user_id: str, session_id: str) -> int:
        """
        Delete a session's media and rows.

        Returns:
            Number of rows deleted.
        """
        prefix = f"{user_id}/{session_id}"
        names = await self.store.list(prefix)
        await self.store.remove([f"{prefix}/{name}" for name in names])

        async with self._session_factory() as session:
            async with session.begin():
                deleted = await TranscriptRepository(session).delete_session(user_id, session_id)
        logger.info(f"Deleted session {session_id}: {len(names)} objects, {deleted} rows")
        return deleted
