from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from impression_studio.db.models import TranscriptModel
from impression_studio.db.repository import CreatorProfileRepository
from impression_studio.orchestrator.errors import RemoteCallFailed
from impression_studio.orchestrator.schemas import CreatorProfile, MediaBlob, Recording, TranscriptRecord
from impression_studio.persistence.session_persistence import (
    SessionPersistence,
    media_path,
    summarize_sessions,
)

USER_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"
SESSION_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"


class FakeStore:
    def __init__(self, fail: bool = False, names: list[str] | None = None) -> None:
        self.fail = fail
        self.names = names or []
        self.uploads: list[tuple[str, bytes, str]] = []
        self.removed: list[list[str]] = []
        self.listed: list[str] = []

    async def upload(self, path: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        if self.fail:
            raise RemoteCallFailed("Bucket not found", step="object-store.upload", status_code=404)
        self.uploads.append((path, data, content_type))
        return path

    async def list(self, prefix: str) -> list[str]:
        self.listed.append(prefix)
        return list(self.names)

    async def remove(self, paths: list[str]) -> None:
        self.removed.append(paths)

    async def close(self) -> None:
        pass


class _Transaction:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        return None


class FakeSession:
    """Just enough of AsyncSession for the transcript repository."""

    def __init__(self, rowcount: int = 0) -> None:
        self.added: list[TranscriptModel] = []
        self.executed: list = []
        self._rowcount = rowcount

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    def begin(self) -> _Transaction:
        return _Transaction()

    def add(self, model) -> None:
        self.added.append(model)

    async def flush(self) -> None:
        pass

    async def refresh(self, model) -> None:
        if model.id is None:
            model.id = uuid.uuid4()

    async def execute(self, stmt):
        self.executed.append(stmt)
        return SimpleNamespace(rowcount=self._rowcount)


def _record(session_id: str, created_at: datetime, duration: int | None) -> TranscriptRecord:
    return TranscriptRecord(
        session_id=session_id,
        question_index=0,
        question="Q",
        duration_seconds=duration,
        user_id=USER_ID,
        created_at=created_at,
    )


def test_media_path_layout() -> None:
    stamp = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    path = media_path("u1", "s1", 3, MediaBlob(data=b"x", content_type="video/webm;codecs=vp9"), stamp)
    assert path == f"u1/s1/q03-{int(stamp.timestamp() * 1000)}.webm"


def test_summarize_sessions_groups_and_orders() -> None:
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    records = [
        _record("old", base, 10),
        _record("old", base + timedelta(minutes=1), None),
        _record("new", base + timedelta(days=1), 7),
        _record("new", base + timedelta(days=1, minutes=2), 5),
        _record("new", base + timedelta(days=1, minutes=3), 1),
    ]

    summaries = summarize_sessions(records)

    assert [s.session_id for s in summaries] == ["new", "old"]
    assert summaries[0].question_count == 3
    assert summaries[0].total_duration == 13
    assert summaries[0].created_at == base + timedelta(days=1)
    assert summaries[1].total_duration == 10


@pytest.mark.asyncio
async def test_save_answer_uploads_then_inserts_row() -> None:
    store = FakeStore()
    db = FakeSession()
    archive = SessionPersistence(store=store, session_factory=lambda: db)
    recording = Recording(
        question_index=1,
        question="What changed?",
        media=MediaBlob(data=b"webm-bytes", content_type="video/webm"),
        duration=12,
    )

    stored = await archive.save_answer(USER_ID, SESSION_ID, recording, "It all changed")

    path, data, content_type = store.uploads[0]
    assert path.startswith(f"{USER_ID}/{SESSION_ID}/q01-")
    assert path.endswith(".webm")
    assert data == b"webm-bytes"
    assert content_type == "video/webm"

    row = db.added[0]
    assert row.question == "What changed?"
    assert row.transcript == "It all changed"
    assert row.video_path == path
    assert row.audio_path is None
    assert row.duration_seconds == 12
    assert stored.session_id == SESSION_ID
    assert stored.user_id == USER_ID


@pytest.mark.asyncio
async def test_audio_answers_use_audio_path() -> None:
    store = FakeStore()
    db = FakeSession()
    archive = SessionPersistence(store=store, session_factory=lambda: db)
    recording = Recording(
        question_index=0,
        question="Q",
        media=MediaBlob(data=b"RIFF", content_type="audio/wav"),
    )

    await archive.save_answer(USER_ID, SESSION_ID, recording, None)

    assert db.added[0].audio_path.endswith(".wav")
    assert db.added[0].video_path is None


@pytest.mark.asyncio
async def test_upload_failure_writes_no_row() -> None:
    db = FakeSession()
    archive = SessionPersistence(store=FakeStore(fail=True), session_factory=lambda: db)
    recording = Recording(question_index=0, question="Q", media=MediaBlob(data=b"x"))

    with pytest.raises(RemoteCallFailed):
        await archive.save_answer(USER_ID, SESSION_ID, recording, "text")

    assert db.added == []


@pytest.mark.asyncio
async def test_delete_session_removes_media_and_rows() -> None:
    store = FakeStore(names=["q00-1.webm", "q01-2.webm"])
    db = FakeSession(rowcount=2)
    archive = SessionPersistence(store=store, session_factory=lambda: db)

    deleted = await archive.delete_session(USER_ID, SESSION_ID)

    assert deleted == 2
    assert store.listed == [f"{USER_ID}/{SESSION_ID}"]
    assert store.removed == [[f"{USER_ID}/{SESSION_ID}/q00-1.webm", f"{USER_ID}/{SESSION_ID}/q01-2.webm"]]
    assert len(db.executed) == 1


class ProfileSession(FakeSession):
    def __init__(self) -> None:
        super().__init__()
        self.rows: dict = {}

    async def get(self, model_class, key):
        return self.rows.get(key)

    def add(self, model) -> None:
        super().add(model)
        self.rows[model.user_id] = model

    async def refresh(self, model) -> None:
        pass


@pytest.mark.asyncio
async def test_creator_profile_upsert_and_get() -> None:
    db = ProfileSession()
    repo = CreatorProfileRepository(db)

    await repo.upsert(CreatorProfile(user_id=USER_ID, niche="fitness", links=["https://example.com"]))
    await repo.upsert(CreatorProfile(user_id=USER_ID, niche="running", ctas=["Subscribe"]))
    profile = await repo.get_profile(USER_ID)

    assert len(db.added) == 1
    assert profile is not None
    assert profile.niche == "running"
    assert profile.links == []
    assert profile.ctas == ["Subscribe"]
    assert profile.do_donts == {"do": [], "dont": []}
    assert await repo.get_profile("11111111-1111-1111-1111-111111111111") is None
