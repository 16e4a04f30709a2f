"""
Repository pattern for database operations.

Provides a clean abstraction over SQLAlchemy for the transcript and creator
profile tables.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from impression_studio.db.models import Base, CreatorProfileModel, TranscriptModel
from impression_studio.orchestrator.schemas import CreatorProfile, TranscriptRecord

T = TypeVar("T", bound=Base)


def _uuid(value: str | UUID) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    @property
    @abstractmethod
    def _model_class(self) -> type[T]:
        """Get the model class for this repository."""
        ...

    async def get_by_id(self, entity_id: str | UUID) -> T | None:
        """
        Get an entity by its primary key.

        Args:
            entity_id: The entity's UUID.

        Returns:
            The entity if found, None otherwise.
        """
        return await self._session.get(self._model_class, _uuid(entity_id))

    async def create(self, entity: T) -> T:
        """
        Create a new entity.

        Args:
            entity: The entity to create.

        Returns:
            The created entity.
        """
        self._session.add(entity)
        await self._session.flush()
        await self._session.refresh(entity)
        return entity

    async def delete(self, entity: T) -> None:
        """
        Delete an entity.

        Args:
            entity: The entity to delete.
        """
        await self._session.delete(entity)
        await self._session.flush()


def transcript_to_record(model: TranscriptModel) -> TranscriptRecord:
    """Convert a transcript row to its schema."""
    return TranscriptRecord(
        id=str(model.id),
        session_id=str(model.session_id),
        question_index=model.question_index,
        question=model.question,
        transcript=model.transcript,
        video_path=model.video_path,
        audio_path=model.audio_path,
        duration_seconds=model.duration_seconds,
        user_id=str(model.user_id),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class TranscriptRepository(BaseRepository[TranscriptModel]):
    """Repository for recorded answers."""

    @property
    def _model_class(self) -> type[TranscriptModel]:
        """Get the model class."""
        return TranscriptModel

    async def insert(self, record: TranscriptRecord) -> TranscriptModel:
        """
        Insert one answer row.

        Args:
            record: The answer to store.

        Returns:
            The created row.
        """
        model = TranscriptModel(
            session_id=_uuid(record.session_id),
            user_id=_uuid(record.user_id),
            question_index=record.question_index,
            question=record.question,
            transcript=record.transcript,
            video_path=record.video_path,
            audio_path=record.audio_path,
            duration_seconds=record.duration_seconds,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        if record.id:
            model.id = _uuid(record.id)
        return await self.create(model)

    async def list_for_user(self, user_id: str, limit: int = 1000) -> list[TranscriptModel]:
        """
        List a user's rows, newest first.

        Args:
            user_id: Owner id.
            limit: Maximum number to return.

        Returns:
            List of rows.
        """
        stmt = (
            select(TranscriptModel)
            .where(TranscriptModel.user_id == _uuid(user_id))
            .order_by(TranscriptModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_session(self, user_id: str, session_id: str) -> list[TranscriptModel]:
        """Rows of one session, ordered by question index."""
        stmt = (
            select(TranscriptModel)
            .where(
                TranscriptModel.user_id == _uuid(user_id),
                TranscriptModel.session_id == _uuid(session_id),
            )
            .order_by(TranscriptModel.question_index, TranscriptModel.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def delete_session(self, user_id: str, session_id: str) -> int:
        """
        Delete every row of a session.

        Returns:
            Number of rows deleted.
        """
        stmt = delete(TranscriptModel).where(
            TranscriptModel.user_id == _uuid(user_id),
            TranscriptModel.session_id == _uuid(session_id),
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount or 0


class CreatorProfileRepository(BaseRepository[CreatorProfileModel]):
    """Repository for creator profiles."""

    @property
    def _model_class(self) -> type[CreatorProfileModel]:
        """Get the model class."""
        return CreatorProfileModel

    async def get_profile(self, user_id: str) -> CreatorProfile | None:
        """Load a user's profile, if any."""
        model = await self.get_by_id(user_id)
        if model is None:
            return None
        return CreatorProfile(
            user_id=str(model.user_id),
            bio=model.bio or "",
            goals=model.goals or "",
            niche=model.niche or "",
            audience=model.audience or "",
            tone=model.tone or "",
            links=list(model.links or []),
            brand_keywords=list(model.brand_keywords or []),
            do_donts=dict(model.do_donts or {"do": [], "dont": []}),
            ctas=list(model.ctas or []),
            platform_prefs=dict(model.platform_prefs or {}),
            cadence=model.cadence or "",
            auto_generation_enabled=model.auto_generation_enabled,
        )

    async def upsert(self, profile: CreatorProfile) -> CreatorProfileModel:
        """
        Insert or update a profile keyed by user id.

        Args:
            profile: Profile data.

        Returns:
            The stored row.
        """
        values = profile.model_dump(exclude={"user_id"})
        model = await self.get_by_id(profile.user_id)
        if model is None:
            return await self.create(CreatorProfileModel(user_id=_uuid(profile.user_id), **values))

        for key, value in values.items():
            setattr(model, key, value)
        await self._session.flush()
        await self._session.refresh(model)
        return model
