"""
Pydantic schemas for the orchestrator module.

Defines data models for questions, recordings, catalog entries, persisted
transcripts, and the session configuration value object.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def _now_utc() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


Persona = Literal["professional", "flirty", "empathetic", "philosophical"]
TitleCategory = Literal["career", "dating", "unknown"]


class StudioPhase(str, Enum):
    """Phases of the recording studio state machine."""

    AWAITING_PERMISSIONS = "awaiting_permissions"
    READY = "ready"
    RECORDING = "recording"
    REVIEWING = "reviewing"
    COMPLETED = "completed"


class Question(BaseModel):
    """A planned interview question, possibly overridden by a follow-up."""

    index: int = Field(..., ge=0, description="Position in the question list")
    text: str = Field(..., description="Originally planned question text")
    override: str | None = Field(
        default=None,
        description="Follow-up text generated after the previous answer",
    )

    @property
    def display_text(self) -> str:
        """Text shown to the user and sent for synthesis."""
        return self.override or self.text


class MediaBlob(BaseModel):
    """Finalized captured media."""

    data: bytes = Field(default=b"", description="Encoded media bytes")
    content_type: str = Field(default="video/webm", description="MIME type of the media")

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        """File extension derived from the content type."""
        subtype = self.content_type.split("/")[-1].split(";")[0].strip()
        return {"mpeg": "mp3", "x-wav": "wav"}.get(subtype, subtype or "bin")


class Recording(BaseModel):
    """A captured answer for one question index."""

    question_index: int = Field(..., ge=0, description="Index of the answered question")
    question: str = Field(..., description="Question text at capture time")
    media: MediaBlob | None = Field(default=None, description="Captured media, if any")
    duration: int = Field(default=0, ge=0, description="Wall-clock capture time in whole seconds")
    recorded_at: datetime = Field(default_factory=_now_utc, description="When capture stopped")


class HistoryEntry(BaseModel):
    """One question/answer pair sent to the generation gateway."""

    question: str = Field(..., description="Question as it was asked")
    summary: str = Field(..., description="Transcript or summary of the answer")


class Agent(BaseModel):
    """A conversational interviewer agent."""

    id: str = Field(..., description="Vendor agent identifier")
    name: str = Field(default="Unnamed Agent", description="Display name")
    description: str | None = Field(default=None, description="Optional description")
    voice_id: str | None = Field(default=None, description="Default TTS voice")
    tags: list[str] = Field(default_factory=list, description="Selection tags (career, dating, ...)")


class Voice(BaseModel):
    """A TTS voice."""

    id: str = Field(..., description="Vendor voice identifier")
    name: str = Field(default="Unnamed Voice", description="Display name")
    preview_url: str | None = Field(default=None, description="Sample audio URL")
    language: str | None = Field(default=None, description="Voice language")
    labels: list[str] = Field(default_factory=list, description="Vendor labels")
    high_quality: bool | None = Field(default=None, description="Vendor quality flag")


class AgentSelection(BaseModel):
    """Result of choosing an agent for an interview title."""

    agent_id: str = Field(..., description="Chosen agent id")
    reason: str = Field(..., description="Human-readable explanation")
    source: Literal["rule", "gemini"] = Field(..., description="Which path produced the choice")
    category: TitleCategory = Field(default="unknown", description="Classified title category")


class VideoPreferences(BaseModel):
    """Production preferences extracted from the interview history."""

    model_config = ConfigDict(extra="allow")

    tone: str | None = None
    pacing: str | None = None
    visual_style: str | None = None
    color_palette: str | None = None
    aspect_ratio: str | None = None
    caption_style: str | None = None
    background: str | None = None
    music: str | None = None
    transitions: str | None = None
    must_avoid: list[str] = Field(default_factory=list)
    unresolved_questions: list[str] = Field(default_factory=list)


class StudioOptions(BaseModel):
    """Recognized variations of the recording flow."""

    use_live_voice_agent: bool = Field(
        default=True,
        description="Open a live voice-conversation channel while recording",
    )
    allow_custom_agent_id: bool = Field(
        default=False,
        description="Accept agent ids that are not in the catalog",
    )
    collect_profile_url: bool = Field(
        default=False,
        description="Summarize the configured profile URL as interview context",
    )
    persona_selection_enabled: bool = Field(
        default=False,
        description="Honor the configured persona instead of 'professional'",
    )


class SessionConfig(BaseModel):
    """Device-local choices, loaded and saved through the session store."""

    agent_id: str | None = Field(default=None, description="Chosen conversational agent")
    voice_id: str | None = Field(default=None, description="Chosen interviewer voice")
    studio: str | None = Field(default=None, description="Chosen studio background")
    resume_session_id: str | None = Field(default=None, description="Session to resume")
    topic: str | None = Field(default=None, description="Interview topic")
    intent: str = Field(default="Custom", description="Interview intent")
    question_count: int = Field(default=5, ge=1, le=20, description="Requested number of questions")
    persona: Persona = Field(default="professional", description="Interviewer persona")
    profile_url: str | None = Field(default=None, description="Profile page used as context")


class TranscriptRecord(BaseModel):
    """A persisted answer row."""

    id: str | None = Field(default=None, description="Row id")
    session_id: str = Field(..., description="Session grouping id")
    question_index: int = Field(..., ge=0, description="Answered question index")
    question: str = Field(..., description="Question text")
    transcript: str | None = Field(default=None, description="Answer transcript")
    video_path: str | None = Field(default=None, description="Storage path of video media")
    audio_path: str | None = Field(default=None, description="Storage path of audio media")
    duration_seconds: int | None = Field(default=None, description="Answer duration")
    user_id: str = Field(..., description="Owner id")
    created_at: datetime = Field(default_factory=_now_utc)
    updated_at: datetime = Field(default_factory=_now_utc)


class SessionSummary(BaseModel):
    """Aggregate view of one recorded session."""

    session_id: str
    created_at: datetime
    question_count: int
    total_duration: int


class CreatorProfile(BaseModel):
    """Creator profile stored alongside the user's sessions."""

    user_id: str
    bio: str = ""
    goals: str = ""
    niche: str = ""
    audience: str = ""
    tone: str = ""
    links: list[str] = Field(default_factory=list)
    brand_keywords: list[str] = Field(default_factory=list)
    do_donts: dict[str, list[str]] = Field(default_factory=lambda: {"do": [], "dont": []})
    ctas: list[str] = Field(default_factory=list)
    platform_prefs: dict[str, Any] = Field(default_factory=dict)
    cadence: str = ""
    auto_generation_enabled: bool = False
