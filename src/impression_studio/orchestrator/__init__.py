"""
Orchestrator module for the recording session flow.

The RecordingStudio itself lives in `impression_studio.orchestrator.recording_studio`;
this package namespace only exposes the shared types, so the gateway modules
can import them without pulling in the orchestrator.
"""

from impression_studio.orchestrator.errors import (
    AudioUnavailable,
    EmptyAIResult,
    InvalidTransition,
    NoAgentSelected,
    PermissionDenied,
    PlaybackFailed,
    RecordingFailed,
    RemoteCallFailed,
    SessionIncomplete,
    StudioError,
    Unauthenticated,
)
from impression_studio.orchestrator.schemas import (
    Agent,
    Question,
    Recording,
    SessionConfig,
    StudioOptions,
    StudioPhase,
    Voice,
)

__all__ = [
    "Agent",
    "AudioUnavailable",
    "EmptyAIResult",
    "InvalidTransition",
    "NoAgentSelected",
    "PermissionDenied",
    "PlaybackFailed",
    "Question",
    "Recording",
    "RecordingFailed",
    "RemoteCallFailed",
    "SessionConfig",
    "SessionIncomplete",
    "StudioError",
    "StudioOptions",
    "StudioPhase",
    "Unauthenticated",
    "Voice",
]
