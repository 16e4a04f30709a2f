"""
Error taxonomy for the recording studio.

Hard preconditions (permissions, sign-in, agent choice) are raised to the
caller. Remote failures are raised by the gateways and recovered by the
orchestrator with a fallback plus a notification.
"""


class StudioError(Exception):
    """Base class for all studio errors."""


class PermissionDenied(StudioError):
    """Camera or microphone access was refused or is unavailable."""


class Unauthenticated(StudioError):
    """An action that needs a signed-in user was attempted without one."""


class NoAgentSelected(StudioError):
    """Recording was attempted without a valid conversational agent."""


class RemoteCallFailed(StudioError):
    """A gateway call failed (transport error, non-2xx, or undecodable body)."""

    def __init__(self, message: str, step: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.step = step
        self.status_code = status_code


class EmptyAIResult(StudioError):
    """A gateway call succeeded but returned no usable content."""

    def __init__(self, message: str, step: str = "") -> None:
        super().__init__(message)
        self.step = step


class InvalidTransition(StudioError):
    """The requested operation is not valid in the current phase."""


class SessionIncomplete(InvalidTransition):
    """Completion was requested while some questions have no recording."""


class RecordingFailed(StudioError):
    """The recorder could not finalize the answer."""


class AudioUnavailable(StudioError):
    """The audio backend (sounddevice, soundfile or PortAudio) is not installed."""


class PlaybackFailed(StudioError):
    """Synthesized audio could not be decoded or played."""
