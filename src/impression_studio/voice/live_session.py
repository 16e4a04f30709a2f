"""Live voice-conversation channel.

While an answer is being recorded, the configured conversational agent can
listen in over a websocket. The channel is best-effort: the studio keeps
recording when it cannot be opened, and closing it never raises.

Vendor events are decoded into small typed variants at this boundary; unknown
event types are ignored.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
from urllib.parse import urlencode

import websockets

from impression_studio.config import get_settings
from impression_studio.models.edge_functions import EdgeFunctionClient
from impression_studio.orchestrator.errors import RemoteCallFailed

logger = logging.getLogger(__name__)

SIGNED_URL_FUNCTION = "elevenlabs-signed-url"

INTERVIEWER_INSTRUCTIONS = (
    "Instructions: You are an expert interviewer. Conduct a natural voice conversation. "
    "Ask one question at a time. Adapt based on answers. Wrap up when satisfied "
    "(no fixed number of questions). Avoid reading context verbatim; use it to personalize."
)


@dataclass(frozen=True)
class LiveOverrides:
    """Per-conversation prompt and voice overrides sent when the channel opens."""

    title: str = ""
    voice_id: str | None = None
    profile_url: str | None = None
    profile_summary: str | None = None
    language: str = "en"

    def prompt(self) -> str:
        intro = f"Interview Title: {self.title or 'Untitled'}\n"
        if self.profile_url:
            intro += f"Reference URL: {self.profile_url}\n"
        if self.profile_summary:
            intro += f"Profile Summary (use as context):\n{self.profile_summary}\n"
        return f"{intro}\n{INTERVIEWER_INSTRUCTIONS}"

    def first_message(self) -> str:
        return (
            f"Hi! Let’s begin our interview about “{self.title or 'your topic'}”. "
            "I’ll guide you with a few questions. Ready?"
        )

    def to_payload(self) -> dict[str, Any]:
        override: dict[str, Any] = {
            "agent": {
                "prompt": {"prompt": self.prompt()},
                "first_message": self.first_message(),
                "language": self.language,
            }
        }
        if self.voice_id:
            override["tts"] = {"voice_id": self.voice_id}
        return {
            "type": "conversation_initiation_client_data",
            "conversation_config_override": override,
        }


@dataclass(frozen=True)
class UserTranscript:
    text: str


@dataclass(frozen=True)
class AgentResponse:
    text: str


@dataclass(frozen=True)
class Ping:
    event_id: int | None = None


LiveEvent = UserTranscript | AgentResponse | Ping


def decode_event(raw: str | bytes) -> LiveEvent | None:
    """Decode one vendor message. Returns None for malformed or unknown events."""
    try:
        event = json.loads(raw)
    except (json.JSONDecodeError, TypeError, UnicodeDecodeError):
        return None
    if not isinstance(event, dict):
        return None

    event_type = event.get("type")
    if event_type == "user_transcript":
        body = event.get("user_transcription_event") or {}
        text = body.get("user_transcript") if isinstance(body, dict) else None
        if isinstance(text, str) and text.strip():
            return UserTranscript(text=text.strip())
        return None
    if event_type == "agent_response":
        body = event.get("agent_response_event") or {}
        text = body.get("agent_response") if isinstance(body, dict) else None
        if isinstance(text, str) and text.strip():
            return AgentResponse(text=text.strip())
        return None
    if event_type == "ping":
        body = event.get("ping_event") or {}
        event_id = body.get("event_id") if isinstance(body, dict) else None
        return Ping(event_id=event_id if isinstance(event_id, int) else None)
    return None


Connector = Callable[[str], Awaitable[Any]]


@dataclass
class LiveTranscript:
    user_lines: list[str] = field(default_factory=list)
    agent_lines: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        """What the user said, in order."""
        return "\n".join(self.user_lines).strip()


class LiveVoiceSession:
    def __init__(
        self,
        functions: EdgeFunctionClient | None = None,
        *,
        connect: Connector | None = None,
        public_url: str | None = None,
    ) -> None:
        self._functions = functions or EdgeFunctionClient()
        self._connect = connect or websockets.connect
        self._public_url = public_url or get_settings().elevenlabs_convai_url
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._transcript = LiveTranscript()

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    @property
    def transcript(self) -> LiveTranscript:
        return self._transcript

    async def _resolve_url(self, agent_id: str) -> str:
        try:
            data = await self._functions.invoke(SIGNED_URL_FUNCTION, {"agentId": agent_id})
        except RemoteCallFailed as e:
            logger.info(f"[VOICE][LIVE] signed url unavailable, using public endpoint: {e}")
            data = {}
        url = data.get("signed_url") or data.get("url")
        if isinstance(url, str) and url:
            return url
        return f"{self._public_url}?{urlencode({'agent_id': agent_id})}"

    async def open(self, agent_id: str, overrides: LiveOverrides | None = None) -> None:
        """Connect to the agent and start collecting transcript events.

        Raises:
            RemoteCallFailed: the channel could not be opened.
        """
        if self._ws is not None:
            await self.close()

        self._transcript = LiveTranscript()
        url = await self._resolve_url(agent_id)
        try:
            self._ws = await self._connect(url)
            await self._ws.send(json.dumps((overrides or LiveOverrides()).to_payload()))
        except (OSError, websockets.WebSocketException) as e:
            self._ws = None
            raise RemoteCallFailed(f"Live voice channel failed: {e}", step="live-voice-session.start") from e

        self._reader = asyncio.create_task(self._read_loop(self._ws))
        logger.info(f"[VOICE][LIVE] connected agent={agent_id}")

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for message in ws:
                event = decode_event(message)
                if isinstance(event, UserTranscript):
                    self._transcript.user_lines.append(event.text)
                elif isinstance(event, AgentResponse):
                    self._transcript.agent_lines.append(event.text)
                elif isinstance(event, Ping) and event.event_id is not None:
                    await ws.send(json.dumps({"type": "pong", "event_id": event.event_id}))
        except websockets.ConnectionClosed:
            logger.debug("[VOICE][LIVE] connection closed by peer")

    async def send_audio_chunk(self, chunk: bytes) -> None:
        """Forward captured audio to the agent. Dropped when the channel is closed."""
        if self._ws is None or not chunk:
            return
        try:
            await self._ws.send(json.dumps({"user_audio_chunk": base64.b64encode(chunk).decode("ascii")}))
        except websockets.ConnectionClosed:
            logger.debug("[VOICE][LIVE] dropped audio chunk after close")

    async def close(self) -> str:
        """End the conversation and return the user's transcript. Never raises."""
        ws = self._ws
        self._ws = None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f"[VOICE][LIVE] close failed: {e}")

        reader = self._reader
        self._reader = None
        if reader is not None:
            try:
                await asyncio.wait_for(reader, timeout=2.0)
            except asyncio.TimeoutError:
                reader.cancel()
            except Exception as e:
                logger.warning(f"[VOICE][LIVE] reader ended with error: {e}")

        return self._transcript.text
