"""Text-to-speech (remote).

Synthesis runs in the `elevenlabs-tts` edge function, which returns base64
audio plus its MIME type. The function substitutes a default voice itself when
the requested one is not found; no substitution happens here.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass

from impression_studio.models.edge_functions import EdgeFunctionClient
from impression_studio.orchestrator.errors import EmptyAIResult, RemoteCallFailed

logger = logging.getLogger(__name__)

TTS_FUNCTION = "elevenlabs-tts"


@dataclass(frozen=True)
class SynthesizedAudio:
    data: bytes
    mime_type: str = "audio/mpeg"

    @property
    def extension(self) -> str:
        subtype = self.mime_type.split("/")[-1].split(";")[0].strip()
        return {"mpeg": "mp3", "x-wav": "wav"}.get(subtype, subtype or "bin")


class SpeechSynthesizer:
    """Interviewer voice synthesis through the TTS edge function."""

    def __init__(self, functions: EdgeFunctionClient | None = None) -> None:
        self._functions = functions or EdgeFunctionClient()

    async def synthesize(self, text: str, voice_id: str | None = None) -> SynthesizedAudio:
        """Synthesize `text` exactly as given.

        Raises:
            EmptyAIResult: text was blank or the function returned no audio.
            RemoteCallFailed: the call failed or the audio could not be decoded.
        """
        text = (text or "").strip()
        if not text:
            raise EmptyAIResult("Nothing to synthesize", step=TTS_FUNCTION)

        body: dict[str, str] = {"text": text}
        if voice_id:
            body["voiceId"] = voice_id

        data = await self._functions.invoke(TTS_FUNCTION, body)
        content = data.get("audioContent")
        if not isinstance(content, str) or not content:
            raise EmptyAIResult("Speech synthesis returned no audio", step=TTS_FUNCTION)

        try:
            audio = base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError) as e:
            raise RemoteCallFailed("Speech synthesis returned undecodable audio", step=TTS_FUNCTION) from e

        mime_type = data.get("mimeType")
        logger.debug(f"[VOICE][TTS] synthesized {len(audio)} bytes for {len(text)} chars")
        return SynthesizedAudio(
            data=audio,
            mime_type=mime_type if isinstance(mime_type, str) and mime_type else "audio/mpeg",
        )
