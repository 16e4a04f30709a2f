"""Interviewer audio playback.

Synthesized questions arrive as encoded audio (MP3 from the TTS function).
The terminal studio keeps each clip under the session's artifacts directory,
decodes it with `soundfile` (MP3 needs libsndfile 1.1 or newer) and plays it
through `sounddevice`.
"""

from __future__ import annotations

import asyncio
import io
import logging
import time
from pathlib import Path
from typing import Protocol

from impression_studio.orchestrator.errors import AudioUnavailable, PlaybackFailed
from impression_studio.voice.tts import SynthesizedAudio

logger = logging.getLogger(__name__)


class AudioSink(Protocol):
    async def play(self, audio: SynthesizedAudio, *, label: str = "") -> None:
        """Play one clip. Raises PlaybackFailed or AudioUnavailable."""
        ...


def _require_playback_libs():
    try:
        import sounddevice as sd  # type: ignore
        import soundfile as sf  # type: ignore

        return sd, sf
    except (ImportError, OSError) as e:
        raise AudioUnavailable(
            "sounddevice and soundfile are required for playback. Install Python deps with: pip install -e '.[voice]'."
        ) from e


class ClipWriter:
    """Writes each clip to disk, then plays it unless `play_audio` is off."""

    def __init__(self, out_dir: str | Path, *, play_audio: bool = True) -> None:
        self._out_dir = Path(out_dir)
        self._play_audio = play_audio
        self.last_path: Path | None = None

    def write(self, audio: SynthesizedAudio, label: str = "") -> Path:
        self._out_dir.mkdir(parents=True, exist_ok=True)
        stem = label or "clip"
        path = self._out_dir / f"{stem}-{int(time.time() * 1000)}.{audio.extension}"
        path.write_bytes(audio.data)
        self.last_path = path
        return path

    async def play(self, audio: SynthesizedAudio, *, label: str = "") -> None:
        try:
            path = self.write(audio, label)
        except OSError as e:
            raise PlaybackFailed(f"Could not save clip: {e}") from e
        logger.info(f"[VOICE][PLAY] clip saved to {path}")
        if self._play_audio:
            await play_encoded(audio.data)


async def play_encoded(data: bytes) -> None:
    """Decode an encoded clip (MP3, WAV, OGG, FLAC) and play it to the end.

    Raises:
        AudioUnavailable: sounddevice or soundfile is missing.
        PlaybackFailed: the clip could not be decoded or the output device failed.
    """
    sd, sf = _require_playback_libs()
    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32")
    except (RuntimeError, ValueError, TypeError) as e:
        raise PlaybackFailed(f"Could not decode audio: {e}") from e

    try:
        sd.play(samples, samplerate=sample_rate, blocking=False)
        await asyncio.to_thread(sd.wait)
    except (sd.PortAudioError, OSError, ValueError) as e:
        raise PlaybackFailed(f"Audio output failed: {e}") from e
