"""Media capture (hardware I/O).

The studio only talks to the narrow protocols below, so it never knows whether
media comes from a real device or a test double. `SoundDeviceMedia` is the
real implementation: microphone-only capture through `sounddevice`, finalized
into an in-memory WAV blob.
"""

from __future__ import annotations

import asyncio
import io
import logging
import wave
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

import numpy as np

from impression_studio.orchestrator.errors import AudioUnavailable, PermissionDenied
from impression_studio.orchestrator.schemas import MediaBlob

logger = logging.getLogger(__name__)

ChunkHandler = Callable[[bytes], Awaitable[None]]


class MediaStream(Protocol):
    @property
    def active(self) -> bool: ...

    def stop(self) -> None: ...


class MediaRecorder(Protocol):
    async def start(self, on_chunk: ChunkHandler | None = None) -> None: ...

    async def stop(self) -> MediaBlob: ...


class MediaDevices(Protocol):
    async def get_user_media(self) -> MediaStream:
        """Acquire the capture stream. Raises PermissionDenied when refused."""
        ...

    def create_recorder(self, stream: MediaStream) -> MediaRecorder: ...


@dataclass(frozen=True)
class AudioIOConfig:
    sample_rate: int = 16000
    channels: int = 1
    dtype: str = "int16"  # sounddevice dtype and WAV sample width


def _require_sounddevice():
    try:
        import sounddevice as sd  # type: ignore

        return sd
    except (ImportError, OSError) as e:
        raise AudioUnavailable(
            "sounddevice is required for recording. Install Python deps with: pip install -e '.[voice]'. "
            "If you see 'PortAudio library not found', install PortAudio (Debian/Ubuntu: sudo apt-get install portaudio19-dev)."
        ) from e


def encode_wav(audio: np.ndarray, config: AudioIOConfig) -> bytes:
    """Encode int16 PCM samples as a WAV file in memory."""
    if audio.ndim == 1:
        audio = audio[:, None]
    audio_i16 = audio.astype(np.int16, copy=False)

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(config.channels)
        wf.setsampwidth(2)  # int16
        wf.setframerate(config.sample_rate)
        wf.writeframes(audio_i16.tobytes())
    return buf.getvalue()


class MicrophoneStream:
    def __init__(self, device: int | str | None) -> None:
        self.device = device
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def stop(self) -> None:
        self._active = False


class MicrophoneRecorder:
    """Push-to-talk capture; chunks are forwarded as raw PCM while recording.

    The audio callback runs on the PortAudio thread, so chunks go through a
    queue that a single forwarding task drains in order.
    """

    def __init__(self, stream: MicrophoneStream, config: AudioIOConfig) -> None:
        self._stream = stream
        self._config = config
        self._input = None
        self._frames: list[np.ndarray] = []
        self._chunks: asyncio.Queue[bytes | None] | None = None
        self._forwarder: asyncio.Task | None = None

    async def start(self, on_chunk: ChunkHandler | None = None) -> None:
        sd = _require_sounddevice()
        self._frames = []
        loop = asyncio.get_running_loop()
        chunks: asyncio.Queue[bytes | None] | None = None
        if on_chunk is not None:
            chunks = asyncio.Queue()
            self._chunks = chunks
            self._forwarder = asyncio.create_task(self._forward(chunks, on_chunk))

        def callback(indata, frames, time, status):  # noqa: ANN001
            if status:
                logger.debug(f"Input status: {status}")
            block = indata.copy()
            self._frames.append(block)
            if chunks is not None:
                loop.call_soon_threadsafe(chunks.put_nowait, block.tobytes())

        self._input = sd.InputStream(
            samplerate=self._config.sample_rate,
            channels=self._config.channels,
            dtype=self._config.dtype,
            device=self._stream.device,
            callback=callback,
        )
        try:
            await asyncio.to_thread(self._input.start)
        except Exception:
            self._input = None
            await self._stop_forwarding()
            raise

    @staticmethod
    async def _forward(chunks: asyncio.Queue[bytes | None], on_chunk: ChunkHandler) -> None:
        while True:
            chunk = await chunks.get()
            if chunk is None:
                return
            try:
                await on_chunk(chunk)
            except Exception as e:
                logger.warning(f"Chunk forwarding stopped: {e}")
                return

    async def _stop_forwarding(self) -> None:
        chunks, forwarder = self._chunks, self._forwarder
        self._chunks = None
        self._forwarder = None
        if chunks is not None:
            chunks.put_nowait(None)
        if forwarder is not None:
            await forwarder

    async def stop(self) -> MediaBlob:
        stream = self._input
        self._input = None
        try:
            if stream is not None:
                await asyncio.to_thread(stream.stop)
                await asyncio.to_thread(stream.close)
        finally:
            await self._stop_forwarding()

        if self._frames:
            audio = np.concatenate(self._frames, axis=0)
        else:
            audio = np.zeros((0, self._config.channels), dtype=np.int16)
        return MediaBlob(data=encode_wav(audio, self._config), content_type="audio/wav")


class SoundDeviceMedia:
    """MediaDevices backed by the default (or configured) input device."""

    def __init__(self, config: AudioIOConfig | None = None, device: int | str | None = None) -> None:
        self._config = config or AudioIOConfig()
        self._device = device

    @property
    def config(self) -> AudioIOConfig:
        return self._config

    async def get_user_media(self) -> MicrophoneStream:
        sd = _require_sounddevice()
        try:
            await asyncio.to_thread(
                sd.check_input_settings,
                device=self._device,
                channels=self._config.channels,
                dtype=self._config.dtype,
                samplerate=self._config.sample_rate,
            )
        except Exception as e:
            raise PermissionDenied(f"Microphone unavailable: {e}") from e
        return MicrophoneStream(self._device)

    def create_recorder(self, stream: MediaStream) -> MicrophoneRecorder:
        if not isinstance(stream, MicrophoneStream):
            raise TypeError("SoundDeviceMedia can only record its own streams")
        return MicrophoneRecorder(stream, self._config)
