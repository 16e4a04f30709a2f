"""
Recording studio orchestrator.

Drives one interview session: device permissions, per-question capture, and
the background pipeline that runs after each answer (persist the answer;
transcribe it, generate a follow-up for the next question, then speak it).

Hard preconditions (permissions, agent choice, sign-in) raise. Every remote
failure in the background pipeline is reported through the notifier and
never blocks the next question or completion.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Coroutine, Protocol

from impression_studio.agents.profile_context import ProfileContextClient
from impression_studio.agents.question_planner import DEFAULT_TOPIC
from impression_studio.config import get_settings
from impression_studio.models.llm_client import GenerationClient
from impression_studio.orchestrator.auth import AuthProvider
from impression_studio.orchestrator.errors import (
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
from impression_studio.orchestrator.notifications import Notifier
from impression_studio.orchestrator.schemas import (
    Agent,
    MediaBlob,
    Persona,
    Question,
    Recording,
    SessionConfig,
    StudioOptions,
    StudioPhase,
    VideoPreferences,
)
from impression_studio.orchestrator.session_state import StudioState
from impression_studio.orchestrator.session_store import LocalSessionStore
from impression_studio.persistence.session_persistence import AnswerArchive
from impression_studio.voice.audio_io import MediaDevices, MediaRecorder, MediaStream
from impression_studio.voice.live_session import LiveOverrides
from impression_studio.voice.playback import AudioSink
from impression_studio.voice.stt import Transcriber
from impression_studio.voice.tts import SpeechSynthesizer, SynthesizedAudio

logger = logging.getLogger(__name__)


class LiveChannel(Protocol):
    async def open(self, agent_id: str, overrides: LiveOverrides | None = None) -> None: ...

    async def send_audio_chunk(self, chunk: bytes) -> None: ...

    async def close(self) -> str: ...


class RecordingStudio:
    """
    Session state machine for recording an interview.

    AWAITING_PERMISSIONS -> READY -> RECORDING -> REVIEWING, then from
    REVIEWING either record again, retake, navigate, or complete.
    """

    def __init__(
        self,
        questions: list[str] | list[Question],
        *,
        media: MediaDevices,
        auth: AuthProvider,
        config: SessionConfig | None = None,
        options: StudioOptions | None = None,
        agents: list[Agent] | None = None,
        archive: AnswerArchive | None = None,
        generation: GenerationClient | None = None,
        transcriber: Transcriber | None = None,
        synthesizer: SpeechSynthesizer | None = None,
        audio_sink: AudioSink | None = None,
        live_session_factory: Callable[[], LiveChannel] | None = None,
        profile_context: ProfileContextClient | None = None,
        session_store: LocalSessionStore | None = None,
        notifier: Notifier | None = None,
        on_sign_in_required: Callable[[], None] | None = None,
        tick_interval: float = 1.0,
    ) -> None:
        """
        Initialize the studio.

        Args:
            questions: Planned questions (texts or Question objects).
            media: Camera/microphone access.
            auth: Source of the signed-in user.
            config: Device-local choices; loaded from `session_store` if None.
            options: Flow variations.
            agents: Agent catalog; when given, the configured agent must be in it
                unless `options.allow_custom_agent_id`.
            archive: Where answers are persisted (skipped if None).
            generation: LLM client for follow-ups and preferences.
            transcriber: Speech-to-text for answers without a live transcript.
            synthesizer: Interviewer voice.
            audio_sink: Plays synthesized audio.
            live_session_factory: Creates a live voice channel per recording.
            profile_context: Summarizes `config.profile_url` when enabled.
            session_store: Local load/save boundary for config and preferences.
            notifier: User-visible notifications.
            on_sign_in_required: Called before Unauthenticated is raised.
            tick_interval: Seconds per elapsed-time tick.
        """
        planned = [q if isinstance(q, Question) else Question(index=i, text=q) for i, q in enumerate(questions)]
        self._state = StudioState(planned)
        self._media = media
        self._auth = auth
        self._store = session_store
        self._config = config or (session_store.load() if session_store else SessionConfig())
        self._options = options or StudioOptions()
        self._agents = agents
        self._archive = archive
        self._generation = generation
        self._transcriber = transcriber
        self._synthesizer = synthesizer
        self._audio_sink = audio_sink
        self._live_factory = live_session_factory
        self._profile_context = profile_context
        self._notifier = notifier or Notifier()
        self._on_sign_in_required = on_sign_in_required
        self._tick_interval = tick_interval

        self._stream: MediaStream | None = None
        self._recorder: MediaRecorder | None = None
        self._live: LiveChannel | None = None
        self._ticker: asyncio.Task | None = None
        self._user_id: str | None = None
        self._profile_summary: str | None = None
        self._tasks: set[asyncio.Task] = set()
        self.preferences: VideoPreferences | None = None

    # Read-only views

    @property
    def phase(self) -> StudioPhase:
        return self._state.phase

    @property
    def current_index(self) -> int:
        return self._state.current_index

    @property
    def current_question(self) -> Question:
        return self._state.current_question

    @property
    def questions(self) -> list[Question]:
        return list(self._state.questions)

    @property
    def recordings(self) -> list[Recording]:
        return self._state.ordered_recordings()

    @property
    def elapsed(self) -> int:
        """Seconds captured so far for the current answer."""
        return self._state.elapsed

    @property
    def session_id(self) -> str | None:
        return self._state.session_id

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def stream(self) -> MediaStream | None:
        return self._stream

    @property
    def all_answered(self) -> bool:
        return self._state.all_answered

    def transcript(self, index: int) -> str | None:
        return self._state.transcript(index)

    @property
    def persona(self) -> Persona:
        return self._config.persona if self._options.persona_selection_enabled else "professional"

    @property
    def topic(self) -> str:
        return (self._config.topic or "").strip() or DEFAULT_TOPIC

    # Permissions

    async def request_permissions(self) -> MediaStream:
        """
        Acquire camera and microphone.

        A second call while the stream is live reuses it.

        Raises:
            PermissionDenied: If access was refused; the phase is unchanged.
        """
        if self._stream is not None and self._stream.active:
            self._enter_idle_phase()
            return self._stream

        if self._stream is not None:
            self._stream.stop()
            self._stream = None

        try:
            stream = await self._media.get_user_media()
        except PermissionDenied as e:
            self._notifier.error("Camera & microphone access needed", e)
            raise

        self._stream = stream
        self._enter_idle_phase()
        logger.info("Media permissions granted")
        return stream

    def _enter_idle_phase(self) -> None:
        if self._state.phase in (StudioPhase.RECORDING, StudioPhase.COMPLETED):
            return
        self._state.phase = (
            StudioPhase.REVIEWING
            if self._state.has_recording(self._state.current_index)
            else StudioPhase.READY
        )

    # Preconditions

    def _resolve_agent_id(self) -> str:
        agent_id = self._config.agent_id
        if not agent_id and not self._agents:
            agent_id = get_settings().default_agent_id
        if not agent_id and self._agents:
            agent_id = self._agents[0].id

        known = self._agents is None or any(a.id == agent_id for a in self._agents)
        if not agent_id or not (known or self._options.allow_custom_agent_id):
            self._notifier.error("Select an Interviewer Agent first", "Please choose an agent before recording.")
            raise NoAgentSelected(f"No valid interviewer agent configured (got {agent_id!r})")
        return agent_id

    async def _require_user(self) -> str:
        session = await self._auth.get_session()
        if session is None:
            self._notifier.error("Sign in required", "Please sign in to record your answers.")
            if self._on_sign_in_required is not None:
                self._on_sign_in_required()
            raise Unauthenticated("Recording requires a signed-in user")
        return session.user_id

    def _ensure_session_id(self) -> str:
        if self._state.session_id:
            return self._state.session_id
        session_id = self._config.resume_session_id or str(uuid.uuid4())
        self._state.session_id = session_id
        if self._config.resume_session_id != session_id:
            self._config = self._config.model_copy(update={"resume_session_id": session_id})
            if self._store is not None:
                self._store.save(self._config)
        return session_id

    # Recording

    async def start_recording(self) -> None:
        """
        Start capturing an answer for the current question.

        Raises:
            InvalidTransition: Not in READY or REVIEWING.
            NoAgentSelected: No valid conversational agent is configured.
            Unauthenticated: No signed-in user.
        """
        if self._state.phase not in (StudioPhase.READY, StudioPhase.REVIEWING):
            raise InvalidTransition(f"Cannot start recording from {self._state.phase.value}")
        if self._stream is None or not self._stream.active:
            raise InvalidTransition("Media stream is not available; request permissions first")

        agent_id = self._resolve_agent_id()
        self._user_id = await self._require_user()
        self._ensure_session_id()

        self._live = await self._open_live_channel(agent_id)
        recorder = self._media.create_recorder(self._stream)
        try:
            await recorder.start(self._forward_chunk if self._live is not None else None)
        except Exception:
            await self._close_live_channel()
            raise

        self._recorder = recorder
        self._state.elapsed = 0
        self._state.phase = StudioPhase.RECORDING
        self._ticker = asyncio.create_task(self._tick())
        logger.info(f"Recording question {self._state.current_index} (session {self._state.session_id})")

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            self._state.elapsed += 1

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _forward_chunk(self, chunk: bytes) -> None:
        if self._live is not None:
            await self._live.send_audio_chunk(chunk)

    async def _open_live_channel(self, agent_id: str) -> LiveChannel | None:
        if not self._options.use_live_voice_agent or self._live_factory is None:
            return None

        overrides = LiveOverrides(
            title=self.topic,
            voice_id=self._config.voice_id,
            profile_url=self._config.profile_url if self._options.collect_profile_url else None,
            profile_summary=await self._load_profile_summary(),
        )
        channel = self._live_factory()
        try:
            await channel.open(agent_id, overrides)
        except (RemoteCallFailed, OSError) as e:
            self._notifier.error("Live transcription unavailable", e)
            return None
        return channel

    async def _close_live_channel(self) -> str | None:
        channel = self._live
        self._live = None
        if channel is None:
            return None
        try:
            text = await channel.close()
        except Exception as e:
            logger.warning(f"Live channel close failed: {e}")
            return None
        return text or None

    async def _load_profile_summary(self) -> str | None:
        if not self._options.collect_profile_url or not self._config.profile_url:
            return None
        if self._profile_summary is not None or self._profile_context is None:
            return self._profile_summary
        try:
            self._profile_summary = await self._profile_context.fetch_summary(self._config.profile_url, self.topic)
        except (RemoteCallFailed, EmptyAIResult) as e:
            self._notifier.error("Profile context unavailable", e)
            self._profile_summary = ""
        return self._profile_summary or None

    async def stop_recording(self) -> Recording:
        """
        Finish the current answer and schedule its background pipeline.

        Returns:
            The Recording now stored for the current index.

        Raises:
            InvalidTransition: Not recording.
            RecordingFailed: The recorder could not finalize the take. The
                phase falls back to READY, or REVIEWING when an earlier take
                of this question is still stored.
        """
        if self._state.phase != StudioPhase.RECORDING or self._recorder is None:
            raise InvalidTransition(f"Cannot stop recording from {self._state.phase.value}")

        self._stop_ticker()
        live_transcript = await self._close_live_channel()

        recorder = self._recorder
        self._recorder = None
        index = self._state.current_index
        try:
            blob = await recorder.stop()
        except Exception as e:
            self._state.elapsed = 0
            self._state.phase = (
                StudioPhase.REVIEWING if self._state.has_recording(index) else StudioPhase.READY
            )
            logger.error(f"Finalizing question {index} failed: {e}")
            self._notifier.error("Recording failed", e)
            raise RecordingFailed(f"Recording of question {index} could not be finalized: {e}") from e

        recording = Recording(
            question_index=index,
            question=self._state.questions[index].display_text,
            media=blob,
            duration=self._state.elapsed,
        )
        self._state.set_recording(recording)
        self._state.set_transcript(index, live_transcript)
        token = self._state.bump_token(index)
        self._state.phase = StudioPhase.REVIEWING
        logger.info(f"Captured question {index}: {recording.duration}s, {blob.size} bytes")

        transcript_task = self._spawn(self._resolve_transcript(index, token, blob, live_transcript))
        self._spawn(self._persist(index, token, recording, transcript_task))
        self._spawn(self._follow_up(index, token, transcript_task))
        return recording

    def retake(self) -> None:
        """
        Discard the current question's recording.

        Raises:
            InvalidTransition: Not reviewing a recorded answer.
        """
        index = self._state.current_index
        if self._state.phase != StudioPhase.REVIEWING or not self._state.has_recording(index):
            raise InvalidTransition("Nothing to retake")
        self._state.remove_recording(index)
        self._state.bump_token(index)
        self._state.elapsed = 0
        self._state.phase = StudioPhase.READY
        logger.info(f"Retake of question {index}")

    # Navigation

    def go_to(self, index: int) -> Question:
        """
        Move to another question.

        Raises:
            InvalidTransition: While recording.
            IndexError: If the index is out of range.
        """
        if self._state.phase == StudioPhase.RECORDING:
            raise InvalidTransition("Stop recording before changing questions")
        if not self._state.in_range(index):
            raise IndexError(f"Question index {index} out of range")

        self._state.current_index = index
        self._state.elapsed = 0
        if self._state.phase != StudioPhase.AWAITING_PERMISSIONS:
            self._state.phase = (
                StudioPhase.REVIEWING if self._state.has_recording(index) else StudioPhase.READY
            )
        return self._state.current_question

    def next(self) -> Question:
        return self.go_to(min(self._state.current_index + 1, self._state.last_index))

    def previous(self) -> Question:
        return self.go_to(max(self._state.current_index - 1, 0))

    # Completion

    async def complete_session(self, guidance: str | None = None) -> list[Recording]:
        """
        Finish the session and extract video preferences.

        Returns:
            Recordings ordered by question index.

        Raises:
            InvalidTransition: While recording.
            SessionIncomplete: If any question has no recording.
        """
        if self._state.phase == StudioPhase.RECORDING:
            raise InvalidTransition("Stop recording before completing the session")
        missing = self._state.missing_indices()
        if missing:
            raise SessionIncomplete(f"Questions without a recording: {missing}")

        if self._generation is not None:
            try:
                result = await self._generation.preferences(self._state.history(), guidance or "")
            except (RemoteCallFailed, EmptyAIResult) as e:
                self._notifier.error("Preference extraction failed", e)
            else:
                if result.preferences is not None:
                    self.preferences = result.preferences
                    if self._store is not None:
                        self._store.save_preferences(result.preferences)
                else:
                    self._notifier.notify("Preferences not saved", "The AI response could not be read.")

        self._state.phase = StudioPhase.COMPLETED
        logger.info(f"Session {self._state.session_id} completed with {self._state.question_count} answers")
        return self._state.ordered_recordings()

    # Voice

    async def speak_current_question(self) -> SynthesizedAudio | None:
        """Speak the current question's displayed text in the interviewer voice."""
        index = self._state.current_index
        try:
            return await self._speak(self._state.questions[index].display_text, label=f"q{index:02d}")
        except StudioError as e:
            self._notifier.error("Voice playback failed", e)
            return None

    async def _speak(self, text: str, label: str = "") -> SynthesizedAudio | None:
        if self._synthesizer is None:
            return None
        voice_id = self._config.voice_id or get_settings().default_voice_id
        audio = await self._synthesizer.synthesize(text, voice_id)
        if self._audio_sink is not None:
            try:
                await self._audio_sink.play(audio, label=label)
            except StudioError:
                raise
            except Exception as e:
                raise PlaybackFailed(f"Audio playback failed: {e}") from e
        return audio

    # Background pipeline

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_for_background(self) -> None:
        """Wait until every scheduled persistence and follow-up task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _resolve_transcript(
        self,
        index: int,
        token: int,
        blob: MediaBlob,
        live_transcript: str | None,
    ) -> str | None:
        if live_transcript:
            return live_transcript
        if self._transcriber is None:
            return None

        try:
            text = await self._transcriber.transcribe(blob)
        except (RemoteCallFailed, EmptyAIResult) as e:
            self._notifier.error("Transcription failed", e)
            return None

        if text and self._state.is_current(index, token):
            self._state.set_transcript(index, text)
        return text or None

    async def _persist(
        self,
        index: int,
        token: int,
        recording: Recording,
        transcript_task: Awaitable[str | None],
    ) -> None:
        if self._archive is None or self._user_id is None or self._state.session_id is None:
            return
        transcript = await transcript_task
        try:
            await self._archive.save_answer(self._user_id, self._state.session_id, recording, transcript)
        except Exception as e:
            logger.error(f"Saving question {index} (token {token}) failed: {e}")
            self._notifier.error("Cloud save failed", e)

    async def _follow_up(self, index: int, token: int, transcript_task: Awaitable[str | None]) -> None:
        next_index = index + 1
        if self._generation is None or not self._state.in_range(next_index):
            return

        await transcript_task
        if not self._state.is_current(index, token):
            logger.debug(f"Dropping stale follow-up for question {index}")
            return

        try:
            question = await self._generation.follow_up(
                self.persona,
                self._config.intent,
                self._state.history(up_to=index),
            )
        except (RemoteCallFailed, EmptyAIResult) as e:
            self._notifier.error("Auto follow-up failed", e)
            return

        if not self._state.is_current(index, token):
            logger.debug(f"Dropping stale follow-up for question {index}")
            return
        if not self._state.apply_override(next_index, question):
            logger.debug(f"Question {next_index} already answered; keeping its text")
            return
        logger.info(f"Follow-up for question {next_index}: {question}")

        if self._state.current_index not in (index, next_index):
            return
        try:
            await self._speak(self._state.questions[next_index].display_text, label=f"q{next_index:02d}")
        except StudioError as e:
            self._notifier.error("Voice playback failed", e)

    # Teardown

    async def close(self) -> None:
        """Stop the ticker, end any live channel and release the media stream."""
        self._stop_ticker()
        await self._close_live_channel()
        if self._recorder is not None:
            recorder = self._recorder
            self._recorder = None
            try:
                await recorder.stop()
            except Exception as e:
                logger.warning(f"Recorder stop failed during close: {e}")
        if self._stream is not None:
            self._stream.stop()
            self._stream = None
