import json

import pytest

from impression_studio.orchestrator.notifications import Notifier
from impression_studio.orchestrator.schemas import Question, Recording, SessionConfig, VideoPreferences
from impression_studio.orchestrator.session_state import NO_TRANSCRIPT, StudioState
from impression_studio.orchestrator.session_store import LocalSessionStore


def test_missing_store_loads_defaults(tmp_path) -> None:
    store = LocalSessionStore(tmp_path / "nested" / "session.json")
    assert store.load() == SessionConfig()
    assert store.load_preferences() is None


def test_config_and_preferences_share_one_file(tmp_path) -> None:
    store = LocalSessionStore(tmp_path / "session.json")
    config = SessionConfig(agent_id="agent-1", voice_id="voice-1", resume_session_id="s-1", topic="Cooking")
    store.save(config)
    store.save_preferences(VideoPreferences(tone="warm"))

    reloaded = LocalSessionStore(tmp_path / "session.json")
    assert reloaded.load() == config
    assert reloaded.load_preferences().tone == "warm"
    assert set(json.loads((tmp_path / "session.json").read_text())) == {"session", "video_preferences"}


def test_clear_session_keeps_other_choices(tmp_path) -> None:
    store = LocalSessionStore(tmp_path / "session.json")
    store.save(SessionConfig(agent_id="agent-1", resume_session_id="s-1"))

    cleared = store.clear_session()

    assert cleared.resume_session_id is None
    assert store.load() == SessionConfig(agent_id="agent-1")


def test_corrupt_store_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    store = LocalSessionStore(path)
    assert store.load() == SessionConfig()

    path.write_text(json.dumps({"session": {"question_count": 999}}), encoding="utf-8")
    assert store.load() == SessionConfig()


def _state() -> StudioState:
    return StudioState([Question(index=0, text="A"), Question(index=0, text="B"), Question(index=0, text="C")])


def test_state_reindexes_questions() -> None:
    assert [q.index for q in _state().questions] == [0, 1, 2]


def test_state_requires_questions() -> None:
    with pytest.raises(ValueError):
        StudioState([])


def test_state_history_uses_placeholder_for_missing_transcripts() -> None:
    state = _state()
    state.set_recording(Recording(question_index=0, question="A"))
    state.set_recording(Recording(question_index=2, question="C"))
    state.set_transcript(2, "third answer")

    assert [(h.question, h.summary) for h in state.history()] == [("A", NO_TRANSCRIPT), ("C", "third answer")]
    assert [h.question for h in state.history(up_to=1)] == ["A"]
    assert state.missing_indices() == [1]


def test_state_tokens_and_overrides() -> None:
    state = _state()
    token = state.bump_token(1)
    assert state.is_current(1, token)
    state.bump_token(1)
    assert not state.is_current(1, token)

    assert state.apply_override(1, "Follow-up?")
    assert state.questions[1].display_text == "Follow-up?"
    state.set_recording(Recording(question_index=2, question="C"))
    assert not state.apply_override(2, "Too late?")
    assert not state.apply_override(5, "Out of range?")


def test_remove_recording_drops_transcript() -> None:
    state = _state()
    state.set_recording(Recording(question_index=0, question="A"))
    state.set_transcript(0, "answer")
    state.remove_recording(0)
    assert state.transcript(0) is None
    assert not state.has_recording(0)


def test_notifier_fans_out_and_dismisses() -> None:
    notifier = Notifier()
    received = []
    notifier.subscribe(received.append)

    first = notifier.error("Cloud save failed", RuntimeError("Bucket not found"))
    notifier.notify("Using starter questions", "AI unavailable, using a basic set.")
    notifier.error("Transcription failed")

    assert [n.title for n in received] == ["Cloud save failed", "Using starter questions", "Transcription failed"]
    assert first.variant == "destructive"
    assert first.description == "Bucket not found"
    assert received[2].description == "Try again later"

    notifier.dismiss(first.id)
    assert notifier.titles() == ["Using starter questions", "Transcription failed"]
