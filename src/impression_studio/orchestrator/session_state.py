"""
Recording session state.

Tracks the questions, the captured answer per question index, transcripts,
the active index and the per-index request tokens used to discard stale
background results.
"""

from impression_studio.orchestrator.schemas import HistoryEntry, Question, Recording, StudioPhase

NO_TRANSCRIPT = "No transcript available."


class StudioState:
    """
    Mutable state of one recording session.

    At most one Recording exists per question index; recording again replaces
    it. Tokens only ever increase, so a background result carrying an old
    token can be recognized and dropped.
    """

    def __init__(self, questions: list[Question]) -> None:
        """
        Initialize session state.

        Args:
            questions: Planned questions, indexed from 0.
        """
        if not questions:
            raise ValueError("A session needs at least one question")
        self.questions = [q.model_copy(update={"index": i}) for i, q in enumerate(questions)]
        self.phase = StudioPhase.AWAITING_PERMISSIONS
        self.current_index = 0
        self.elapsed = 0
        self.session_id: str | None = None
        self._recordings: dict[int, Recording] = {}
        self._transcripts: dict[int, str] = {}
        self._tokens: dict[int, int] = {}

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Question:
        return self.questions[self.current_index]

    @property
    def last_index(self) -> int:
        return len(self.questions) - 1

    def in_range(self, index: int) -> bool:
        return 0 <= index < len(self.questions)

    # Recordings

    def has_recording(self, index: int) -> bool:
        return index in self._recordings

    def recording(self, index: int) -> Recording | None:
        return self._recordings.get(index)

    def set_recording(self, recording: Recording) -> None:
        self._recordings[recording.question_index] = recording

    def remove_recording(self, index: int) -> Recording | None:
        self._transcripts.pop(index, None)
        return self._recordings.pop(index, None)

    def ordered_recordings(self) -> list[Recording]:
        return [self._recordings[i] for i in sorted(self._recordings)]

    def missing_indices(self) -> list[int]:
        return [i for i in range(len(self.questions)) if i not in self._recordings]

    @property
    def all_answered(self) -> bool:
        return not self.missing_indices()

    # Transcripts

    def transcript(self, index: int) -> str | None:
        return self._transcripts.get(index)

    def set_transcript(self, index: int, text: str | None) -> None:
        if text:
            self._transcripts[index] = text
        else:
            self._transcripts.pop(index, None)

    # Request tokens

    def token(self, index: int) -> int:
        return self._tokens.get(index, 0)

    def bump_token(self, index: int) -> int:
        """Invalidate in-flight work for an index and return the new token."""
        self._tokens[index] = self.token(index) + 1
        return self._tokens[index]

    def is_current(self, index: int, token: int) -> bool:
        return self.token(index) == token

    # Questions

    def apply_override(self, index: int, text: str) -> bool:
        """
        Replace the displayed text of a question with a follow-up.

        Returns:
            False when the index already has its own recording.
        """
        if not self.in_range(index) or self.has_recording(index):
            return False
        self.questions[index] = self.questions[index].model_copy(update={"override": text})
        return True

    def history(self, up_to: int | None = None) -> list[HistoryEntry]:
        """Question/answer pairs for answered indices, in index order."""
        last = self.last_index if up_to is None else up_to
        return [
            HistoryEntry(
                question=recording.question,
                summary=self._transcripts.get(i) or NO_TRANSCRIPT,
            )
            for i, recording in sorted(self._recordings.items())
            if i <= last
        ]
