"""
Terminal recording studio.

A small command loop over RecordingStudio: record/stop, retake, navigate,
hear the question, and complete. Notifications are printed as they arrive.
"""

import asyncio

from impression_studio.orchestrator.errors import StudioError
from impression_studio.orchestrator.notifications import Notification
from impression_studio.orchestrator.recording_studio import RecordingStudio
from impression_studio.orchestrator.schemas import Recording, StudioPhase

HELP = """Commands:
  r      record / stop recording
  t      retake the current answer
  n, p   next / previous question
  g N    go to question N (1-based)
  s      speak the current question
  c      complete the session
  q      quit
"""


class StudioConsole:
    """
    Command-line front end for a recording session.

    Input is read off the event loop so follow-ups and uploads keep running
    while the prompt waits.
    """

    def __init__(self, studio: RecordingStudio) -> None:
        """
        Initialize the console.

        Args:
            studio: Studio to drive.
        """
        self._studio = studio
        self._studio.notifier.subscribe(self._print_notification)
        self.completed: list[Recording] | None = None

    def _print_notification(self, notification: Notification) -> None:
        marker = "!" if notification.variant == "destructive" else "*"
        suffix = f": {notification.description}" if notification.description else ""
        print(f"\n[{marker}] {notification.title}{suffix}")

    async def send_message(self, message: str) -> None:
        print(f"\n{message}\n")

    async def _get_input(self, prompt: str) -> str:
        try:
            return await asyncio.to_thread(input, prompt)
        except EOFError:
            return "q"

    def _show_question(self) -> None:
        studio = self._studio
        question = studio.current_question
        answered = " (answered)" if studio.phase == StudioPhase.REVIEWING else ""
        print(f"\nQuestion {question.index + 1}/{len(studio.questions)}{answered}: {question.display_text}")

    async def run(self) -> list[Recording] | None:
        """
        Run the session until completion or quit.

        Returns:
            Recordings when the session was completed, else None.
        """
        print("\n" + "=" * 60)
        print(f"Impression Studio: {self._studio.topic}")
        print("=" * 60 + "\n")

        try:
            await self._studio.request_permissions()
        except StudioError as e:
            await self.send_message(f"Cannot start: {e}")
            return None

        print(HELP)
        self._show_question()
        try:
            while True:
                command = (await self._get_input("> ")).strip().lower()
                if not command:
                    continue
                if command in ("q", "quit", "exit"):
                    break
                try:
                    done = await self._handle(command)
                except StudioError as e:
                    await self.send_message(f"Not now: {e}")
                    continue
                except IndexError as e:
                    await self.send_message(str(e))
                    continue
                if done:
                    break
        finally:
            await self._studio.wait_for_background()
            await self._studio.close()
        return self.completed

    async def _handle(self, command: str) -> bool:
        studio = self._studio
        if command == "r":
            if studio.phase == StudioPhase.RECORDING:
                recording = await studio.stop_recording()
                await self.send_message(f"Saved answer {recording.question_index + 1} ({recording.duration}s)")
            else:
                await studio.start_recording()
                await self.send_message("Recording... press r to stop")
        elif command == "t":
            studio.retake()
            self._show_question()
        elif command == "n":
            studio.next()
            self._show_question()
        elif command == "p":
            studio.previous()
            self._show_question()
        elif command.startswith("g"):
            parts = command.split()
            if len(parts) != 2 or not parts[1].isdigit():
                await self.send_message("Usage: g N")
                return False
            studio.go_to(int(parts[1]) - 1)
            self._show_question()
        elif command == "s":
            await studio.speak_current_question()
        elif command == "c":
            await studio.wait_for_background()
            self.completed = await studio.complete_session()
            await self.send_message(f"Session complete: {len(self.completed)} answers recorded")
            return True
        else:
            print(HELP)
        return False
