"""
Main entry point for Impression Studio.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from impression_studio.config import get_settings
from impression_studio.orchestrator.errors import StudioError

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="impression-studio")
    sub = parser.add_subparsers(dest="command", required=True)

    plan = sub.add_parser("plan", help="Generate interview questions for a topic")
    plan.add_argument("topic", nargs="?", default="", help="Interview topic")
    plan.add_argument("--count", type=int, default=5, help="Number of questions")
    plan.add_argument("--intent", default="Custom", help="Interview intent")

    select = sub.add_parser("select-agent", help="Pick the interviewer agent for a title")
    select.add_argument("title", help="Interview title")
    select.add_argument("--save", action="store_true", help="Store the choice for the next recording")

    sub.add_parser("agents", help="List interviewer agents and voices")

    record = sub.add_parser("record", help="Record an interview in the terminal")
    record.add_argument("topic", nargs="?", default=None, help="Interview topic (defaults to the stored one)")
    record.add_argument("--count", type=int, default=None, help="Number of questions")
    record.add_argument("--agent-id", default=None, help="Interviewer agent id")
    record.add_argument("--voice-id", default=None, help="Interviewer voice id")
    record.add_argument("--profile-url", default=None, help="Profile page used as interview context")
    record.add_argument("--no-live-agent", action="store_true", help="Do not open a live voice channel")
    record.add_argument(
        "--allow-custom-agent",
        action="store_true",
        help="Accept agent ids that are not in the catalog",
    )
    record.add_argument(
        "--artifacts-dir",
        default=settings.artifacts_dir,
        help="Where interviewer clips are written",
    )

    sessions = sub.add_parser("sessions", help="Manage recorded sessions")
    sessions_sub = sessions.add_subparsers(dest="sessions_command", required=True)
    sessions_sub.add_parser("list", help="List recorded sessions")
    delete = sessions_sub.add_parser("delete", help="Delete a session's media and rows")
    delete.add_argument("session_id", help="Session to delete")

    sub.add_parser("new-session", help="Forget the resumable session id")
    return parser


async def _cmd_plan(args: argparse.Namespace) -> None:
    from impression_studio.agents.question_planner import QuestionPlanner
    from impression_studio.models.llm_client import GenerationClient

    generation = GenerationClient()
    try:
        plan = await QuestionPlanner(generation).plan(args.topic, count=args.count, intent=args.intent)
    finally:
        await generation.close()
    for question in plan.questions:
        print(f"{question.index + 1}. {question.text}")


async def _cmd_select_agent(args: argparse.Namespace) -> None:
    from impression_studio.agents.agent_selector import AgentSelector
    from impression_studio.agents.catalog import AgentCatalog
    from impression_studio.models.edge_functions import EdgeFunctionClient
    from impression_studio.models.llm_client import GenerationClient
    from impression_studio.orchestrator.session_store import LocalSessionStore

    functions = EdgeFunctionClient()
    try:
        agents = await AgentCatalog(functions).load_agents()
        selection = await AgentSelector(GenerationClient(functions)).select(args.title, agents)
    finally:
        await functions.close()

    print(f"{selection.agent_id} [{selection.source}, {selection.category}] {selection.reason}")
    if args.save:
        store = LocalSessionStore()
        store.save(store.load().model_copy(update={"agent_id": selection.agent_id, "topic": args.title}))


async def _cmd_agents(args: argparse.Namespace) -> None:
    from impression_studio.agents.catalog import AgentCatalog, is_eligible_voice
    from impression_studio.models.edge_functions import EdgeFunctionClient

    functions = EdgeFunctionClient()
    catalog = AgentCatalog(functions)
    try:
        agents = await catalog.load_agents()
        voices = await catalog.load_voices()
    finally:
        await functions.close()

    print("Agents:")
    for agent in agents:
        print(f"  {agent.id}  {agent.name}  tags={','.join(agent.tags)}")
    print("Voices:")
    for voice in voices:
        marker = "*" if is_eligible_voice(voice) else " "
        print(f" {marker}{voice.id}  {voice.name}  {voice.language or ''}")


async def _cmd_record(args: argparse.Namespace) -> None:
    from impression_studio.agents.catalog import AgentCatalog
    from impression_studio.agents.profile_context import ProfileContextClient
    from impression_studio.agents.question_planner import QuestionPlanner
    from impression_studio.io.console import StudioConsole
    from impression_studio.models.edge_functions import EdgeFunctionClient
    from impression_studio.models.llm_client import GenerationClient
    from impression_studio.orchestrator.auth import SettingsAuthProvider
    from impression_studio.orchestrator.notifications import Notifier
    from impression_studio.orchestrator.recording_studio import RecordingStudio
    from impression_studio.orchestrator.schemas import StudioOptions
    from impression_studio.orchestrator.session_store import LocalSessionStore
    from impression_studio.persistence.session_persistence import SessionPersistence
    from impression_studio.voice.audio_io import SoundDeviceMedia
    from impression_studio.voice.live_session import LiveVoiceSession
    from impression_studio.voice.playback import ClipWriter
    from impression_studio.voice.stt import Transcriber
    from impression_studio.voice.tts import SpeechSynthesizer

    settings = get_settings()
    store = LocalSessionStore()
    config = store.load()
    updates = {
        "topic": args.topic if args.topic is not None else config.topic,
        "question_count": args.count or config.question_count,
        "agent_id": args.agent_id or config.agent_id or settings.default_agent_id,
        "voice_id": args.voice_id or config.voice_id or settings.default_voice_id,
        "studio": config.studio or settings.default_studio,
        "profile_url": args.profile_url or config.profile_url,
    }
    config = config.model_copy(update=updates)
    store.save(config)

    options = StudioOptions(
        use_live_voice_agent=not args.no_live_agent,
        allow_custom_agent_id=args.allow_custom_agent,
        collect_profile_url=bool(config.profile_url),
    )

    functions = EdgeFunctionClient()
    notifier = Notifier()
    generation = GenerationClient(functions)
    archive = SessionPersistence()
    try:
        agents = await AgentCatalog(functions).load_agents()
        plan = await QuestionPlanner(generation, notifier).plan(
            config.topic, count=config.question_count, intent=config.intent, persona=config.persona
        )
        studio = RecordingStudio(
            plan.texts,
            media=SoundDeviceMedia(),
            auth=SettingsAuthProvider(),
            config=config,
            options=options,
            agents=agents,
            archive=archive,
            generation=generation,
            transcriber=Transcriber(functions),
            synthesizer=SpeechSynthesizer(functions),
            audio_sink=ClipWriter(Path(args.artifacts_dir) / "clips"),
            live_session_factory=lambda: LiveVoiceSession(functions),
            profile_context=ProfileContextClient(functions),
            session_store=store,
            notifier=notifier,
            on_sign_in_required=lambda: print("Sign in first: set SUPABASE_ACCESS_TOKEN and SUPABASE_USER_ID."),
        )
        await StudioConsole(studio).run()
    finally:
        await archive.close()
        await functions.close()


async def _cmd_sessions(args: argparse.Namespace) -> None:
    from impression_studio.orchestrator.auth import SettingsAuthProvider
    from impression_studio.orchestrator.session_store import LocalSessionStore
    from impression_studio.persistence.session_persistence import SessionPersistence

    auth = await SettingsAuthProvider().get_session()
    if auth is None:
        print("Sign in first: set SUPABASE_ACCESS_TOKEN and SUPABASE_USER_ID.")
        return

    archive = SessionPersistence()
    try:
        if args.sessions_command == "list":
            for summary in await archive.list_sessions(auth.user_id):
                print(
                    f"{summary.session_id}  {summary.created_at:%Y-%m-%d %H:%M}  "
                    f"{summary.question_count} answers  {summary.total_duration}s"
                )
        else:
            deleted = await archive.delete_session(auth.user_id, args.session_id)
            store = LocalSessionStore()
            if store.load().resume_session_id == args.session_id:
                store.clear_session()
            print(f"Deleted {deleted} answers")
    finally:
        await archive.close()


async def run(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to the subcommand."""
    args = build_parser().parse_args(argv)

    if args.command == "new-session":
        from impression_studio.orchestrator.session_store import LocalSessionStore

        LocalSessionStore().clear_session()
        print("Next recording starts a new session.")
        return

    handlers = {
        "plan": _cmd_plan,
        "select-agent": _cmd_select_agent,
        "agents": _cmd_agents,
        "record": _cmd_record,
        "sessions": _cmd_sessions,
    }
    await handlers[args.command](args)


def main() -> None:
    """Main entry point for the application."""
    setup_logging()

    try:
        asyncio.run(run(sys.argv[1:]))
    except KeyboardInterrupt:
        print("\nSession terminated by user.")
        sys.exit(0)
    except StudioError as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(1)
    except Exception as e:
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
