import json

import pytest

from impression_studio.config import get_settings


@pytest.fixture
def isolated_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("SESSION_STORE_PATH", str(tmp_path / "session.json"))
    monkeypatch.setenv("ARTIFACTS_DIR", str(tmp_path / "artifacts"))
    monkeypatch.setenv("SUPABASE_ACCESS_TOKEN", "")
    monkeypatch.setenv("SUPABASE_USER_ID", "")
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


def test_record_defaults_come_from_settings(isolated_settings) -> None:
    from impression_studio.main import build_parser

    args = build_parser().parse_args(["record", "My launch", "--count", "3", "--no-live-agent"])
    assert args.command == "record"
    assert args.topic == "My launch"
    assert args.count == 3
    assert args.no_live_agent
    assert not args.allow_custom_agent
    assert args.artifacts_dir == str(isolated_settings / "artifacts")


def test_subcommands_parse() -> None:
    from impression_studio.main import build_parser

    parser = build_parser()
    assert parser.parse_args(["plan"]).topic == ""
    assert parser.parse_args(["select-agent", "Hinge profile", "--save"]).save
    assert parser.parse_args(["sessions", "delete", "abc"]).session_id == "abc"
    assert parser.parse_args(["new-session"]).command == "new-session"
    with pytest.raises(SystemExit):
        parser.parse_args(["sessions"])


@pytest.mark.asyncio
async def test_new_session_forgets_resume_id(isolated_settings, capsys) -> None:
    from impression_studio.main import run

    path = isolated_settings / "session.json"
    path.write_text(json.dumps({"session": {"agent_id": "a-1", "resume_session_id": "s-1"}}), encoding="utf-8")

    await run(["new-session"])

    stored = json.loads(path.read_text(encoding="utf-8"))["session"]
    assert stored["resume_session_id"] is None
    assert stored["agent_id"] == "a-1"
    assert "new session" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_sessions_require_sign_in(isolated_settings, capsys) -> None:
    from impression_studio.main import run

    await run(["sessions", "list"])
    assert "Sign in first" in capsys.readouterr().out
