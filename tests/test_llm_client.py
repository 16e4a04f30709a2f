import json

import httpx
import pytest

from impression_studio.models.edge_functions import EdgeFunctionClient
from impression_studio.models.llm_client import GenerationClient, clean_question_line, extract_json_object
from impression_studio.orchestrator.errors import EmptyAIResult, RemoteCallFailed
from impression_studio.orchestrator.schemas import Agent, HistoryEntry


def _client(responses: dict[str, httpx.Response], seen: list[dict] | None = None) -> GenerationClient:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if seen is not None:
            seen.append(body)
        return responses[body["mode"]]

    functions = EdgeFunctionClient(
        base_url="http://functions.test/functions/v1",
        anon_key="anon",
        access_token="",
        transport=httpx.MockTransport(handler),
    )
    return GenerationClient(functions)


def test_clean_question_line() -> None:
    assert clean_question_line("1. What   drives you?") == "What drives you?"
    assert clean_question_line("- • Why now?") == "Why now?"
    assert clean_question_line("   ") == ""


def test_extract_json_repairs_single_quotes_and_trailing_commas() -> None:
    assert extract_json_object("{'a': 1, 'b': 'x',}") == {"a": 1, "b": "x"}


def test_extract_json_repairs_unquoted_keys_and_fenced_json() -> None:
    content = """```json
    {a: 1, b: true, c: null,}
    ```"""
    assert extract_json_object(content) == {"a": 1, "b": True, "c": None}


def test_extract_json_finds_object_in_prose() -> None:
    content = 'Here are the preferences: {"tone": "warm", "must_avoid": ["jargon"]} Hope that helps!'
    assert extract_json_object(content) == {"tone": "warm", "must_avoid": ["jargon"]}


def test_extract_json_gives_up_on_prose() -> None:
    assert extract_json_object("Tone: upbeat, pacing: fast") is None
    assert extract_json_object("") is None
    assert extract_json_object("{never closed") is None


@pytest.mark.asyncio
async def test_plan_cleans_and_limits_questions() -> None:
    seen: list[dict] = []
    client = _client(
        {"plan": httpx.Response(200, json={"questions": ["1. First?", "", 42, "- Second?", "Third?"]})},
        seen,
    )

    questions = await client.plan("Fitness", "Custom", "professional", 2)
    await client.close()

    assert questions == ["First?", "Second?"]
    assert seen[0] == {
        "mode": "plan",
        "topic": "Fitness",
        "intent": "Custom",
        "persona": "professional",
        "questionsCount": 2,
    }


@pytest.mark.asyncio
async def test_plan_without_list_is_empty_result() -> None:
    client = _client({"plan": httpx.Response(200, json={"questions": "nope"})})
    with pytest.raises(EmptyAIResult):
        await client.plan("Fitness", "Custom", "professional", 5)
    await client.close()


@pytest.mark.asyncio
async def test_follow_up_keeps_first_line() -> None:
    seen: list[dict] = []
    client = _client(
        {"followup": httpx.Response(200, json={"question": "1. What happened next?\nAlso, why?"})},
        seen,
    )
    history = [HistoryEntry(question="Q1", summary="I launched")]

    question = await client.follow_up("professional", "Custom", history)
    await client.close()

    assert question == "What happened next?"
    assert seen[0]["history"] == [{"question": "Q1", "summary": "I launched"}]


@pytest.mark.asyncio
async def test_empty_follow_up_is_empty_result() -> None:
    client = _client({"followup": httpx.Response(200, json={"question": "  \n"})})
    with pytest.raises(EmptyAIResult):
        await client.follow_up("professional", "Custom", [])
    await client.close()


@pytest.mark.asyncio
async def test_gateway_error_is_remote_call_failed() -> None:
    client = _client({"followup": httpx.Response(500, json={"error": "boom"})})
    with pytest.raises(RemoteCallFailed) as exc_info:
        await client.follow_up("professional", "Custom", [])
    await client.close()

    assert exc_info.value.status_code == 500
    assert exc_info.value.step == "generate-with-gemini"
    assert str(exc_info.value) == "boom"


@pytest.mark.asyncio
async def test_preferences_parsed_from_raw_text() -> None:
    raw = '```json\n{"tone": "warm", "pacing": "fast", "must_avoid": ["jargon",],}\n```'
    client = _client({"preferences": httpx.Response(200, json={"preferences": None, "raw": raw})})

    result = await client.preferences([HistoryEntry(question="Q", summary="A")], "short")
    await client.close()

    assert result.preferences is not None
    assert result.preferences.tone == "warm"
    assert result.preferences.must_avoid == ["jargon"]
    assert result.raw == raw


@pytest.mark.asyncio
async def test_preferences_object_is_used_directly() -> None:
    client = _client(
        {"preferences": httpx.Response(200, json={"preferences": {"tone": "calm", "mood": "cozy"}})}
    )
    result = await client.preferences([])
    await client.close()

    assert result.preferences is not None
    assert result.preferences.tone == "calm"
    assert result.preferences.model_extra == {"mood": "cozy"}


@pytest.mark.asyncio
async def test_unparseable_preferences_are_none() -> None:
    client = _client({"preferences": httpx.Response(200, json={"raw": "Sure! Tone: upbeat"})})
    result = await client.preferences([])
    await client.close()

    assert result.preferences is None
    assert result.raw == "Sure! Tone: upbeat"


@pytest.mark.asyncio
async def test_preferences_with_wrong_shape_are_none() -> None:
    client = _client({"preferences": httpx.Response(200, json={"preferences": {"must_avoid": "everything"}})})
    result = await client.preferences([])
    await client.close()
    assert result.preferences is None


@pytest.mark.asyncio
async def test_select_agent_reads_agent_id() -> None:
    seen: list[dict] = []
    client = _client(
        {"select-agent": httpx.Response(200, json={"agentId": "a-2", "reason": "Best fit"})},
        seen,
    )
    choice = await client.select_agent("Title", [Agent(id="a-1"), Agent(id="a-2", tags=["career"])])
    await client.close()

    assert choice.agent_id == "a-2"
    assert choice.reason == "Best fit"
    assert [a["id"] for a in seen[0]["agents"]] == ["a-1", "a-2"]
