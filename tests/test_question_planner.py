import httpx
import pytest

from impression_studio.agents.question_planner import (
    DEFAULT_TOPIC,
    STARTER_NOTICE_TITLE,
    STARTER_QUESTIONS,
    QuestionPlanner,
)
from impression_studio.models.edge_functions import EdgeFunctionClient
from impression_studio.models.llm_client import GenerationClient
from impression_studio.orchestrator.errors import EmptyAIResult
from impression_studio.orchestrator.notifications import Notifier


class FakeGeneration:
    def __init__(self, questions=None, error: Exception | None = None) -> None:
        self.questions = questions or []
        self.error = error
        self.calls: list[tuple] = []

    async def plan(self, topic, intent, persona, count):
        self.calls.append((topic, intent, persona, count))
        if self.error is not None:
            raise self.error
        return list(self.questions)


@pytest.mark.asyncio
async def test_gateway_failure_uses_starter_questions() -> None:
    functions = EdgeFunctionClient(
        base_url="http://functions.test/functions/v1",
        anon_key="anon",
        access_token="",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "boom"})),
    )
    notifier = Notifier()
    planner = QuestionPlanner(GenerationClient(functions), notifier)

    plan = await planner.plan("Launching my fitness coaching brand", count=5)
    await functions.close()

    assert plan.used_starter_set
    assert len(plan.questions) == 5
    assert plan.texts[0] == "What about Launching my fitness coaching brand is most important to you?"
    assert plan.texts[1:] == STARTER_QUESTIONS[1:5]
    assert [q.index for q in plan.questions] == [0, 1, 2, 3, 4]
    assert notifier.titles() == [STARTER_NOTICE_TITLE]


@pytest.mark.asyncio
async def test_empty_plan_uses_starter_questions() -> None:
    notifier = Notifier()
    planner = QuestionPlanner(FakeGeneration(error=EmptyAIResult("none", step="plan")), notifier)

    plan = await planner.plan("Podcast", count=3)

    assert plan.texts == [STARTER_QUESTIONS[0].format(topic="Podcast"), *STARTER_QUESTIONS[1:3]]
    assert STARTER_NOTICE_TITLE in notifier.titles()


@pytest.mark.asyncio
async def test_llm_plan_is_used_as_is() -> None:
    notifier = Notifier()
    generation = FakeGeneration(["One?", "Two?", "Three?"])
    plan = await QuestionPlanner(generation, notifier).plan("Podcast", count=3, intent="job")

    assert plan.texts == ["One?", "Two?", "Three?"]
    assert not plan.used_starter_set
    assert notifier.titles() == []
    assert generation.calls == [("Podcast", "job", "professional", 3)]


@pytest.mark.asyncio
async def test_short_plan_is_padded_without_duplicates() -> None:
    generation = FakeGeneration(["Who is the audience and what do you want them to feel?", "Custom?"])
    plan = await QuestionPlanner(generation, Notifier()).plan("Podcast", count=4)

    assert plan.texts == [
        "Who is the audience and what do you want them to feel?",
        "Custom?",
        "What about Podcast is most important to you?",
        "What story or example best illustrates your point?",
    ]
    assert not plan.used_starter_set


@pytest.mark.asyncio
async def test_long_plan_is_truncated() -> None:
    generation = FakeGeneration([f"Q{i}?" for i in range(8)])
    plan = await QuestionPlanner(generation, Notifier()).plan("Podcast", count=5)
    assert plan.texts == ["Q0?", "Q1?", "Q2?", "Q3?", "Q4?"]


@pytest.mark.asyncio
async def test_persona_is_professional_unless_selection_enabled() -> None:
    generation = FakeGeneration(["A?"])
    await QuestionPlanner(generation, Notifier()).plan("Podcast", count=1, persona="flirty")
    await QuestionPlanner(generation, Notifier(), persona_selection_enabled=True).plan(
        "Podcast", count=1, persona="flirty"
    )

    assert [call[2] for call in generation.calls] == ["professional", "flirty"]


@pytest.mark.asyncio
async def test_blank_topic_uses_default() -> None:
    generation = FakeGeneration(["A?"])
    plan = await QuestionPlanner(generation, Notifier()).plan("   ", count=1)

    assert plan.topic == DEFAULT_TOPIC
    assert generation.calls[0][0] == DEFAULT_TOPIC
