import pytest

from impression_studio.agents.agent_selector import AgentSelector, classify_title, score_agent, title_brands
from impression_studio.models.llm_client import AgentChoice
from impression_studio.orchestrator.errors import NoAgentSelected, RemoteCallFailed
from impression_studio.orchestrator.schemas import Agent

DATING_AGENT = Agent(id="dating-1", name="Dating Coach", tags=["dating", "hinge"])
CAREER_AGENT = Agent(id="career-1", name="Recruiter", tags=["career"])
GENERAL_A = Agent(id="general-a", name="Friendly Host", tags=["general"])
GENERAL_B = Agent(id="general-b", name="Calm Host", tags=["general"])


class FakeGeneration:
    def __init__(self, choice: AgentChoice | None = None, error: Exception | None = None) -> None:
        self.choice = choice
        self.error = error
        self.calls: list[str] = []

    async def select_agent(self, title, agents):
        self.calls.append(title)
        if self.error is not None:
            raise self.error
        return self.choice


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Tell me about your internship application", "career"),
        ("Preparing for a technical interview", "career"),
        ("My Hinge profile review", "dating"),
        ("Tinder interview practice", "dating"),
        ("Why I want to join Tinder", "career"),
        ("Applying to Bumble as an engineer", "career"),
        ("First date stories", "dating"),
        ("Weekend plans", "unknown"),
    ],
)
def test_classify_title(title: str, expected: str) -> None:
    assert classify_title(title) == expected


def test_title_brands_are_whole_words() -> None:
    assert title_brands("Hinge and Bumble tips") == ["hinge", "bumble"]
    assert title_brands("Unhinged thoughts") == []


def test_category_tag_dominates_keywords() -> None:
    keyword_heavy = Agent(id="kw", name="Job resume salary helper", tags=["general"])
    assert score_agent(CAREER_AGENT, "career", []) > score_agent(keyword_heavy, "career", [])
    assert score_agent(DATING_AGENT, "dating", ["hinge"]) == 100 + 5 + 1 + 3


@pytest.mark.asyncio
async def test_career_title_prefers_career_agent_over_catalog_order() -> None:
    generation = FakeGeneration()
    selection = await AgentSelector(generation).select(
        "Tell me about your internship application",
        [DATING_AGENT, CAREER_AGENT],
    )

    assert selection.agent_id == "career-1"
    assert selection.source == "rule"
    assert selection.category == "career"
    assert generation.calls == []


@pytest.mark.asyncio
async def test_dating_profile_title_prefers_dating_agent() -> None:
    selection = await AgentSelector().select("My Hinge profile review", [CAREER_AGENT, DATING_AGENT])
    assert selection.agent_id == "dating-1"
    assert selection.category == "dating"


@pytest.mark.asyncio
async def test_unclear_title_asks_the_model() -> None:
    generation = FakeGeneration(AgentChoice(agent_id="general-b", reason="Calm tone fits"))
    selection = await AgentSelector(generation).select("Weekend plans", [GENERAL_A, GENERAL_B])

    assert selection.agent_id == "general-b"
    assert selection.source == "gemini"
    assert selection.reason == "Calm tone fits"
    assert generation.calls == ["Weekend plans"]


@pytest.mark.asyncio
async def test_model_unknown_id_falls_back_to_first_agent() -> None:
    generation = FakeGeneration(AgentChoice(agent_id="made-up"))
    selection = await AgentSelector(generation).select("Weekend plans", [GENERAL_A, GENERAL_B])

    assert selection.agent_id == "general-a"
    assert selection.source == "rule"


@pytest.mark.asyncio
async def test_model_failure_falls_back_to_first_agent() -> None:
    generation = FakeGeneration(error=RemoteCallFailed("boom", step="generate-with-gemini"))
    selection = await AgentSelector(generation).select("Weekend plans", [GENERAL_A, GENERAL_B])
    assert selection.agent_id == "general-a"


@pytest.mark.asyncio
async def test_single_agent_is_chosen_without_the_model() -> None:
    generation = FakeGeneration(AgentChoice(agent_id="other"))
    selection = await AgentSelector(generation).select("Weekend plans", [GENERAL_A])

    assert selection.agent_id == "general-a"
    assert selection.source == "rule"
    assert generation.calls == []


@pytest.mark.asyncio
async def test_no_agents_raises() -> None:
    with pytest.raises(NoAgentSelected):
        await AgentSelector().select("anything", [])
