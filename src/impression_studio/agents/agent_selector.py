"""
Agent Selector.

Chooses the interviewer agent for an interview title. A layered keyword
classifier sorts the title into career, dating or unknown; agents are scored
against that category and the best one wins. When no agent scores and there
is more than one to choose from, the choice is delegated to the LLM, falling
back to the first agent in catalog order.
"""

import logging
import re

from impression_studio.agents.catalog import agent_tags
from impression_studio.models.llm_client import GenerationClient
from impression_studio.orchestrator.errors import EmptyAIResult, NoAgentSelected, RemoteCallFailed
from impression_studio.orchestrator.schemas import Agent, AgentSelection, TitleCategory

logger = logging.getLogger(__name__)

DATING_BRANDS = ["tinder", "hinge", "bumble", "okcupid", "grindr", "raya"]

CAREER_TERMS = [
    "job",
    "jobs",
    "career",
    "resume",
    "résumé",
    "cv",
    "recruiter",
    "recruiting",
    "hiring",
    "technical interview",
    "behavioral interview",
    "internship",
    "intern",
    "application",
    "salary",
    "promotion",
    "linkedin",
    "employer",
    "position",
    "role",
    "cover letter",
    "portfolio",
    "onboarding",
    "engineer",
    "manager",
]

DATING_TERMS = [
    "date",
    "dating",
    "first date",
    "relationship",
    "relationships",
    "romance",
    "romantic",
    "love",
    "partner",
    "match",
    "matches",
    "boyfriend",
    "girlfriend",
    "compatibility",
    "flirt",
    "flirting",
    "single",
]

# "<verb> <brand>": the brand is being talked about as an employer.
_BRAND_AS_COMPANY = re.compile(
    r"\b(join|joining|work at|working at|work for|working for|apply to|apply at|applying to|"
    r"applying at|intern at|interning at|interview at|interviewing at|hired at|hired by|"
    r"career at|job at|role at|position at)\s+(" + "|".join(DATING_BRANDS) + r")\b"
)

# Points added per signal when scoring an agent.
CATEGORY_TAG_BONUS = 100
BRAND_TAG_BONUS = 5
KEYWORD_POINT = 1
CATEGORY_WORD_BONUS = 3


def _contains(text: str, term: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(term)}(?!\w)", text) is not None


def _hits(text: str, terms: list[str]) -> list[str]:
    return [t for t in terms if _contains(text, t)]


def title_brands(title: str) -> list[str]:
    """Dating-app brands mentioned in a title, in DATING_BRANDS order."""
    return _hits(title.lower(), DATING_BRANDS)


def classify_title(title: str) -> TitleCategory:
    """
    Classify an interview title as career, dating or unknown.

    Args:
        title: Free-text interview title.

    Returns:
        The title category.
    """
    text = (title or "").lower()
    career_hits = _hits(text, CAREER_TERMS)
    dating_hits = _hits(text, DATING_TERMS)
    brands = _hits(text, DATING_BRANDS)

    if brands:
        if _contains(text, "profile"):
            return "dating"
        if _BRAND_AS_COMPANY.search(text):
            return "career"
        if career_hits:
            return "career"
        return "dating"

    if len(career_hits) > len(dating_hits):
        return "career"
    if len(dating_hits) > len(career_hits):
        return "dating"
    if career_hits:
        return "career"
    return "unknown"


def score_agent(agent: Agent, category: TitleCategory, brands: list[str]) -> int:
    """Score one agent for a classified title. Higher is better."""
    if category == "unknown":
        return 0

    tags = [t.lower() for t in agent_tags(agent)]
    hay = f"{agent.name or ''} {agent.description or ''}".lower()
    keywords = CAREER_TERMS if category == "career" else DATING_TERMS

    score = 0
    if category in tags:
        score += CATEGORY_TAG_BONUS
    score += BRAND_TAG_BONUS * sum(1 for b in brands if b in tags)
    score += KEYWORD_POINT * len(_hits(hay, keywords))
    if category in hay:
        score += CATEGORY_WORD_BONUS
    return score


class AgentSelector:
    """
    Picks the interviewer agent for a title.

    Attributes:
        generation: LLM client consulted when the rules cannot decide.
    """

    def __init__(self, generation: GenerationClient | None = None) -> None:
        self.generation = generation

    def rank(self, title: str, agents: list[Agent]) -> list[tuple[Agent, int]]:
        """Agents with scores, best first; catalog order breaks ties."""
        category = classify_title(title)
        brands = title_brands(title)
        scored = [(a, score_agent(a, category, brands)) for a in agents]
        return sorted(scored, key=lambda pair: pair[1], reverse=True)

    async def select(self, title: str, agents: list[Agent]) -> AgentSelection:
        """
        Select an agent for the interview title.

        Args:
            title: Free-text interview title.
            agents: Candidate agents in catalog order.

        Returns:
            The chosen agent with reason and provenance.

        Raises:
            NoAgentSelected: If there are no candidates.
        """
        if not agents:
            raise NoAgentSelected("No interviewer agents are available")

        category = classify_title(title)
        ranked = self.rank(title, agents)
        top, top_score = ranked[0]

        if top_score > 0 or len(agents) == 1:
            reason = (
                f"Matched {category} interview (score {top_score})"
                if top_score > 0
                else "Only one agent available"
            )
            logger.info(f"Selected agent {top.id} by rule: {reason}")
            return AgentSelection(agent_id=top.id, reason=reason, source="rule", category=category)

        if self.generation is not None:
            try:
                choice = await self.generation.select_agent(title, agents)
            except (RemoteCallFailed, EmptyAIResult) as e:
                logger.warning(f"LLM agent selection failed: {e}")
            else:
                if choice.agent_id and any(a.id == choice.agent_id for a in agents):
                    reason = choice.reason or "Chosen by the model"
                    logger.info(f"Selected agent {choice.agent_id} by model: {reason}")
                    return AgentSelection(
                        agent_id=choice.agent_id, reason=reason, source="gemini", category=category
                    )
                logger.warning(f"LLM returned unknown agent id: {choice.agent_id!r}")

        first = agents[0]
        return AgentSelection(
            agent_id=first.id,
            reason="No clear match; using the first available agent",
            source="rule",
            category=category,
        )
