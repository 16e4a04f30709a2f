"""
Question planner.

Produces the ordered question list for an interview. The LLM plan is used
when available; otherwise a deterministic starter set keeps the session going.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from impression_studio.models.llm_client import GenerationClient
from impression_studio.orchestrator.errors import EmptyAIResult, RemoteCallFailed
from impression_studio.orchestrator.notifications import Notifier
from impression_studio.orchestrator.schemas import Persona, Question

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "My Interview"

STARTER_NOTICE_TITLE = "Using starter questions"
STARTER_NOTICE_DESCRIPTION = "AI unavailable, using a basic set."

STARTER_QUESTIONS = [
    "What about {topic} is most important to you?",
    "Who is the audience and what do you want them to feel?",
    "What story or example best illustrates your point?",
    "What outcome would make this a success?",
    "Anything we should avoid or emphasize?",
    "What first got you interested in {topic}?",
    "What do you want people to remember after watching?",
]


class InterviewPlan(BaseModel):
    """Ordered questions for one interview."""

    topic: str = Field(..., description="Interview topic")
    questions: list[Question] = Field(default_factory=list)
    used_starter_set: bool = Field(
        default=False,
        description="True when the LLM was unavailable and starter questions were used",
    )

    @property
    def texts(self) -> list[str]:
        return [q.text for q in self.questions]


def starter_questions(topic: str, count: int) -> list[str]:
    """Deterministic generic questions, at most len(STARTER_QUESTIONS)."""
    return [q.format(topic=topic) for q in STARTER_QUESTIONS[:count]]


class QuestionPlanner:
    """
    Plans interview questions.

    Attributes:
        generation: LLM client for the plan.
        notifier: Where the starter-set notice goes.
        persona_selection_enabled: Honor the requested persona; otherwise
            every plan uses "professional".
    """

    def __init__(
        self,
        generation: GenerationClient | None = None,
        notifier: Notifier | None = None,
        persona_selection_enabled: bool = False,
    ) -> None:
        self.generation = generation or GenerationClient()
        self.notifier = notifier or Notifier()
        self.persona_selection_enabled = persona_selection_enabled

    async def plan(
        self,
        topic: str | None,
        count: int = 5,
        intent: str = "Custom",
        persona: Persona = "professional",
    ) -> InterviewPlan:
        """
        Build the question list.

        Args:
            topic: Interview topic; blank means DEFAULT_TOPIC.
            count: Requested number of questions.
            intent: Interview intent passed to the model.
            persona: Interviewer persona.

        Returns:
            The plan. Short LLM plans are padded from the starter set.
        """
        topic_value = (topic or "").strip() or DEFAULT_TOPIC
        count = max(1, count)
        if not self.persona_selection_enabled:
            persona = "professional"

        texts: list[str] = []
        try:
            texts = await self.generation.plan(topic_value, intent, persona, count)
        except (RemoteCallFailed, EmptyAIResult) as e:
            logger.warning(f"Question plan generation failed: {e}")

        used_starter_set = not texts
        if used_starter_set:
            texts = starter_questions(topic_value, count)
            self.notifier.notify(STARTER_NOTICE_TITLE, STARTER_NOTICE_DESCRIPTION)
        elif len(texts) < count:
            for extra in starter_questions(topic_value, len(STARTER_QUESTIONS)):
                if len(texts) >= count:
                    break
                if extra not in texts:
                    texts.append(extra)

        texts = texts[:count]
        logger.info(f"Planned {len(texts)} questions for topic={topic_value!r}")
        return InterviewPlan(
            topic=topic_value,
            questions=[Question(index=i, text=t) for i, t in enumerate(texts)],
            used_starter_set=used_starter_set,
        )
