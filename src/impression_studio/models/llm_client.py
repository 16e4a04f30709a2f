"""
LLM generation gateway.

Wraps the `generate-with-gemini` edge function, which runs the model in one of
four modes: `plan`, `followup`, `preferences` and `select-agent`. Each mode's
response is decoded into a typed result here, so loosely shaped model output
never reaches the orchestrator.
"""

import ast
import json
import logging
import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from impression_studio.models.edge_functions import EdgeFunctionClient
from impression_studio.orchestrator.errors import EmptyAIResult, RemoteCallFailed
from impression_studio.orchestrator.schemas import Agent, HistoryEntry, Persona, VideoPreferences

logger = logging.getLogger(__name__)

GENERATE_FUNCTION = "generate-with-gemini"

# Leading bullets / numbering the model tends to emit ("- ", "• ", "1. ").
_BULLET_PREFIX = re.compile(r"^[-•\d.\s]+")


class PreferencesResult(BaseModel):
    """Decoded `preferences` mode response."""

    preferences: VideoPreferences | None = Field(
        default=None,
        description="Parsed preferences, or None when the output could not be parsed",
    )
    raw: str = Field(default="", description="Raw model output")


class AgentChoice(BaseModel):
    """Decoded `select-agent` mode response."""

    agent_id: str | None = Field(default=None, description="Chosen agent id, if any")
    reason: str = Field(default="", description="Model's explanation")


def clean_question_line(line: str) -> str:
    """Strip list markers and collapse whitespace in a generated question."""
    return re.sub(r"\s+", " ", _BULLET_PREFIX.sub("", line.strip())).strip()


def format_history(history: list[HistoryEntry]) -> list[dict[str, str]]:
    """Serialize history for the wire."""
    return [{"question": h.question, "summary": h.summary} for h in history]


class GenerationClient:
    """
    Typed client for the generation edge function.

    Raises RemoteCallFailed when the function fails and EmptyAIResult when it
    answers without usable content. Callers own the fallback policy.
    """

    def __init__(self, functions: EdgeFunctionClient | None = None) -> None:
        """
        Initialize the generation client.

        Args:
            functions: Edge function transport. Creates default if None.
        """
        self._functions = functions or EdgeFunctionClient()

    async def close(self) -> None:
        await self._functions.close()

    async def plan(
        self,
        topic: str,
        intent: str,
        persona: Persona,
        count: int,
    ) -> list[str]:
        """
        Generate an ordered interview plan.

        Args:
            topic: What the interview is about.
            intent: Interview intent (e.g. "Custom", "job", "dating").
            persona: Interviewer persona.
            count: Number of questions requested.

        Returns:
            At most `count` cleaned, non-empty question strings.
        """
        data = await self._functions.invoke(
            GENERATE_FUNCTION,
            {
                "mode": "plan",
                "topic": topic,
                "intent": intent,
                "persona": persona,
                "questionsCount": count,
            },
        )
        raw = data.get("questions")
        if not isinstance(raw, list):
            raise EmptyAIResult("Plan response had no question list", step="plan")

        questions: list[str] = []
        for item in raw:
            if not isinstance(item, str):
                continue
            cleaned = clean_question_line(item)
            if cleaned:
                questions.append(cleaned)
        return questions[:count]

    async def follow_up(
        self,
        persona: Persona,
        intent: str,
        history: list[HistoryEntry],
    ) -> str:
        """
        Generate the next question from the conversation so far.

        Returns:
            A single-line question.

        Raises:
            EmptyAIResult: If the model produced no question.
        """
        data = await self._functions.invoke(
            GENERATE_FUNCTION,
            {
                "mode": "followup",
                "persona": persona,
                "intent": intent,
                "history": format_history(history),
            },
        )
        raw = data.get("question")
        if not isinstance(raw, str):
            raise EmptyAIResult("Follow-up response had no question", step="followup")

        first_line = raw.strip().split("\n")[0]
        question = clean_question_line(first_line)
        if not question:
            raise EmptyAIResult("Follow-up question was empty", step="followup")
        return question

    async def preferences(
        self,
        history: list[HistoryEntry],
        guidance: str = "",
    ) -> PreferencesResult:
        """
        Extract video production preferences from the full history.

        Returns:
            Parsed preferences (None when the output was not valid JSON) plus raw text.
        """
        data = await self._functions.invoke(
            GENERATE_FUNCTION,
            {
                "mode": "preferences",
                "history": format_history(history),
                "guidance": guidance,
            },
        )
        raw = data.get("raw")
        raw_text = raw if isinstance(raw, str) else ""

        candidate = data.get("preferences")
        if not isinstance(candidate, dict) and raw_text:
            candidate = extract_json_object(raw_text)

        if not isinstance(candidate, dict):
            logger.warning("Preferences output could not be parsed")
            return PreferencesResult(preferences=None, raw=raw_text)

        try:
            parsed = VideoPreferences.model_validate(candidate)
        except ValidationError as e:
            logger.warning(f"Preferences output had an unexpected shape: {e}")
            return PreferencesResult(preferences=None, raw=raw_text)
        return PreferencesResult(preferences=parsed, raw=raw_text)

    async def select_agent(self, title: str, agents: list[Agent]) -> AgentChoice:
        """
        Ask the model to pick the best agent for an interview title.

        Returns:
            The model's choice; `agent_id` is None when it gave none.
        """
        data = await self._functions.invoke(
            GENERATE_FUNCTION,
            {
                "mode": "select-agent",
                "title": title,
                "agents": [
                    {
                        "id": a.id,
                        "name": a.name,
                        "description": a.description,
                        "tags": a.tags,
                    }
                    for a in agents
                ],
            },
        )
        agent_id = data.get("agentId") or data.get("agent_id") or data.get("id")
        reason = data.get("reason")
        return AgentChoice(
            agent_id=agent_id if isinstance(agent_id, str) and agent_id else None,
            reason=reason if isinstance(reason, str) else "",
        )


def extract_json_object(content: str) -> dict[str, Any] | None:
    """
    Find and parse the first JSON object in free-form model output.

    Returns:
        The parsed object, or None when nothing parseable was found.
    """
    content = (content or "").strip()
    if not content:
        return None

    parsed = _parse_json_loose(content)
    if isinstance(parsed, dict):
        return parsed

    start_idx = content.find("{")
    if start_idx == -1:
        return None

    # Find matching closing bracket
    depth = 0
    end_idx = -1
    for i, char in enumerate(content[start_idx:], start=start_idx):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end_idx = i + 1
                break
    if end_idx == -1:
        return None

    parsed = _parse_json_loose(content[start_idx:end_idx])
    return parsed if isinstance(parsed, dict) else None


def _fix_json_string(json_str: str) -> str:
    """
    Attempt to fix common JSON issues from LLM output.

    Args:
        json_str: Raw JSON string that may have issues.

    Returns:
        Cleaned JSON string.
    """
    if not json_str:
        return ""

    result = json_str.strip()

    # Strip common fenced blocks.
    result = re.sub(r"^```(?:json)?\s*", "", result, flags=re.IGNORECASE)
    result = re.sub(r"\s*```$", "", result)

    # Normalize curly quotes.
    result = (
        result.replace("“", '"')
        .replace("”", '"')
        .replace("‘", "'")
        .replace("’", "'")
    )

    # Remove trailing commas before closing braces/brackets.
    result = re.sub(r",(\s*[}\]])", r"\1", result)

    # Convert Python literals to JSON literals.
    result = re.sub(r"\bNone\b", "null", result)
    result = re.sub(r"\bTrue\b", "true", result)
    result = re.sub(r"\bFalse\b", "false", result)

    # Quote bare keys ({tone: "warm"}), only right after { or ,
    result = re.sub(
        r"([\{,]\s*)([A-Za-z_][A-Za-z0-9_\-]*)(\s*:)",
        r'\1"\2"\3',
        result,
    )

    if result.count("'") > 0 and result.count('"') == 0:
        result = result.replace("'", '"')

    return result


def _coerce_to_json_types(obj: Any) -> Any:
    """Coerce a Python literal to JSON-safe types."""
    if obj is ...:
        return None
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, dict):
        return {str(k): _coerce_to_json_types(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_coerce_to_json_types(v) for v in obj]
    return str(obj)


def _parse_json_loose(raw: str) -> dict[str, Any] | list[Any] | None:
    """Parse JSON with best-effort repair. Returns a dict/list on success, else None."""
    if not raw:
        return None

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    cleaned = _fix_json_string(raw)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Python literal fallback (single quotes, trailing commas).
    try:
        obj = ast.literal_eval(raw.strip())
    except (ValueError, SyntaxError, MemoryError, RecursionError, TypeError):
        try:
            obj = ast.literal_eval(cleaned)
        except (ValueError, SyntaxError, MemoryError, RecursionError, TypeError):
            return None

    if not isinstance(obj, (dict, list, tuple, set)):
        return None

    return _coerce_to_json_types(obj)


__all__ = [
    "AgentChoice",
    "GenerationClient",
    "PreferencesResult",
    "RemoteCallFailed",
    "clean_question_line",
    "extract_json_object",
]
