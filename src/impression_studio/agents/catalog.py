"""
Agent and voice catalog.

Loads conversational agents and shared TTS voices through the edge functions,
merging in the curated defaults so the studio always has something to offer
when the vendor API is unreachable.
"""

import logging
import re
from typing import Any

from impression_studio.models.edge_functions import EdgeFunctionClient
from impression_studio.orchestrator.errors import RemoteCallFailed
from impression_studio.orchestrator.schemas import Agent, Voice

logger = logging.getLogger(__name__)

AGENTS_FUNCTION = "elevenlabs-get-agents"
VOICES_FUNCTION = "elevenlabs-get-shared-voices"

CURATED_AGENTS: list[Agent] = [
    Agent(
        id="agent_9801k286kms6e6f83fj5ex1ngmpc",
        name="Default Interviewer Agent",
        voice_id="9BWtsMINqrJLrRacOk9x",
        tags=["general", "interview"],
    ),
]

FALLBACK_VOICES: list[Voice] = [
    Voice(id="9BWtsMINqrJLrRacOk9x", name="Aria"),
    Voice(id="EXAVITQu4vr4xnSDxMaL", name="Sarah"),
]

# Optional id -> tags mapping for agents whose name/description say nothing useful.
AGENT_TAGS: dict[str, list[str]] = {}

DATING_APP_TAGS = ("hinge", "tinder", "bumble")

_CAREER_TAG_PATTERN = re.compile(r"(career|job|resume|cv|interview|recruiter|hiring|salary|linkedin)")
_DATING_TAG_PATTERN = re.compile(r"(dating|date|relationship|relationships|profile|romance|compatibility)")
_CONVERSATIONAL = re.compile(r"conversational", re.IGNORECASE)

# Stop paging once this many conversational voices are known.
MIN_ELIGIBLE_VOICES = 30
VOICES_PER_PAGE = 50
MAX_VOICE_PAGES = 5


def agent_tags(agent: Agent, tag_map: dict[str, list[str]] | None = None) -> list[str]:
    """
    Derive selection tags for an agent.

    Explicit tags win. Otherwise tags come from the id mapping plus keyword
    matches on name/description; "general" when nothing matched.
    """
    if agent.tags:
        return list(agent.tags)

    mapping = AGENT_TAGS if tag_map is None else tag_map
    tags: list[str] = list(mapping.get(agent.id, []))
    hay = f"{agent.name or ''} {agent.description or ''}".lower()

    def add(tag: str) -> None:
        if tag not in tags:
            tags.append(tag)

    if _CAREER_TAG_PATTERN.search(hay):
        add("career")
    if _DATING_TAG_PATTERN.search(hay):
        add("dating")
    for app in DATING_APP_TAGS:
        if app in hay:
            add(app)

    if not tags:
        tags.append("general")
    return tags


def is_eligible_voice(voice: Voice) -> bool:
    """Conversational voices that are high quality or at least have a preview."""
    conversational = any(_CONVERSATIONAL.search(label) for label in voice.labels) or bool(
        _CONVERSATIONAL.search(voice.name)
    )
    high_quality = voice.high_quality is True or bool(voice.preview_url)
    return conversational and high_quality


def merge_agents(api_agents: list[Agent], curated: list[Agent]) -> list[Agent]:
    """API agents first, then curated agents not already present."""
    seen = {a.id for a in api_agents}
    return [*api_agents, *(c for c in curated if c.id not in seen)]


def _decode_agent(raw: Any) -> Agent | None:
    if not isinstance(raw, dict):
        return None
    agent_id = raw.get("id") or raw.get("agent_id")
    if not isinstance(agent_id, str) or not agent_id:
        return None
    tags = raw.get("tags")
    return Agent(
        id=agent_id,
        name=raw.get("name") or "Unnamed Agent",
        description=raw.get("description") or None,
        voice_id=raw.get("voiceId") or raw.get("voice_id") or None,
        tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else [],
    )


def _decode_voice(raw: Any) -> Voice | None:
    if not isinstance(raw, dict):
        return None
    voice_id = raw.get("id") or raw.get("voice_id")
    if not isinstance(voice_id, str) or not voice_id:
        return None

    labels = raw.get("labels")
    if isinstance(labels, dict):
        label_list = [str(v) for v in labels.values() if v]
    elif isinstance(labels, list):
        label_list = [str(v) for v in labels if v]
    else:
        label_list = []

    high_quality = raw.get("highQuality", raw.get("high_quality"))
    return Voice(
        id=voice_id,
        name=raw.get("name") or "Unnamed Voice",
        preview_url=raw.get("previewUrl") or raw.get("preview_url") or None,
        language=raw.get("language") or None,
        labels=label_list,
        high_quality=high_quality if isinstance(high_quality, bool) else None,
    )


class AgentCatalog:
    """Read-only catalog of interviewer agents and voices."""

    def __init__(
        self,
        functions: EdgeFunctionClient | None = None,
        curated_agents: list[Agent] | None = None,
    ) -> None:
        """
        Initialize the catalog.

        Args:
            functions: Edge function transport. Creates default if None.
            curated_agents: Agents always offered (defaults to CURATED_AGENTS).
        """
        self._functions = functions or EdgeFunctionClient()
        self._curated = list(CURATED_AGENTS if curated_agents is None else curated_agents)

    async def load_agents(self) -> list[Agent]:
        """
        Load agents from the vendor API merged with the curated list.

        Returns:
            Agents with derived tags; only curated agents when the API fails.
        """
        try:
            data = await self._functions.invoke(AGENTS_FUNCTION, {})
            raw_agents = data.get("agents")
            api_agents = [
                a for a in (_decode_agent(r) for r in (raw_agents if isinstance(raw_agents, list) else [])) if a
            ]
        except RemoteCallFailed as e:
            logger.warning(f"Agent catalog unavailable, using curated agents: {e}")
            api_agents = []

        merged = merge_agents(api_agents, self._curated)
        return [a.model_copy(update={"tags": agent_tags(a)}) for a in merged]

    async def load_voices(self) -> list[Voice]:
        """
        Page through shared voices until enough conversational voices are known.

        Stops at MIN_ELIGIBLE_VOICES eligible voices, an empty page, or after
        MAX_VOICE_PAGES pages. Returns every voice seen (deduplicated by id), or
        the fallback voices when the first request fails.
        """
        combined: dict[str, Voice] = {}
        page = 1
        try:
            while True:
                data = await self._functions.invoke(
                    VOICES_FUNCTION, {"perPage": VOICES_PER_PAGE, "page": page}
                )
                raw_voices = data.get("voices")
                page_voices = [
                    v for v in (_decode_voice(r) for r in (raw_voices if isinstance(raw_voices, list) else [])) if v
                ]
                for voice in page_voices:
                    combined[voice.id] = voice

                eligible = sum(1 for v in combined.values() if is_eligible_voice(v))
                if eligible >= MIN_ELIGIBLE_VOICES or not page_voices:
                    break
                page += 1
                if page > MAX_VOICE_PAGES:
                    break
        except RemoteCallFailed as e:
            if not combined:
                logger.warning(f"Voice catalog unavailable, using fallback voices: {e}")
                return list(FALLBACK_VOICES)
            logger.warning(f"Voice paging stopped at page {page}: {e}")

        if not combined:
            return list(FALLBACK_VOICES)
        return list(combined.values())
