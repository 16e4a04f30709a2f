"""
Profile context.

Summarizes a public profile page (LinkedIn, portfolio, dating profile) so the
live interviewer can personalize its questions.
"""

import logging
import re

from impression_studio.models.edge_functions import EdgeFunctionClient
from impression_studio.orchestrator.errors import EmptyAIResult

logger = logging.getLogger(__name__)

PROFILE_FUNCTION = "fetch-profile-context"

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


def normalize_profile_url(url: str) -> str:
    """Add https:// when the URL has no scheme."""
    url = (url or "").strip()
    if url and not _SCHEME.match(url):
        return f"https://{url}"
    return url


class ProfileContextClient:
    def __init__(self, functions: EdgeFunctionClient | None = None) -> None:
        self._functions = functions or EdgeFunctionClient()

    async def fetch_summary(self, url: str, title: str = "") -> str:
        """
        Fetch and summarize a profile page.

        Raises:
            EmptyAIResult: If the URL is blank or no summary came back.
            RemoteCallFailed: If the function call failed.
        """
        normalized = normalize_profile_url(url)
        if not normalized:
            raise EmptyAIResult("No profile URL given", step=PROFILE_FUNCTION)

        data = await self._functions.invoke(PROFILE_FUNCTION, {"url": normalized, "title": title})
        summary = data.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            raise EmptyAIResult("Profile summary was empty", step=PROFILE_FUNCTION)
        logger.info(f"Fetched profile context for {normalized} ({len(summary)} chars)")
        return summary.strip()
