"""Speech-to-text (remote).

Recorded answers are sent base64-encoded to the `transcribe-audio` edge
function. An empty result means "no transcript", not an error.
"""

from __future__ import annotations

import base64
import logging

from impression_studio.models.edge_functions import EdgeFunctionClient
from impression_studio.orchestrator.schemas import MediaBlob

logger = logging.getLogger(__name__)

STT_FUNCTION = "transcribe-audio"


class Transcriber:
    def __init__(self, functions: EdgeFunctionClient | None = None) -> None:
        self._functions = functions or EdgeFunctionClient()

    async def transcribe(self, blob: MediaBlob) -> str:
        """Transcribe a finalized recording. Returns "" when nothing was recognized."""
        if not blob.data:
            return ""

        data = await self._functions.invoke(
            STT_FUNCTION,
            {
                "audio": base64.b64encode(blob.data).decode("ascii"),
                "mimeType": blob.content_type,
            },
        )
        text = data.get("text")
        if not isinstance(text, str):
            return ""
        text = text.strip()
        logger.debug(f"[VOICE][STT] transcript chars={len(text)}")
        return text
