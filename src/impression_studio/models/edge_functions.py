"""
Edge function transport.

Every remote AI/voice gateway is a serverless function on the backend
project. This client owns the HTTP connection, the auth headers and the
error mapping; the gateways on top of it only decode payloads.
"""

import logging
from typing import Any

import httpx

from impression_studio.config import get_settings
from impression_studio.orchestrator.errors import RemoteCallFailed

logger = logging.getLogger(__name__)


class EdgeFunctionClient:
    """
    Invokes edge functions at `{supabase_url}/functions/v1/{name}`.

    Non-2xx responses, transport errors and non-JSON bodies are raised as
    RemoteCallFailed carrying the function name as the failing step.
    """

    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the edge function client.

        Args:
            base_url: Functions base URL (uses config if not provided).
            anon_key: Project anon key (uses config if not provided).
            access_token: Signed-in user's token; the anon key is used when empty.
            timeout: Request timeout in seconds (uses config if not provided).
            transport: Optional httpx transport, mainly for tests.
        """
        settings = get_settings()
        self._base_url = base_url or settings.functions_url
        self._anon_key = anon_key if anon_key is not None else settings.supabase_anon_key
        self._access_token = access_token if access_token is not None else settings.supabase_access_token
        self._timeout = timeout or settings.http_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def set_access_token(self, token: str | None) -> None:
        """Switch the bearer token (e.g. after sign-in)."""
        self._access_token = token or ""

    def _headers(self) -> dict[str, str]:
        bearer = self._access_token or self._anon_key
        headers = {"Content-Type": "application/json"}
        if self._anon_key:
            headers["apikey"] = self._anon_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def invoke(self, name: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Invoke a function with a JSON body and return its JSON object response.

        Args:
            name: Function name (e.g. "elevenlabs-tts").
            body: JSON request body.

        Returns:
            Decoded JSON object.

        Raises:
            RemoteCallFailed: On transport errors, non-2xx status or a non-object body.
        """
        client = await self._get_client()
        try:
            response = await client.post(f"/{name}", json=body or {}, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning(f"Edge function {name} unreachable: {e}")
            raise RemoteCallFailed(f"{name} request failed: {e}", step=name) from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"Edge function {name} returned {response.status_code}: {message}")
            raise RemoteCallFailed(message, step=name, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteCallFailed(f"{name} returned a non-JSON body", step=name) from e

        if not isinstance(data, dict):
            raise RemoteCallFailed(f"{name} returned an unexpected payload", step=name)
        return data


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a failed function response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        error = payload.get("error") or payload.get("message")
        if error:
            return str(error)
    return f"HTTP {response.status_code}"
