"""
Object store client.

Recorded media lives in a storage bucket under `{user_id}/{session_id}/...`.
This is a thin async client for the storage REST API.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from impression_studio.config import get_settings
from impression_studio.orchestrator.errors import RemoteCallFailed

logger = logging.getLogger(__name__)


class SupabaseObjectStore:
    """
    Upload, download, list and remove blobs in one bucket.

    Every failure is raised as RemoteCallFailed with the operation as step.
    """

    def __init__(
        self,
        bucket: str | None = None,
        base_url: str | None = None,
        anon_key: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the object store client.

        Args:
            bucket: Bucket name (uses config if not provided).
            base_url: Storage API base URL (uses config if not provided).
            anon_key: Project anon key (uses config if not provided).
            access_token: Signed-in user's token (uses config if not provided).
            timeout: Request timeout in seconds (uses config if not provided).
            transport: Optional httpx transport, mainly for tests.
        """
        settings = get_settings()
        self.bucket = bucket or settings.recordings_bucket
        self._base_url = base_url or settings.storage_url
        self._anon_key = anon_key if anon_key is not None else settings.supabase_anon_key
        self._access_token = access_token if access_token is not None else settings.supabase_access_token
        self._timeout = timeout or settings.http_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def set_access_token(self, token: str | None) -> None:
        self._access_token = token or ""

    def _headers(self, content_type: str | None = None) -> dict[str, str]:
        headers: dict[str, str] = {}
        bearer = self._access_token or self._anon_key
        if self._anon_key:
            headers["apikey"] = self._anon_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        if content_type:
            headers["Content-Type"] = content_type
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

    async def _request(self, step: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteCallFailed(f"Storage {step} failed: {e}", step=f"object-store.{step}") from e
        if response.status_code >= 400:
            detail = response.text.strip() or f"HTTP {response.status_code}"
            logger.warning(f"Storage {step} returned {response.status_code}: {detail}")
            raise RemoteCallFailed(detail, step=f"object-store.{step}", status_code=response.status_code)
        return response

    async def upload(self, path: str, data: bytes, content_type: str, upsert: bool = False) -> str:
        """
        Upload a blob.

        Args:
            path: Object path inside the bucket.
            data: Blob bytes.
            content_type: MIME type stored with the object.
            upsert: Overwrite an existing object at the same path.

        Returns:
            The stored path.
        """
        headers = self._headers(content_type)
        headers["x-upsert"] = "true" if upsert else "false"
        await self._request("upload", "POST", f"/object/{self.bucket}/{path}", content=data, headers=headers)
        logger.info(f"Uploaded {len(data)} bytes to {self.bucket}/{path}")
        return path

    async def download(self, path: str) -> bytes:
        """Download a blob."""
        response = await self._request(
            "download", "GET", f"/object/{self.bucket}/{path}", headers=self._headers()
        )
        return response.content

    async def list(self, prefix: str, limit: int = 100) -> list[str]:
        """
        List object names directly under a prefix.

        Returns:
            Object names (not full paths), sorted by name.
        """
        response = await self._request(
            "list",
            "POST",
            f"/object/list/{self.bucket}",
            json={
                "prefix": prefix,
                "limit": limit,
                "offset": 0,
                "sortBy": {"column": "name", "order": "asc"},
            },
            headers=self._headers("application/json"),
        )
        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteCallFailed("Storage list returned a non-JSON body", step="object-store.list") from e
        if not isinstance(payload, list):
            return []
        return [item["name"] for item in payload if isinstance(item, dict) and item.get("name")]

    async def remove(self, paths: list[str]) -> None:
        """Remove blobs by full path. No-op for an empty list."""
        if not paths:
            return
        await self._request(
            "remove",
            "DELETE",
            f"/object/{self.bucket}",
            json={"prefixes": paths},
            headers=self._headers("application/json"),
        )
        logger.info(f"Removed {len(paths)} objects from {self.bucket}")
