"""
Caller authentication.

The studio only needs to know who the signed-in user is. Sign-in itself
happens elsewhere; `SettingsAuthProvider` reads the token and user id from
configuration.
"""

from typing import Protocol

from pydantic import BaseModel, Field

from impression_studio.config import get_settings


class AuthSession(BaseModel):
    """A signed-in user."""

    user_id: str = Field(..., description="Owner id for persisted rows")
    access_token: str = Field(..., description="Bearer token for gateway calls")


class AuthProvider(Protocol):
    async def get_session(self) -> AuthSession | None: ...


class SettingsAuthProvider:
    """Auth from SUPABASE_ACCESS_TOKEN / SUPABASE_USER_ID."""

    def __init__(self, user_id: str | None = None, access_token: str | None = None) -> None:
        settings = get_settings()
        self._user_id = user_id if user_id is not None else settings.supabase_user_id
        self._access_token = access_token if access_token is not None else settings.supabase_access_token

    async def get_session(self) -> AuthSession | None:
        if not self._user_id or not self._access_token:
            return None
        return AuthSession(user_id=self._user_id, access_token=self._access_token)
