"""Asana OAuth 2.0 helpers."""

from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from activity_relay.config import settings


ASANA_AUTH_URL = "https://app.asana.com/-/oauth_authorize"
ASANA_TOKEN_URL = "https://app.asana.com/-/oauth_token"


class AuthorizedUser(BaseModel):
    """The `data` object Asana returns alongside a token: who authorized."""
    gid: str
    name: str | None = None
    email: str | None = None


class TokenData(BaseModel):
    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    user: AuthorizedUser | None = None


class AsanaOAuth:
    def __init__(self, redirect_uri: str | None = None, client: httpx.AsyncClient | None = None):
        self.redirect_uri = redirect_uri or settings.asana_redirect_uri
        # Optional shared client; a short-lived one is opened per call otherwise
        self._client = client

    def get_auth_url(self, state: str | None = None) -> str:
        params = {
            "client_id": settings.asana_client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
        }
        if state:
            params["state"] = state

        return f"{ASANA_AUTH_URL}?{urlencode(params)}"

    async def _post_token(self, payload: dict) -> dict:
        if self._client is not None:
            response = await self._client.post(ASANA_TOKEN_URL, data=payload)
        else:
            async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
                response = await client.post(ASANA_TOKEN_URL, data=payload)
        response.raise_for_status()
        return response.json()

    async def exchange_code(self, code: str) -> TokenData:
        payload = {
            "client_id": settings.asana_client_id,
            "client_secret": settings.asana_client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }
        data = await self._post_token(payload)
        return _token_from_response(data, fallback_refresh_token=None)

    async def refresh_token(self, refresh_token: str) -> TokenData:
        payload = {
            "client_id": settings.asana_client_id,
            "client_secret": settings.asana_client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        data = await self._post_token(payload)
        # Asana does not always rotate the refresh token
        return _token_from_response(data, fallback_refresh_token=refresh_token)


def _token_from_response(data: dict, fallback_refresh_token: str | None) -> TokenData:
    user = None
    user_data = data.get("data")
    if isinstance(user_data, dict) and user_data.get("gid"):
        user = AuthorizedUser(
            gid=str(user_data["gid"]),
            name=user_data.get("name"),
            email=user_data.get("email"),
        )

    return TokenData(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token") or fallback_refresh_token,
        token_type=data.get("token_type", "bearer"),
        user=user,
    )
