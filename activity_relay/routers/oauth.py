"""Asana OAuth login flow - stores the account's token pair."""

import logging
import secrets

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from activity_relay.auth.asana import AsanaOAuth
from activity_relay.config import settings
from activity_relay.credentials import CredentialStore
from activity_relay.dependencies import get_credential_store, get_http_client
from activity_relay.errors import parse_asana_error

logger = logging.getLogger(__name__)
router = APIRouter()


class OAuthResult(BaseModel):
    account_id: int
    asana_gid: str
    name: str | None = None


def _require_client_config() -> None:
    if not settings.asana_client_id or not settings.asana_client_secret:
        raise HTTPException(503, "Asana OAuth client not configured")


@router.get("/login")
async def login():
    """Redirect to Asana's consent screen."""
    _require_client_config()
    return RedirectResponse(AsanaOAuth().get_auth_url(state=secrets.token_urlsafe(16)))


@router.get("/callback", response_model=OAuthResult)
async def callback(
    code: str = Query(...),
    client: httpx.AsyncClient = Depends(get_http_client),
    store: CredentialStore = Depends(get_credential_store),
):
    """Exchange the authorization code and save the account's tokens."""
    _require_client_config()
    try:
        token = await AsanaOAuth(client=client).exchange_code(code)
    except httpx.HTTPStatusError as e:
        raise HTTPException(502, f"Asana token exchange failed: {parse_asana_error(e.response.text)}")
    except httpx.HTTPError as e:
        raise HTTPException(502, f"Asana token endpoint unreachable: {e}")

    if token.user is None:
        raise HTTPException(502, "Asana token response did not identify the user")

    account_id = await store.save(token)
    logger.info("Stored Asana credentials for account %s", account_id)
    return OAuthResult(account_id=account_id, asana_gid=token.user.gid, name=token.user.name)
