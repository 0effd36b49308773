"""Shared FastAPI dependencies."""

import httpx
from fastapi import Depends, HTTPException, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from activity_relay.auth.asana import AsanaOAuth
from activity_relay.config import settings
from activity_relay.credentials import CredentialStore
from activity_relay.db import get_session_factory

_api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str | None = Security(_api_key_header)) -> None:
    """Require X-API-Key when settings.api_key is configured."""
    if not settings.api_key:
        return
    if api_key != settings.api_key:
        raise HTTPException(401, "Invalid or missing API key")


async def get_http_client():
    """One Asana client per request, bounded by the configured timeout."""
    async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
        yield client


def get_credential_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> CredentialStore:
    return CredentialStore(session_factory, AsanaOAuth(client=client))
