"""Resolves Asana gids to display names, refreshing an expired token once."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from activity_relay.config import settings
from activity_relay.credentials import Credential
from activity_relay.enrichment.classifier import dig
from activity_relay.errors import is_token_expired_error, parse_asana_error

logger = logging.getLogger(__name__)

ASANA_API = "https://app.asana.com/api/1.0"

UNKNOWN_USER = "Unknown"

# Failure reasons carried by ResolutionError
MISSING_GID = "missing_gid"
NO_CREDENTIAL = "no_credential"
AUTH_EXPIRED = "auth_expired"
REFRESH_FAILED = "refresh_failed"
HTTP_ERROR = "http_error"
NETWORK_ERROR = "network_error"
INVALID_GID = "invalid_gid"
MALFORMED_BODY = "malformed_body"


@dataclass(frozen=True)
class ResolutionError:
    reason: str
    detail: str = ""


@dataclass(frozen=True)
class Resolution:
    """Either a resolved display value or the reason it could not be resolved."""
    value: str | None = None
    error: ResolutionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def or_fallback(self, fallback: str | None) -> str | None:
        return self.value if self.ok else fallback

    @classmethod
    def failed(cls, reason: str, detail: str = "") -> "Resolution":
        return cls(error=ResolutionError(reason, detail))


@dataclass(frozen=True)
class EntityKind:
    path: str
    field: str


USER = EntityKind(path="users", field="name")
TASK = EntityKind(path="tasks", field="name")
STORY = EntityKind(path="stories", field="text")


class TokenRefresher(Protocol):
    async def refresh(self, credential: Credential) -> Credential | None: ...


class NameResolver:
    """Looks up users, tasks and comment stories through the Asana REST API.

    Never raises: every failure comes back as a Resolution carrying an error.
    """

    def __init__(self, client: httpx.AsyncClient, refresher: TokenRefresher | None = None):
        self._client = client
        self._refresher = refresher
        # refresh token -> credential it was exchanged for, so later lookups skip the dead token
        self._refreshed: dict[str, Credential] = {}

    async def resolve_user(self, gid: str | None, credential: Credential) -> Resolution:
        return await self.resolve(USER, gid, credential)

    async def resolve_task(self, gid: str | None, credential: Credential) -> Resolution:
        return await self.resolve(TASK, gid, credential)

    async def resolve_comment(self, gid: str | None, credential: Credential) -> Resolution:
        return await self.resolve(STORY, gid, credential)

    async def resolve(self, kind: EntityKind, gid: str | None, credential: Credential) -> Resolution:
        if not gid:
            return Resolution.failed(MISSING_GID)

        if credential.refresh_token in self._refreshed:
            credential = self._refreshed[credential.refresh_token]
        token = credential.access_token or settings.asana_pat
        if not token:
            logger.info("No token available for %s %s", kind.path, gid)
            return Resolution.failed(NO_CREDENTIAL)

        logger.debug(
            "Fetching %s %s with %s",
            kind.path,
            gid,
            "account token" if credential.access_token else "PAT",
        )
        try:
            response = await self._get(kind, gid, token)
        except httpx.InvalidURL as e:
            logger.warning("Cannot build %s lookup for gid %r: %s", kind.path, gid, e)
            return Resolution.failed(INVALID_GID, str(e))
        except httpx.HTTPError as e:
            logger.warning("Error fetching %s %s: %s", kind.path, gid, e)
            return Resolution.failed(NETWORK_ERROR, str(e))

        if (
            response.status_code == 401
            and is_token_expired_error(response.text)
            and credential.refresh_token
            and self._refresher is not None
        ):
            return await self._refresh_and_retry(kind, gid, credential)

        return self._read(kind, gid, response)

    async def _refresh_and_retry(self, kind: EntityKind, gid: str, credential: Credential) -> Resolution:
        logger.info("Token expired, attempting refresh for account %s", credential.account_id)
        refreshed = await self._refresher.refresh(credential)
        if refreshed is None or not refreshed.access_token:
            return Resolution.failed(REFRESH_FAILED)
        self._refreshed[credential.refresh_token] = refreshed

        try:
            response = await self._get(kind, gid, refreshed.access_token)
        except httpx.InvalidURL as e:
            return Resolution.failed(INVALID_GID, str(e))
        except httpx.HTTPError as e:
            logger.warning("Retry fetching %s %s failed: %s", kind.path, gid, e)
            return Resolution.failed(NETWORK_ERROR, str(e))
        return self._read(kind, gid, response)

    async def _get(self, kind: EntityKind, gid: str, token: str) -> httpx.Response:
        return await self._client.get(
            f"{ASANA_API}/{kind.path}/{gid}",
            headers={"Authorization": f"Bearer {token}"},
        )

    def _read(self, kind: EntityKind, gid: str, response: httpx.Response) -> Resolution:
        if response.status_code == 401 and is_token_expired_error(response.text):
            return Resolution.failed(AUTH_EXPIRED, parse_asana_error(response.text))
        if response.status_code != 200:
            logger.warning("Asana %s lookup for %s returned %s", kind.path, gid, response.status_code)
            return Resolution.failed(HTTP_ERROR, parse_asana_error(response.text))

        try:
            body = response.json()
        except ValueError:
            return Resolution.failed(MALFORMED_BODY, "response is not JSON")

        value = dig(body, "data", kind.field)
        if not isinstance(value, str) or not value:
            return Resolution.failed(MALFORMED_BODY, f"missing data.{kind.field}")
        return Resolution(value=value)
