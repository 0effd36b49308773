"""Credential store - Asana token pairs keyed by internal account id."""

import logging
from dataclasses import dataclass

import httpx
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from activity_relay.auth.asana import AsanaOAuth, TokenData
from activity_relay.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """Bearer credential for one Asana account.

    An empty access token means the caller should fall back to the
    configured personal access token.
    """
    access_token: str | None = None
    refresh_token: str | None = None
    account_id: int | None = None


class CredentialStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], oauth: AsanaOAuth | None = None):
        self._session_factory = session_factory
        self._oauth = oauth or AsanaOAuth()

    async def get(self, account_id: int | None) -> Credential:
        """Current token pair for an account; empty when unknown."""
        if account_id is None:
            return Credential()

        async with self._session_factory() as session:
            user = await session.get(User, account_id)

        if user is None:
            logger.warning("No stored credential for account %s", account_id)
            return Credential()
        return Credential(
            access_token=user.access_token,
            refresh_token=user.refresh_token,
            account_id=user.id,
        )

    async def refresh(self, credential: Credential) -> Credential | None:
        """Exchange the refresh token for a new pair and persist it.

        Returns None when there is nothing to refresh with or the exchange fails.
        """
        if not credential.refresh_token:
            return None

        try:
            token = await self._oauth.refresh_token(credential.refresh_token)
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.warning("Token refresh failed for account %s: %s", credential.account_id, e)
            return None

        refreshed = Credential(
            access_token=token.access_token,
            refresh_token=token.refresh_token or credential.refresh_token,
            account_id=credential.account_id,
        )

        if credential.account_id is not None:
            try:
                async with self._session_factory() as session:
                    await session.execute(
                        update(User)
                        .where(User.id == credential.account_id)
                        .values(
                            access_token=refreshed.access_token,
                            refresh_token=refreshed.refresh_token,
                        )
                    )
                    await session.commit()
            except SQLAlchemyError:
                # Still returned: the pair is usable for the rest of this batch
                logger.exception("Could not persist refreshed tokens for account %s", credential.account_id)
            else:
                logger.info("Updated tokens in database for account %s", credential.account_id)

        return refreshed

    async def save(self, token: TokenData) -> int:
        """Create or update the account that just completed OAuth. Returns its id."""
        if token.user is None:
            raise ValueError("Token response did not identify the authorizing user")

        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.asana_gid == token.user.gid))
            user = result.scalar_one_or_none()
            if user is None:
                user = User(asana_gid=token.user.gid)
                session.add(user)

            user.name = token.user.name
            user.email = token.user.email
            user.access_token = token.access_token
            if token.refresh_token:
                user.refresh_token = token.refresh_token

            await session.commit()
            return user.id
