# app/services/token_store.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.oauth_token import OAuthToken


@dataclass
class OAuthTokenPair:
    access_token: Optional[str]
    refresh_token: Optional[str]


class OAuthTokenStore:
    """
    Loads and upserts the OAuth token pair of a provider connection.

    One row per provider; saving overwrites the previous pair since providers
    such as Calendly rotate the refresh token on every refresh.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self, provider: str) -> Optional[OAuthTokenPair]:
        async with self._session_factory() as session:
            row = await self._get_row(session, provider)
            if row is None:
                return None
            return OAuthTokenPair(
                access_token=row.access_token,
                refresh_token=row.refresh_token,
            )

    async def save(self, provider: str, tokens: OAuthTokenPair) -> None:
        async with self._session_factory() as session:
            row = await self._get_row(session, provider)
            if row is None:
                row = OAuthToken(provider=provider)
                session.add(row)

            row.access_token = tokens.access_token
            row.refresh_token = tokens.refresh_token
            row.updated_at = datetime.now(tz=timezone.utc)

            await session.commit()

    @staticmethod
    async def _get_row(session: AsyncSession, provider: str) -> Optional[OAuthToken]:
        stmt = select(OAuthToken).where(OAuthToken.provider == provider)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()
