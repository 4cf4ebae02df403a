# app/services/token_cache.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from app.core.time_utils import Clock, utc_now


@dataclass
class CachedToken:
    access_token: str
    expires_at: datetime


class TokenCache:
    """
    Time-boxed holder for a single bearer token.

    The clock is injected so expiry can be exercised in tests without real
    time passing. A safety margin is subtracted from the provider-declared
    lifetime so the token is refreshed slightly before it really expires.
    """

    def __init__(self, clock: Clock = utc_now, safety_margin_seconds: float = 60.0) -> None:
        self._clock = clock
        self._safety_margin = safety_margin_seconds
        self._token: Optional[CachedToken] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        return self._token.expires_at if self._token else None

    def get(self) -> Optional[str]:
        """
        Return the cached token if it has not expired yet, else None.
        """
        if self._token and self._token.expires_at > self._clock():
            return self._token.access_token
        return None

    def store(self, access_token: str, expires_in: float) -> CachedToken:
        expires_at = self._clock() + timedelta(seconds=float(expires_in) - self._safety_margin)
        self._token = CachedToken(access_token=access_token, expires_at=expires_at)
        return self._token

    def invalidate(self) -> None:
        self._token = None
