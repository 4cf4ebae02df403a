# app/services/calendly_client.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from app.core.config import get_settings
from app.schemas.calendly import RawEvent, Registrant
from app.schemas.webinar import TimeDirection
from app.services.token_store import OAuthTokenPair, OAuthTokenStore

logger = logging.getLogger(__name__)

CALENDLY_PROVIDER = "calendly"


class CalendlyClientError(RuntimeError):
    """
    Raised when a Calendly API call fails in a non-recoverable way.
    """


class CalendlyAuthError(CalendlyClientError):
    """
    Raised when Calendly still answers 401 after a token refresh, or when the
    refresh itself is rejected. Surfaces to clients as "Authentication expired".
    """


class CalendlyNotConnectedError(CalendlyClientError):
    """
    Raised when no Calendly access token has been obtained yet.
    """


class CalendlyClient:
    """
    Calendly API client acting on behalf of the connected administrator.

    Responsibilities
    ----------------
    - Build the OAuth authorize URL and exchange the callback code.
    - Keep the token pair in memory and persist it through `OAuthTokenStore`.
    - On 401, refresh the access token and retry that single call once.
    - Walk `pagination.next_page` lazily.
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str | None,
        token_store: OAuthTokenStore,
        api_base_url: str = "https://api.calendly.com",
        auth_base_url: str = "https://auth.calendly.com",
        timeout_seconds: float = 15.0,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._token_store = token_store
        self._api_base_url = api_base_url.rstrip("/")
        self._auth_base_url = auth_base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds

        self._tokens: Optional[OAuthTokenPair] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def token_url(self) -> str:
        return f"{self._auth_base_url}/oauth/token"

    def authorize_url(self) -> str:
        """
        URL the administrator is redirected to in order to connect Calendly.
        """
        if not self._client_id:
            raise CalendlyClientError("CALENDLY_CLIENT_ID is not configured")
        query = urlencode(
            {
                "client_id": self._client_id,
                "response_type": "code",
                "redirect_uri": self._redirect_uri or "",
            }
        )
        return f"{self._auth_base_url}/oauth/authorize?{query}"

    async def _load_tokens(self) -> Optional[OAuthTokenPair]:
        if self._tokens is None:
            self._tokens = await self._token_store.load(CALENDLY_PROVIDER)
        return self._tokens

    async def is_connected(self) -> bool:
        tokens = await self._load_tokens()
        return bool(tokens and tokens.access_token)

    async def _token_request(self, params: Dict[str, Any]) -> OAuthTokenPair:
        """
        Call the Calendly token endpoint and persist the returned pair.
        """
        body = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            **params,
        }
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            resp = await client.post(self.token_url, data=body)

        if resp.status_code != 200:
            raise CalendlyAuthError(
                f"Calendly token request failed (status={resp.status_code}): {resp.text}"
            )

        payload = resp.json()
        access_token = payload.get("access_token")
        if not access_token:
            raise CalendlyAuthError("Invalid token response from Calendly (missing access_token)")

        tokens = OAuthTokenPair(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
        )
        await self._token_store.save(CALENDLY_PROVIDER, tokens)
        self._tokens = tokens
        return tokens

    async def exchange_code(self, code: str) -> None:
        """
        Exchange an OAuth authorization code for a token pair.
        """
        await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self._redirect_uri,
            }
        )

    async def refresh_access_token(self, stale_token: Optional[str] = None) -> str:
        """
        Obtain a new access token using the stored refresh token.

        Calendly rotates refresh tokens, so the new pair replaces the old one.
        Concurrent callers that saw the same `stale_token` share one refresh.
        """
        async with self._refresh_lock:
            tokens = await self._load_tokens()
            if tokens and tokens.access_token and stale_token and tokens.access_token != stale_token:
                return tokens.access_token
            if not tokens or not tokens.refresh_token:
                raise CalendlyAuthError("No Calendly refresh token available")

            logger.info("Refreshing Calendly access token")
            refreshed = await self._token_request(
                {
                    "grant_type": "refresh_token",
                    "refresh_token": tokens.refresh_token,
                }
            )
            return refreshed.access_token or ""

    async def _send(self, url: str, token: str, params: Optional[Dict[str, Any]]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            return await client.request(
                method="GET",
                url=url,
                headers=headers,
                params=params,
            )

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Issue an authenticated GET and return the JSON payload.

        A 401 triggers one token refresh and one retry; a second 401 raises
        CalendlyAuthError. Other non-2xx responses raise CalendlyClientError.
        """
        tokens = await self._load_tokens()
        if not tokens or not tokens.access_token:
            raise CalendlyNotConnectedError("Calendly not connected")

        if path.startswith("http://") or path.startswith("https://"):
            url = path
        else:
            url = f"{self._api_base_url}/{path.lstrip('/')}"

        resp = await self._send(url, tokens.access_token, params)

        if resp.status_code == 401:
            new_token = await self.refresh_access_token(stale_token=tokens.access_token)
            resp = await self._send(url, new_token, params)
            if resp.status_code == 401:
                raise CalendlyAuthError(f"Calendly rejected refreshed token: {resp.text}")

        if resp.status_code // 100 != 2:
            raise CalendlyClientError(
                f"Calendly GET failed (status={resp.status_code}): {resp.text}"
            )
        return resp.json()

    async def iter_pages(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        """
        Yield the `collection` of each page, following `pagination.next_page`.

        The next_page URL already carries the query string, so the original
        params are only sent with the first request. Breaking out of the loop
        stops further requests.
        """
        url: Optional[str] = path
        page_params: Optional[Dict[str, Any]] = params
        while url:
            payload = await self.get_json(url, params=page_params)
            yield payload.get("collection") or []

            pagination = payload.get("pagination") or {}
            url = pagination.get("next_page")
            page_params = None

    async def get_current_user_uri(self) -> str:
        payload = await self.get_json("/users/me")
        uri = (payload.get("resource") or {}).get("uri")
        if not uri:
            raise CalendlyClientError("Calendly /users/me response has no resource.uri")
        return uri

    async def list_scheduled_events(
        self,
        direction: TimeDirection,
        now: datetime,
        max_pages: Optional[int] = None,
    ) -> List[RawEvent]:
        """
        List active scheduled events of the connected user on one side of `now`.

        Upcoming events are sorted ascending from `now`; past events are sorted
        descending up to `now`. At most `max_pages` pages are followed.
        """
        user_uri = await self.get_current_user_uri()
        params: Dict[str, Any] = {
            "user": user_uri,
            "status": "active",
            "count": 100,
        }
        if direction == TimeDirection.UPCOMING:
            params["sort"] = "start_time:asc"
            params["min_start_time"] = now.isoformat()
        else:
            params["sort"] = "start_time:desc"
            params["max_start_time"] = now.isoformat()

        events: List[RawEvent] = []
        pages = 0
        async for collection in self.iter_pages("/scheduled_events", params=params):
            events.extend(RawEvent.model_validate(item) for item in collection)
            pages += 1
            if max_pages is not None and pages >= max_pages:
                break
        return events

    async def list_invitees(self, event_uuid: str) -> List[Registrant]:
        """
        Return every invitee of a scheduled event, across all pages.
        """
        registrants: List[Registrant] = []
        path = f"/scheduled_events/{event_uuid}/invitees"
        async for collection in self.iter_pages(path, params={"count": 100}):
            for item in collection:
                registrants.append(
                    Registrant(
                        name=item.get("name") or "",
                        email=item.get("email") or "",
                        phone=item.get("text_reminder_number"),
                        status=item.get("status") or "active",
                    )
                )
        return registrants


def build_calendly_client(token_store: OAuthTokenStore) -> CalendlyClient:
    """
    Construct a CalendlyClient from application settings.
    """
    settings = get_settings()
    return CalendlyClient(
        client_id=settings.CALENDLY_CLIENT_ID,
        client_secret=settings.CALENDLY_CLIENT_SECRET,
        redirect_uri=settings.CALENDLY_REDIRECT_URI,
        token_store=token_store,
        api_base_url=settings.CALENDLY_API_BASE_URL,
        auth_base_url=settings.CALENDLY_AUTH_BASE_URL,
        timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
    )
