# app/services/zoom_client.py
from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import quote

import httpx

from app.core.config import get_settings
from app.services.token_cache import TokenCache

logger = logging.getLogger(__name__)


class ZoomClientError(RuntimeError):
    """
    Raised when the ZoomClient cannot obtain an access token or when a
    Zoom API call fails in a non-recoverable way.
    """


class ZoomAuthError(ZoomClientError):
    """
    Raised when Zoom keeps answering 401 after a fresh token was obtained.
    """


def encode_meeting_uuid(meeting_uuid: str) -> str:
    """
    Encode a meeting id or instance uuid for use as a Zoom path segment.

    Zoom requires instance uuids that start with '/' or contain '//' to be
    URL-encoded twice.
    """
    if meeting_uuid.startswith("/") or "//" in meeting_uuid:
        return quote(quote(meeting_uuid, safe=""), safe="")
    return quote(meeting_uuid, safe="")


class ZoomClient:
    """
    Minimal Zoom REST API client using the server-to-server OAuth flow.

    Responsibilities
    ----------------
    - Fetch and cache an access token (`account_credentials` grant).
    - Retry a call exactly once with a fresh token when Zoom answers 401.
    - Walk `next_page_token` pagination lazily.

    Notes
    -----
    - The token lives in an explicitly passed `TokenCache`, whose clock can be
      injected in tests.
    """

    def __init__(
        self,
        account_id: str,
        client_id: str,
        client_secret: str,
        base_url: str = "https://api.zoom.us/v2",
        oauth_url: str = "https://zoom.us/oauth/token",
        timeout_seconds: float = 15.0,
        token_cache: Optional[TokenCache] = None,
    ) -> None:
        if not account_id or not client_id or not client_secret:
            raise ValueError("account_id, client_id and client_secret are required")

        self._account_id = account_id
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = base_url.rstrip("/")
        self._oauth_url = oauth_url
        self._timeout_seconds = timeout_seconds

        self.token_cache = token_cache or TokenCache()

    async def _fetch_token(self) -> str:
        """
        Fetch a fresh access token and store it in the token cache.
        """
        params = {
            "grant_type": "account_credentials",
            "account_id": self._account_id,
        }

        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            resp = await client.post(
                self._oauth_url,
                params=params,
                auth=(self._client_id, self._client_secret),
            )

        if resp.status_code != 200:
            raise ZoomClientError(
                f"Failed to obtain Zoom token (status={resp.status_code}): {resp.text}"
            )

        payload = resp.json()
        access_token = payload.get("access_token")
        expires_in = payload.get("expires_in")

        if not access_token or not isinstance(expires_in, (int, float)):
            raise ZoomClientError(
                "Invalid token response from Zoom (missing access_token/expires_in)"
            )

        logger.info("Obtained Zoom access token (expires_in=%ss)", expires_in)
        self.token_cache.store(access_token, expires_in)
        return access_token

    async def get_access_token(self) -> str:
        """
        Return a valid access token, using the cached value if still valid.
        """
        token = self.token_cache.get()
        if token:
            return token
        return await self._fetch_token()

    async def _send(
        self,
        method: str,
        url: str,
        token: str,
        params: Optional[Dict[str, Any]],
    ) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
            return await client.request(
                method=method.upper(),
                url=url,
                headers=headers,
                params=params,
            )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Issue an authenticated request, refreshing the token and retrying
        once if Zoom answers 401.
        """
        if path.startswith("http://") or path.startswith("https://"):
            url = path
        else:
            url = f"{self._base_url}/{path.lstrip('/')}"

        token = await self.get_access_token()
        resp = await self._send(method, url, token, params)

        if resp.status_code == 401:
            logger.info("Zoom returned 401 for %s; refreshing token and retrying once", url)
            self.token_cache.invalidate()
            token = await self._fetch_token()
            resp = await self._send(method, url, token, params)

        return resp

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Issue a GET request and return the JSON payload.

        Raises ZoomAuthError on a persistent 401 and ZoomClientError on any
        other non-2xx response.
        """
        resp = await self._request("GET", path, params=params)
        if resp.status_code == 401:
            raise ZoomAuthError(f"Zoom rejected credentials after refresh: {resp.text}")
        if resp.status_code // 100 != 2:
            raise ZoomClientError(
                f"Zoom GET failed (status={resp.status_code}): {resp.text}"
            )
        return resp.json()

    async def iter_pages(
        self,
        path: str,
        items_key: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        """
        Yield one list of items per page, following `next_page_token`.

        Pages are requested only as the caller consumes them, so breaking
        out of the loop stops further requests. Each call starts over from
        the first page.
        """
        page_params: Dict[str, Any] = dict(params or {})
        while True:
            payload = await self.get_json(path, params=page_params)
            yield payload.get(items_key) or []

            next_token = payload.get("next_page_token")
            if not next_token:
                return
            page_params = {**page_params, "next_page_token": next_token}

    async def list_past_instances(self, meeting_id: str) -> List[Dict[str, Any]]:
        """
        List the ended instances (uuid + start_time) of a recurring meeting.
        """
        payload = await self.get_json(f"/past_meetings/{encode_meeting_uuid(meeting_id)}/instances")
        return payload.get("meetings") or []

    async def list_participants(self, meeting_ref: str) -> List[Dict[str, Any]]:
        """
        Return every participant record of a meeting (id or instance uuid)
        from the participants report, across all pages.
        """
        path = f"/report/meetings/{encode_meeting_uuid(meeting_ref)}/participants"
        participants: List[Dict[str, Any]] = []
        async for page in self.iter_pages(path, "participants", params={"page_size": 300}):
            participants.extend(page)
        return participants


def build_zoom_client(token_cache: Optional[TokenCache] = None) -> Optional[ZoomClient]:
    """
    Construct a ZoomClient from application settings, or None when Zoom
    credentials are not configured (attendance enrichment is then skipped).

    Pass the long-lived `token_cache` so tokens survive across requests.
    """
    settings = get_settings()
    if not settings.zoom_configured:
        return None
    return ZoomClient(
        account_id=settings.ZOOM_ACCOUNT_ID,
        client_id=settings.ZOOM_CLIENT_ID,
        client_secret=settings.ZOOM_CLIENT_SECRET,
        base_url=settings.ZOOM_API_BASE_URL,
        oauth_url=settings.ZOOM_OAUTH_URL,
        timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
        token_cache=token_cache,
    )
