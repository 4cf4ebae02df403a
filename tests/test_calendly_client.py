# tests/test_calendly_client.py
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Dict, List, Optional

import httpx
import pytest

from app.schemas.webinar import TimeDirection
from app.services.calendly_client import (
    CalendlyAuthError,
    CalendlyClient,
    CalendlyClientError,
    CalendlyNotConnectedError,
)
from app.services.token_store import OAuthTokenPair


class FakeTokenStore:
    """
    In-memory replacement for OAuthTokenStore.
    """

    def __init__(self, tokens: Optional[OAuthTokenPair] = None):
        self.tokens = {"calendly": tokens} if tokens else {}
        self.saved: List[OAuthTokenPair] = []

    async def load(self, provider: str) -> Optional[OAuthTokenPair]:
        return self.tokens.get(provider)

    async def save(self, provider: str, tokens: OAuthTokenPair) -> None:
        self.tokens[provider] = tokens
        self.saved.append(tokens)


class _FakeResponse:
    def __init__(self, status_code: int, json_data: Dict[str, Any]):
        self.status_code = status_code
        self._json_data = json_data
        self.text = str(json_data)

    def json(self) -> Dict[str, Any]:
        return self._json_data


class _FakeAsyncClient:
    """
    Stand-in for httpx.AsyncClient: token posts and GET requests are served
    from queues and recorded.
    """

    token_calls: List[Dict[str, Any]] = []
    token_responses: List[_FakeResponse] = []
    api_calls: List[Dict[str, Any]] = []
    api_responses: List[_FakeResponse] = []

    def __init__(self, timeout: float | None = None):
        self._timeout = timeout

    @classmethod
    def reset(cls, api_responses, token_responses=None) -> None:
        cls.token_calls = []
        cls.api_calls = []
        cls.api_responses = list(api_responses)
        cls.token_responses = list(token_responses or [])

    async def __aenter__(self) -> "_FakeAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def post(self, url: str, data=None, **kwargs) -> _FakeResponse:
        _FakeAsyncClient.token_calls.append({"url": url, "data": data})
        return _FakeAsyncClient.token_responses.pop(0)

    async def request(self, method: str, url: str, headers=None, params=None) -> _FakeResponse:
        _FakeAsyncClient.api_calls.append(
            {"method": method, "url": url, "headers": headers, "params": params}
        )
        return _FakeAsyncClient.api_responses.pop(0)


def _client(store: FakeTokenStore) -> CalendlyClient:
    return CalendlyClient(
        client_id="cid",
        client_secret="secret",
        redirect_uri="http://localhost:8000/oauth/callback",
        token_store=store,
        api_base_url="https://api.calendly.test",
        auth_base_url="https://auth.calendly.test",
    )


def _connected_store() -> FakeTokenStore:
    return FakeTokenStore(OAuthTokenPair(access_token="old-access", refresh_token="old-refresh"))


@pytest.mark.asyncio
async def test_not_connected_raises():
    client = _client(FakeTokenStore())

    assert await client.is_connected() is False
    with pytest.raises(CalendlyNotConnectedError):
        await client.get_json("/users/me")


@pytest.mark.asyncio
async def test_401_refreshes_persists_and_retries_once(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    _FakeAsyncClient.reset(
        api_responses=[
            _FakeResponse(HTTPStatus.UNAUTHORIZED, {"title": "Unauthenticated"}),
            _FakeResponse(HTTPStatus.OK, {"resource": {"uri": "https://api.calendly.test/users/U1"}}),
        ],
        token_responses=[
            _FakeResponse(HTTPStatus.OK, {"access_token": "new-access", "refresh_token": "new-refresh"}),
        ],
    )
    store = _connected_store()
    client = _client(store)

    uri = await client.get_current_user_uri()

    assert uri == "https://api.calendly.test/users/U1"
    assert len(_FakeAsyncClient.token_calls) == 1
    assert _FakeAsyncClient.token_calls[0]["data"]["grant_type"] == "refresh_token"
    assert _FakeAsyncClient.token_calls[0]["data"]["refresh_token"] == "old-refresh"
    assert _FakeAsyncClient.api_calls[1]["headers"]["Authorization"] == "Bearer new-access"
    # Rotated pair is persisted
    assert store.saved == [OAuthTokenPair(access_token="new-access", refresh_token="new-refresh")]


@pytest.mark.asyncio
async def test_second_401_raises_auth_error(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    _FakeAsyncClient.reset(
        api_responses=[
            _FakeResponse(HTTPStatus.UNAUTHORIZED, {}),
            _FakeResponse(HTTPStatus.UNAUTHORIZED, {}),
        ],
        token_responses=[
            _FakeResponse(HTTPStatus.OK, {"access_token": "new-access", "refresh_token": "r2"}),
        ],
    )
    client = _client(_connected_store())

    with pytest.raises(CalendlyAuthError):
        await client.get_json("/users/me")
    assert len(_FakeAsyncClient.api_calls) == 2


@pytest.mark.asyncio
async def test_rejected_refresh_raises_auth_error(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    _FakeAsyncClient.reset(
        api_responses=[_FakeResponse(HTTPStatus.UNAUTHORIZED, {})],
        token_responses=[_FakeResponse(HTTPStatus.BAD_REQUEST, {"error": "invalid_grant"})],
    )
    client = _client(_connected_store())

    with pytest.raises(CalendlyAuthError):
        await client.get_json("/users/me")


@pytest.mark.asyncio
async def test_server_error_raises_client_error(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    _FakeAsyncClient.reset(api_responses=[_FakeResponse(HTTPStatus.BAD_GATEWAY, {})])
    client = _client(_connected_store())

    with pytest.raises(CalendlyClientError) as exc_info:
        await client.get_json("/users/me")
    assert not isinstance(exc_info.value, CalendlyAuthError)


@pytest.mark.asyncio
async def test_invitees_follow_next_page(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    next_page = "https://api.calendly.test/scheduled_events/EVT/invitees?count=100&page_token=p2"
    _FakeAsyncClient.reset(
        api_responses=[
            _FakeResponse(
                HTTPStatus.OK,
                {
                    "collection": [
                        {"name": "Asha", "email": "asha@x.com", "status": "active",
                         "text_reminder_number": "+911234567890"},
                    ],
                    "pagination": {"next_page": next_page},
                },
            ),
            _FakeResponse(
                HTTPStatus.OK,
                {
                    "collection": [{"name": "Bob", "email": None, "status": "canceled"}],
                    "pagination": {"next_page": None},
                },
            ),
        ]
    )
    client = _client(_connected_store())

    invitees = await client.list_invitees("EVT")

    assert [i.name for i in invitees] == ["Asha", "Bob"]
    assert invitees[0].phone == "+911234567890"
    assert invitees[1].email == ""
    assert invitees[1].status == "canceled"
    assert _FakeAsyncClient.api_calls[0]["params"] == {"count": 100}
    assert _FakeAsyncClient.api_calls[1]["url"] == next_page
    assert _FakeAsyncClient.api_calls[1]["params"] is None


@pytest.mark.asyncio
async def test_scheduled_events_query_and_page_limit(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    event = {
        "uri": "https://api.calendly.test/scheduled_events/E1",
        "name": "Mumbai Webinar",
        "start_time": "2026-01-03T13:00:00.000000Z",
        "end_time": "2026-01-03T14:00:00.000000Z",
        "location": {"type": "zoom", "join_url": "https://zoom.us/j/81234567890", "status": "pushed"},
    }
    _FakeAsyncClient.reset(
        api_responses=[
            _FakeResponse(HTTPStatus.OK, {"resource": {"uri": "https://api.calendly.test/users/U1"}}),
            _FakeResponse(
                HTTPStatus.OK,
                {"collection": [event], "pagination": {"next_page": "https://api.calendly.test/next"}},
            ),
        ]
    )
    client = _client(_connected_store())
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    events = await client.list_scheduled_events(TimeDirection.UPCOMING, now, max_pages=1)

    assert len(events) == 1
    assert events[0].uuid == "E1"
    assert events[0].location.join_url == "https://zoom.us/j/81234567890"
    params = _FakeAsyncClient.api_calls[1]["params"]
    assert params["user"] == "https://api.calendly.test/users/U1"
    assert params["status"] == "active"
    assert params["sort"] == "start_time:asc"
    assert params["min_start_time"] == now.isoformat()
    # Second page was never requested
    assert len(_FakeAsyncClient.api_calls) == 2


@pytest.mark.asyncio
async def test_past_events_sorted_descending(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    _FakeAsyncClient.reset(
        api_responses=[
            _FakeResponse(HTTPStatus.OK, {"resource": {"uri": "U"}}),
            _FakeResponse(HTTPStatus.OK, {"collection": [], "pagination": {}}),
        ]
    )
    client = _client(_connected_store())
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    events = await client.list_scheduled_events(TimeDirection.PAST, now)

    assert events == []
    params = _FakeAsyncClient.api_calls[1]["params"]
    assert params["sort"] == "start_time:desc"
    assert params["max_start_time"] == now.isoformat()


@pytest.mark.asyncio
async def test_exchange_code_stores_tokens(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    _FakeAsyncClient.reset(
        api_responses=[],
        token_responses=[_FakeResponse(HTTPStatus.OK, {"access_token": "a1", "refresh_token": "r1"})],
    )
    store = FakeTokenStore()
    client = _client(store)

    await client.exchange_code("the-code")

    data = _FakeAsyncClient.token_calls[0]["data"]
    assert data["grant_type"] == "authorization_code"
    assert data["code"] == "the-code"
    assert await client.is_connected() is True
    assert store.tokens["calendly"].refresh_token == "r1"


def test_authorize_url_contains_client_and_redirect():
    client = _client(FakeTokenStore())

    url = client.authorize_url()

    assert url.startswith("https://auth.calendly.test/oauth/authorize?")
    assert "client_id=cid" in url
    assert "response_type=code" in url
    assert "redirect_uri=http%3A%2F%2Flocalhost%3A8000%2Foauth%2Fcallback" in url
