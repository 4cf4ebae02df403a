# tests/conftest.py
import os

# Must be set before the app (and its cached settings) is imported.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///./test_webinar_dashboard.db")
for _var in (
    "ADMIN_API_KEY",
    "CALENDLY_CLIENT_ID",
    "COHORT_NAMES",
    "ZOOM_ACCOUNT_ID",
    "ZOOM_CLIENT_ID",
    "ZOOM_CLIENT_SECRET",
):
    os.environ.pop(_var, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.main import create_app  # noqa: E402


@pytest.fixture()
def app():
    """
    Fresh application instance per test so dependency overrides and app
    state never leak between tests.
    """
    return create_app()


@pytest.fixture()
def client(app) -> TestClient:
    """
    TestClient built through the application factory.
    """
    with TestClient(app) as test_client:
        yield test_client
