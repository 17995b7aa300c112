import json
import pytest
from fastapi.testclient import TestClient
from social_relay.config import Settings, get_settings
from social_relay.core.http_client import ApiResponse
from social_relay.main import app

def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = {
        "ENVIRONMENT": "testing",
        "BLUESKY_IDENTIFIER": "",
        "BLUESKY_APP_PASSWORD": "",
        "BLUESKY_SERVICE_URL": "https://bsky.test",
        "THREADS_USER_ID": "",
        "THREADS_ACCESS_TOKEN": "",
        "THREADS_APP_ID": "test_app_id",
        "THREADS_APP_SECRET": "test_app_secret",
        "THREADS_REDIRECT_URI": "",
        "THREADS_API_VERSION": "",
        "RESULT_COOKIE_KEY": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)

def api_response(status: int = 200, payload=None, headers=None, text=None, transport_error=None) -> ApiResponse:
    """Build the decoded response a provider call would return."""
    payload = payload or {}
    if text is None:
        text = json.dumps(payload) if payload else ""
    return ApiResponse(
        status=status,
        payload=payload,
        text=text,
        headers={k.lower(): v for k, v in (headers or {}).items()},
        transport_error=transport_error
    )

@pytest.fixture
def settings():
    """Provide test settings with a configured Threads app."""
    return make_settings()

@pytest.fixture
def client(settings):
    """Provide a TestClient bound to the test settings."""
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
