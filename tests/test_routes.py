import pytest
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse
from cryptography.fernet import Fernet
from fastapi.testclient import TestClient
from social_relay.config import get_settings
from social_relay.core import BlueskyAPIError, ThreadsAPIError, sign_payload
from social_relay.core.oauth_session import RESULT_COOKIE, STATE_COOKIE, ResultCodec
from social_relay.main import app
from social_relay.models import BlueskyPostResult, ThreadsToken, ThreadsUser
from social_relay.platforms import BlueskyClient, ThreadsOAuth
from social_relay.services import PostDispatcher
from conftest import make_settings

def _set_cookies(response):
    return response.headers.get_list("set-cookie")

def _cleared(response, name):
    return any(h.startswith(f"{name}=") and "Max-Age=0" in h for h in _set_cookies(response))

@pytest.fixture
def configured_client():
    settings = make_settings(BLUESKY_IDENTIFIER="alice.bsky.social", BLUESKY_APP_PASSWORD="pw")
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Social Relay is running"
    assert response.headers["X-Content-Type-Options"] == "nosniff"

# POST /post

@pytest.mark.parametrize("body", [
    {"text": "", "channels": {"bluesky": True}},
    {"text": "   \n\t", "channels": {"bluesky": True}},
    {"channels": {"bluesky": True, "threads": True}},
    {"text": "hello", "channels": {"bluesky": False, "threads": False}},
    {"text": "hello"},
    {"text": 42, "channels": {"bluesky": True}},
])
def test_post_validation_never_dispatches(client, body):
    dispatch = AsyncMock()
    with patch.object(PostDispatcher, "dispatch", new=dispatch):
        response = client.post("/post", json=body)
    assert response.status_code == 400
    assert "error" in response.json()
    dispatch.assert_not_awaited()

def test_post_invalid_json(client):
    response = client.post("/post", content="{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid JSON in request body."}

def test_post_bluesky_only(configured_client):
    """Test the relay example: Bluesky selected, Threads not."""
    create_post = AsyncMock(return_value=BlueskyPostResult(uri="at://did:plc:abc/app.bsky.feed.post/1", cid="c"))
    with patch.object(BlueskyClient, "create_post", new=create_post):
        response = configured_client.post("/post", json={
            "text": "hello", "channels": {"bluesky": True, "threads": False}
        })

    assert response.status_code == 200
    assert response.json() == {"results": {"bluesky": {
        "ok": True, "message": "Published to Bluesky.", "uri": "at://did:plc:abc/app.bsky.feed.post/1"
    }}}
    create_post.assert_awaited_once_with("hello")

def test_post_bluesky_invalid_credentials(configured_client):
    create_post = AsyncMock(side_effect=BlueskyAPIError("Bluesky login failed: Invalid identifier or password"))
    with patch.object(BlueskyClient, "create_post", new=create_post):
        response = configured_client.post("/post", json={
            "text": "hello", "channels": {"bluesky": True, "threads": False}
        })

    assert response.status_code == 400
    assert response.json() == {"results": {"bluesky": {
        "ok": False, "message": "Bluesky login failed: Invalid identifier or password"
    }}}

def test_post_mixed_outcome(configured_client):
    bluesky_post = AsyncMock(return_value=BlueskyPostResult(uri="at://x", cid="c"))
    with patch.object(BlueskyClient, "create_post", new=bluesky_post):
        response = configured_client.post("/post", json={
            "text": "hello", "channels": {"bluesky": True, "threads": True}
        })

    assert response.status_code == 207
    results = response.json()["results"]
    assert results["bluesky"]["ok"] is True
    assert results["threads"]["ok"] is False

def test_post_text_over_bluesky_limit(configured_client):
    send = AsyncMock()
    with patch.object(BlueskyClient, "_send", new=send):
        response = configured_client.post("/post", json={"text": "a" * 301, "channels": {"bluesky": True}})
    assert response.status_code == 400
    assert response.json()["results"]["bluesky"]["message"] == "Bluesky accepts at most 300 characters."
    send.assert_not_awaited()

# POST /connect

def test_connect(client):
    profile = AsyncMock(return_value=ThreadsUser(id="1789", username="alice"))
    with patch.object(ThreadsOAuth, "get_user_profile", new=profile):
        response = client.post("/connect", json={"accessToken": " token "})

    assert response.status_code == 200
    assert response.json() == {
        "ok": True, "user": {"id": "1789", "username": "alice"}, "message": "Connected as @alice."
    }
    profile.assert_awaited_once_with("token")

def test_connect_invalid_token_adds_guidance(client):
    profile = AsyncMock(side_effect=ThreadsAPIError("Could not validate Threads token: [v1.0] Invalid Threads token", token_invalid=True))
    with patch.object(ThreadsOAuth, "get_user_profile", new=profile):
        response = client.post("/connect", json={"accessToken": "token"})

    assert response.status_code == 400
    body = response.json()
    assert body["ok"] is False
    assert "threads_content_publish" in body["error"]

def test_connect_other_failure_has_no_guidance(client):
    profile = AsyncMock(side_effect=ThreadsAPIError("Could not validate Threads token: [v1.0] HTTP 500"))
    with patch.object(ThreadsOAuth, "get_user_profile", new=profile):
        response = client.post("/connect", json={"accessToken": "token"})
    assert response.status_code == 400
    assert response.json()["error"] == "Could not validate Threads token: [v1.0] HTTP 500"

def test_connect_requires_token(client):
    response = client.post("/connect", json={"accessToken": "  "})
    assert response.status_code == 400
    assert response.json()["ok"] is False

# OAuth start

def test_oauth_start_redirects_to_threads(client):
    response = client.get("/oauth/start", follow_redirects=False)

    assert response.status_code == 307
    location = response.headers["location"]
    assert location.startswith("https://threads.net/oauth/authorize?")
    query = parse_qs(urlparse(location).query)
    assert query["client_id"] == ["test_app_id"]
    assert query["redirect_uri"] == ["http://testserver/oauth/callback"]
    assert query["state"] == [response.cookies[STATE_COOKIE]]

    state_header = next(h for h in _set_cookies(response) if h.startswith(f"{STATE_COOKIE}="))
    assert "HttpOnly" in state_header
    assert "Max-Age=600" in state_header
    assert "samesite=lax" in state_header.lower()

def test_oauth_start_uses_redirect_override():
    settings = make_settings(THREADS_REDIRECT_URI="https://relay.example.com/oauth/callback")
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        response = TestClient(app).get("/oauth/start", follow_redirects=False)
    finally:
        app.dependency_overrides.clear()
    query = parse_qs(urlparse(response.headers["location"]).query)
    assert query["redirect_uri"] == ["https://relay.example.com/oauth/callback"]

def test_oauth_start_without_app_config():
    settings = make_settings(THREADS_APP_ID="", THREADS_APP_SECRET="")
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        client = TestClient(app)
        response = client.get("/oauth/start", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/"
        assert STATE_COOKIE not in response.cookies

        session = client.get("/oauth/session")
    finally:
        app.dependency_overrides.clear()
    assert session.status_code == 400
    assert "THREADS_APP_ID" in session.json()["error"]

# OAuth callback

def _callback(client, query, state_cookie=None):
    headers = {"Cookie": f"{STATE_COOKIE}={state_cookie}"} if state_cookie is not None else {}
    return client.get(f"/oauth/callback?{query}", headers=headers, follow_redirects=False)

def _result(response):
    return ResultCodec().decode(response.cookies[RESULT_COOKIE])

@pytest.mark.parametrize("query, state_cookie", [
    ("code=abc&state=returned", "stored"),
    ("code=abc&state=returned", ""),
    ("code=abc&state=returned", None),
    ("code=abc", "stored"),
    ("code=abc&state=", ""),
])
def test_callback_state_mismatch_is_security_failure(client, query, state_cookie):
    exchange = AsyncMock()
    with patch.object(ThreadsOAuth, "get_access_token", new=exchange):
        response = _callback(client, query, state_cookie)

    assert response.status_code == 307
    assert response.headers["location"] == "/"
    assert _result(response) == {"ok": False, "error": "Threads OAuth security check failed (invalid state)."}
    assert _cleared(response, STATE_COOKIE)
    exchange.assert_not_awaited()

def test_callback_provider_error_takes_precedence(client):
    response = _callback(client, "error=access_denied&error_description=Permissions+error&state=x", "y")
    assert _result(response) == {"ok": False, "error": "Threads OAuth returned an error: Permissions error"}
    assert _cleared(response, STATE_COOKIE)

def test_callback_missing_code(client):
    response = _callback(client, "state=s1", "s1")
    assert _result(response) == {"ok": False, "error": "Threads OAuth did not return a code."}

def test_callback_exchange_failure(client):
    exchange = AsyncMock(side_effect=ThreadsAPIError("Threads token exchange failed: [v1.0] HTTP 400"))
    with patch.object(ThreadsOAuth, "get_access_token", new=exchange):
        response = _callback(client, "code=abc&state=s1", "s1")
    assert _result(response) == {"ok": False, "error": "Threads token exchange failed: [v1.0] HTTP 400"}
    assert _cleared(response, STATE_COOKIE)

def test_callback_success_then_single_read(client):
    exchange = AsyncMock(return_value=ThreadsToken(
        access_token="long-token", api_version="", is_long_lived=True, expires_in=5184000
    ))
    profile = AsyncMock(return_value=ThreadsUser(id="1789", username="alice"))
    with patch.object(ThreadsOAuth, "get_access_token", new=exchange), \
            patch.object(ThreadsOAuth, "get_user_profile", new=profile):
        response = _callback(client, "code=abc&state=s1", "s1")

    exchange.assert_awaited_once_with("abc")
    profile.assert_awaited_once_with("long-token")
    assert _cleared(response, STATE_COOKIE)

    expected = {
        "ok": True,
        "message": "Connected to Threads OAuth as @alice.",
        "accessToken": "long-token",
        "user": {"id": "1789", "username": "alice"},
        "tokenMeta": {"apiVersion": "app-default", "isLongLived": True, "expiresIn": 5184000},
    }
    assert _result(response) == expected

    first = client.get("/oauth/session")
    assert first.status_code == 200
    assert first.json() == expected
    assert _cleared(first, RESULT_COOKIE)

    second = client.get("/oauth/session")
    assert second.status_code == 200
    assert second.json() == {"ok": False, "empty": True}

def test_callback_result_is_encrypted_with_key():
    settings = make_settings(RESULT_COOKIE_KEY=Fernet.generate_key().decode())
    app.dependency_overrides[get_settings] = lambda: settings
    exchange = AsyncMock(return_value=ThreadsToken(access_token="long-token", api_version="v1.0"))
    profile = AsyncMock(return_value=ThreadsUser(id="1789", username="alice"))
    try:
        client = TestClient(app)
        with patch.object(ThreadsOAuth, "get_access_token", new=exchange), \
                patch.object(ThreadsOAuth, "get_user_profile", new=profile):
            response = _callback(client, "code=abc&state=s1", "s1")
        session = client.get("/oauth/session")
    finally:
        app.dependency_overrides.clear()

    assert "long-token" not in " ".join(_set_cookies(response))
    assert session.status_code == 200
    assert session.json()["tokenMeta"] == {"apiVersion": "v1.0", "isLongLived": False, "expiresIn": None}

def test_callback_with_blank_key_sets_plain_result_cookie():
    settings = make_settings(RESULT_COOKIE_KEY="   ")
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        client = TestClient(app)
        response = _callback(client, "state=s1&code=abc", "other")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 307
    assert _cleared(response, STATE_COOKIE)
    assert _result(response)["ok"] is False

# OAuth session

def test_session_empty(client):
    response = client.get("/oauth/session")
    assert response.status_code == 200
    assert response.json() == {"ok": False, "empty": True}
    assert _cleared(response, RESULT_COOKIE)

def test_session_undecodable(client):
    response = client.get("/oauth/session", headers={"Cookie": f"{RESULT_COOKIE}=bm90IGpzb24"})
    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "Could not read the Threads OAuth result."}
    assert _cleared(response, RESULT_COOKIE)

def test_session_reads_failure_result(client):
    value = ResultCodec().encode({"ok": False, "error": "denied"})
    response = client.get("/oauth/session", headers={"Cookie": f"{RESULT_COOKIE}={value}"})
    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "denied"}
    assert _cleared(response, RESULT_COOKIE)

# Compliance callbacks

def test_data_deletion(client):
    signed = sign_payload({"user_id": "1789", "issued_at": 1700000000}, "test_app_secret")
    response = client.post("/oauth/data-deletion", data={"signed_request": signed})

    assert response.status_code == 200
    body = response.json()
    assert len(body["confirmation_code"]) == 24
    url = urlparse(body["url"])
    assert f"{url.scheme}://{url.netloc}{url.path}" == "http://testserver/threads/data-deletion"
    assert parse_qs(url.query) == {"code": [body["confirmation_code"]], "user_id": ["1789"]}

def test_data_deletion_invalid_signature(client):
    signed = sign_payload({"user_id": "1789"}, "wrong_secret")
    response = client.post("/oauth/data-deletion", data={"signed_request": signed})
    assert response.status_code == 400
    assert response.json() == {"error": "signed_request is invalid."}

def test_data_deletion_missing_field(client):
    response = client.post("/oauth/data-deletion", data={})
    assert response.status_code == 400
    assert response.json() == {"error": "signed_request is missing."}

def test_data_deletion_without_secret():
    settings = make_settings(THREADS_APP_SECRET="")
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        response = TestClient(app).post("/oauth/data-deletion", data={"signed_request": "a.b"})
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 500

def test_data_deletion_status_url(client):
    response = client.get("/oauth/data-deletion")
    assert response.json() == {"ok": True, "status_url": "http://testserver/threads/data-deletion"}

def test_data_deletion_status_page_escapes_input(client):
    response = client.get("/threads/data-deletion", params={"code": "abc123", "user_id": "<script>"})
    assert response.status_code == 200
    assert "abc123" in response.text
    assert "<script>" not in response.text
    assert "&lt;script&gt;" in response.text

@pytest.mark.parametrize("method", ["GET", "POST"])
def test_deauthorize(client, method):
    response = client.request(method, "/oauth/deauthorize")
    assert response.status_code == 200
    assert response.json() == {"ok": True}
