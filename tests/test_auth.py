import base64
import inspect
import json
import time
from datetime import datetime, timedelta
from types import SimpleNamespace

import httpx
import pytest
from fastapi import HTTPException

from app.config import settings
from app.config.settings import DEFAULT_SESSION_SECRET, Settings, ensure_session_secret
from app.core.dependencies import get_current_user_id
from app.main import app
from app.modules.auth import routes as auth_routes
from app.modules.auth.models import SESSION_ID_KEY
from app.modules.auth.schemas import SessionUser
from app.modules.auth.service import (
    AuthError, OIDCService, get_oidc_service, new_demo_user_id, user_from_claims
)
from app.modules.auth.sessions import load_session_user, start_session
from app.modules.cron import routes as cron_routes
from app.storage.router import is_demo_user_id


class FakeOIDC:
    configured = True

    def __init__(self, refresh_result=None):
        self.refresh_result = refresh_result
        self.state = None

    def refresh(self, refresh_token):
        if self.refresh_result is None:
            raise AuthError("refresh rejected")
        return self.refresh_result

    def authorization_url(self, redirect_uri, state):
        self.state = state
        return f"https://id.example.com/auth?state={state}"

    def exchange_code(self, code, redirect_uri):
        if code != "good-code":
            raise AuthError("bad code")
        return {"access_token": "access-1", "refresh_token": "refresh-1", "expires_in": 3600}

    def fetch_userinfo(self, access_token):
        return {"sub": "oidc-123", "email": "lee@example.com", "first_name": "Lee"}

    def end_session_url(self, post_logout_redirect_uri):
        return "https://id.example.com/logout"


def _request(storage, **session_user):
    request = SimpleNamespace(session={})
    if session_user:
        start_session(request, storage, SessionUser(**session_user))
    return request


def _stored(storage, request):
    return storage.get_session(request.session[SESSION_ID_KEY]).sess


def _cookie_payload(client):
    value = client.cookies.get(settings.session_cookie_name)
    return json.loads(base64.b64decode(value.split(".")[0]))


def test_no_session_is_401(storage):
    with pytest.raises(HTTPException) as exc:
        get_current_user_id(_request(storage), FakeOIDC(), storage)
    assert exc.value.status_code == 401


def test_live_session_returns_user(storage):
    request = _request(storage, id="u1", provider="oidc", access_token="a", expires_at=int(time.time()) + 60)
    assert get_current_user_id(request, FakeOIDC(), storage) == "u1"


def test_expired_session_is_refreshed(storage):
    request = _request(storage, id="u1", provider="oidc", access_token="old", refresh_token="r1", expires_at=1)
    oidc = FakeOIDC(refresh_result={"access_token": "new", "expires_in": 3600})

    assert get_current_user_id(request, oidc, storage) == "u1"
    stored = _stored(storage, request)
    assert stored["access_token"] == "new"
    assert stored["refresh_token"] == "r1"
    assert stored["expires_at"] > time.time()
    assert set(request.session) == {SESSION_ID_KEY}


def test_failed_refresh_is_401(storage):
    request = _request(storage, id="u1", provider="oidc", access_token="old", refresh_token="r1", expires_at=1)
    with pytest.raises(HTTPException) as exc:
        get_current_user_id(request, FakeOIDC(), storage)
    assert exc.value.status_code == 401


def test_expired_demo_session_is_401(storage):
    request = _request(storage, id="demo-1", provider="demo", expires_at=1)
    with pytest.raises(HTTPException):
        get_current_user_id(request, FakeOIDC(refresh_result={"access_token": "x"}), storage)


def test_demo_sessions_stay_in_memory(storage):
    request = _request(storage, id="demo-1", provider="demo")
    sid = request.session[SESSION_ID_KEY]
    assert sid in storage.memory.sessions
    assert sid not in storage.persistent.sessions


def test_expired_session_record_is_dropped(storage):
    request = _request(storage, id="u1", provider="oidc", access_token="a", expires_at=int(time.time()) + 60)
    sid = request.session[SESSION_ID_KEY]
    storage.save_session(sid, _stored(storage, request), datetime.utcnow() - timedelta(seconds=1))

    with pytest.raises(HTTPException) as exc:
        get_current_user_id(request, FakeOIDC(), storage)
    assert exc.value.status_code == 401
    assert storage.get_session(sid) is None
    assert SESSION_ID_KEY not in request.session


def test_unknown_session_id_is_cleared(storage):
    request = SimpleNamespace(session={SESSION_ID_KEY: "gone"})
    assert load_session_user(request, storage) is None
    assert request.session == {}


def test_new_login_replaces_previous_session(storage):
    request = _request(storage, id="u1", provider="oidc")
    first = request.session[SESSION_ID_KEY]
    start_session(request, storage, SessionUser(id="u1", provider="oidc"))
    assert request.session[SESSION_ID_KEY] != first
    assert storage.get_session(first) is None


def test_default_secret_refused_in_production():
    with pytest.raises(RuntimeError):
        ensure_session_secret(Settings(environment="production", session_secret=DEFAULT_SESSION_SECRET))
    ensure_session_secret(Settings(environment="production", session_secret="s3cret"))
    ensure_session_secret(Settings(environment="development", session_secret=DEFAULT_SESSION_SECRET))


def test_provider_calls_run_off_the_event_loop():
    for handler in (auth_routes.login, auth_routes.callback, auth_routes.logout_redirect,
                    cron_routes.send_weekly_summary):
        assert not inspect.iscoroutinefunction(handler), handler.__name__


def test_demo_ids_are_recognised():
    user_id = new_demo_user_id()
    assert user_id.startswith(settings.demo_user_prefix)
    assert is_demo_user_id(user_id)
    assert not is_demo_user_id("oidc-123")
    assert not is_demo_user_id(None)


def test_claims_mapping():
    user = user_from_claims({"sub": 42, "given_name": "Lee", "picture": "https://img"})
    assert user.id == "42"
    assert user.first_name == "Lee"
    assert user.profile_image_url == "https://img"
    assert user.auth_provider == "oidc"


def test_token_errors_become_auth_errors(monkeypatch):
    monkeypatch.setattr(settings, "oidc_issuer_url", "https://issuer.test")
    monkeypatch.setattr(settings, "oidc_client_id", "client")

    def handler(request):
        if request.url.path.endswith("openid-configuration"):
            return httpx.Response(200, json={
                "authorization_endpoint": "https://issuer.test/auth",
                "token_endpoint": "https://issuer.test/token",
                "userinfo_endpoint": "https://issuer.test/me",
            })
        return httpx.Response(400, json={"error": "invalid_grant"})

    oidc = OIDCService(http=httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(AuthError):
        oidc.refresh("stale")
    assert oidc.end_session_url("https://app.test") is None


class TestLoginFlow:
    @pytest.fixture
    def oidc(self):
        fake = FakeOIDC()
        app.dependency_overrides[get_oidc_service] = lambda: fake
        return fake

    def test_login_and_callback(self, session_client, storage, oidc):
        response = session_client.get("/api/login", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"].startswith("https://id.example.com/auth")

        response = session_client.get(
            "/api/callback", params={"code": "good-code", "state": oidc.state}, follow_redirects=False
        )
        assert response.status_code == 302
        assert response.headers["location"] == "/"

        user = session_client.get("/api/auth/user").json()
        assert user["id"] == "oidc-123"
        assert [f.name for f in storage.persistent.get_user_families("oidc-123")] == ["Lee's Family"]

    def test_cookie_holds_only_the_session_id(self, session_client, storage, oidc):
        session_client.get("/api/login", follow_redirects=False)
        assert set(_cookie_payload(session_client)) == {"oidc_state"}

        session_client.get(
            "/api/callback", params={"code": "good-code", "state": oidc.state}, follow_redirects=False
        )
        payload = _cookie_payload(session_client)
        assert set(payload) == {SESSION_ID_KEY}
        assert "access-1" not in json.dumps(payload)

        record = storage.persistent.sessions[payload[SESSION_ID_KEY]]
        assert record.sess["access_token"] == "access-1"
        assert record.sess["refresh_token"] == "refresh-1"
        assert storage.memory.sessions == {}

    def test_state_mismatch_goes_to_landing(self, session_client, storage, oidc):
        session_client.get("/api/login", follow_redirects=False)
        response = session_client.get(
            "/api/callback", params={"code": "good-code", "state": "forged"}, follow_redirects=False
        )
        assert response.headers["location"] == "/landing"
        assert storage.persistent.users == {}

    def test_bad_code_goes_to_landing(self, session_client, oidc):
        session_client.get("/api/login", follow_redirects=False)
        response = session_client.get(
            "/api/callback", params={"code": "bad", "state": oidc.state}, follow_redirects=False
        )
        assert response.headers["location"] == "/landing"

    def test_logout_uses_end_session(self, session_client, storage, oidc):
        session_client.get("/api/login", follow_redirects=False)
        session_client.get("/api/callback", params={"code": "good-code", "state": oidc.state}, follow_redirects=False)
        response = session_client.get("/api/logout", follow_redirects=False)
        assert response.headers["location"] == "https://id.example.com/logout"
        assert session_client.get("/api/auth/user").status_code == 401
        assert storage.persistent.sessions == {}


def test_login_unconfigured(session_client, monkeypatch):
    monkeypatch.setattr(settings, "oidc_client_id", None)
    app.dependency_overrides[get_oidc_service] = lambda: OIDCService(http=httpx.Client())
    assert session_client.get("/api/login", follow_redirects=False).status_code == 503
