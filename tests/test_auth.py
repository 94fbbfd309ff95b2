import jwt
import pytest

from app.core.config import settings
from app.core.security import TokenError, decode_access_token
from app.models.profile import Profile
from app.services import supabase_auth
from app.services.session_gate import SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, SessionGate


@pytest.fixture
def auth_service(monkeypatch, fake_response):
    """Routes Supabase Auth calls to a recorder instead of the network."""
    monkeypatch.setattr(settings, "supabase_url", "https://project.supabase.co")
    monkeypatch.setattr(settings, "supabase_anon_key", "anon-key")
    calls = []
    replies = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        for suffix, (status, payload) in replies.items():
            if url.endswith(suffix):
                return fake_response(status, payload)
        return fake_response(200, {})

    monkeypatch.setattr(supabase_auth.requests, "post", fake_post)
    return calls, replies


# -------------------------------------------------------
# Session gate
# -------------------------------------------------------

def test_session_without_token_shows_login(client):
    body = client.get("/auth/session").json()
    assert body["authenticated"] is False
    assert body["screen"] == "login"
    assert body["tabs"] == []


def test_session_for_resident_shows_three_tabs(client, resident, headers_for):
    body = client.get("/auth/session", headers=headers_for(resident)).json()
    assert body["screen"] == "main"
    assert body["tabs"] == ["feed", "create", "profile"]
    assert body["user_id"] == resident.id
    assert body["is_admin"] is False


def test_session_for_admin_adds_admin_tab(client, admin_user, headers_for):
    body = client.get("/auth/session", headers=headers_for(admin_user)).json()
    assert body["tabs"] == ["feed", "create", "profile", "admin"]
    assert body["is_admin"] is True


def test_expired_token_is_rejected(client, resident, token_for):
    token = token_for(resident.id, expires_in=-60)
    response = client.get("/profile/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


def test_token_without_subject_is_rejected():
    token = jwt.encode({"aud": "authenticated", "exp": 9999999999}, "test-jwt-secret", algorithm="HS256")
    with pytest.raises(TokenError, match="Invalid token payload"):
        decode_access_token(token)


def test_gate_notifies_listeners_and_tracks_admin_flag(db_session, resident, token_for):
    gate = SessionGate()
    seen = []
    unsubscribe = gate.subscribe(lambda event, state: seen.append((event, state["tabs"])))

    gate.start(db_session, None)
    gate.change(db_session, SIGNED_IN, token_for(resident.id))
    assert seen[-1] == (SIGNED_IN, ["feed", "create", "profile"])

    resident.is_admin = True
    db_session.commit()
    gate.change(db_session, TOKEN_REFRESHED, token_for(resident.id))
    assert seen[-1] == (TOKEN_REFRESHED, ["feed", "create", "profile", "admin"])

    gate.sign_out()
    assert seen[-1] == (SIGNED_OUT, [])
    assert gate.screen == "login"

    unsubscribe()
    gate.change(db_session, SIGNED_IN, token_for(resident.id))
    assert len(seen) == 4


def test_gate_treats_bad_token_as_signed_out(db_session, resident, token_for):
    gate = SessionGate()
    gate.change(db_session, SIGNED_IN, token_for(resident.id))
    state = gate.change(db_session, TOKEN_REFRESHED, "not-a-jwt")
    assert state["event"] == SIGNED_OUT
    assert state["authenticated"] is False


# -------------------------------------------------------
# Sign up / sign in
# -------------------------------------------------------

def test_signup_creates_profile(client, db_session, auth_service):
    calls, replies = auth_service
    replies["/auth/v1/signup"] = (200, {"user": {"id": "3f0c2d7e-1111-4c1e-9a55-0a1b2c3d4e5f"}})

    response = client.post("/auth/signup", json={
        "full_name": "  Gita Sharma ",
        "email": "gita@example.com",
        "password": "secret123",
    })
    assert response.status_code == 201
    assert response.json()["user_id"] == "3f0c2d7e-1111-4c1e-9a55-0a1b2c3d4e5f"
    assert calls[0]["json"]["data"] == {"full_name": "Gita Sharma"}

    profile = db_session.get(Profile, "3f0c2d7e-1111-4c1e-9a55-0a1b2c3d4e5f")
    assert profile.full_name == "Gita Sharma"
    assert profile.is_admin is False


def test_signup_requires_full_name(client, auth_service):
    calls, _ = auth_service
    response = client.post("/auth/signup", json={
        "full_name": "   ",
        "email": "gita@example.com",
        "password": "secret123",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "Enter your full name"
    assert calls == []


def test_signup_rejects_short_password(client, auth_service):
    response = client.post("/auth/signup", json={
        "full_name": "Gita Sharma",
        "email": "gita@example.com",
        "password": "123",
    })
    assert response.status_code == 422


def test_login_returns_tokens(client, auth_service):
    _, replies = auth_service
    replies["grant_type=password"] = (200, {
        "access_token": "access",
        "refresh_token": "refresh",
        "token_type": "bearer",
        "expires_in": 3600,
        "user": {"id": "user-1"},
    })
    body = client.post("/auth/login", json={"email": "gita@example.com", "password": "secret123"}).json()
    assert body == {
        "access_token": "access",
        "refresh_token": "refresh",
        "token_type": "bearer",
        "expires_in": 3600,
        "user_id": "user-1",
    }


def test_login_forwards_auth_error(client, auth_service):
    _, replies = auth_service
    replies["grant_type=password"] = (400, {"error": "invalid_grant", "error_description": "Invalid login credentials"})
    response = client.post("/auth/login", json={"email": "gita@example.com", "password": "wrong"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid login credentials"


def test_refresh_uses_refresh_grant(client, auth_service):
    calls, replies = auth_service
    replies["grant_type=refresh_token"] = (200, {
        "access_token": "new-access",
        "refresh_token": "new-refresh",
        "expires_in": 3600,
        "user": {"id": "user-1"},
    })
    body = client.post("/auth/refresh", json={"refresh_token": "old-refresh"}).json()
    assert body["access_token"] == "new-access"
    assert calls[0]["json"] == {"refresh_token": "old-refresh"}


def test_logout_passes_user_token(client, auth_service, resident, headers_for):
    calls, replies = auth_service
    replies["/auth/v1/logout"] = (204, None)
    headers = headers_for(resident)
    response = client.post("/auth/logout", headers=headers)
    assert response.status_code == 200
    assert calls[0]["headers"]["Authorization"] == headers["Authorization"]


def test_logout_without_token(client):
    assert client.post("/auth/logout").status_code == 401


def test_auth_unconfigured_returns_503(client):
    response = client.post("/auth/login", json={"email": "gita@example.com", "password": "secret123"})
    assert response.status_code == 503
