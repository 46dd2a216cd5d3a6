# tests/test_auth_routes.py
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

from conftest import add_profile, bearer, make_token
from finzoo.core.auth_gateway import AuthResult, AuthTokens, AuthUser
from finzoo.core.timeutils import utcnow
from finzoo.database import new_session
from finzoo.repositories.activity_repo import ActivityRepository
from finzoo.routers.auth import NEXT_COOKIE, PKCE_COOKIE
from finzoo.services.auth_service import PENDING_APPROVAL_MESSAGE


def login(client, email, password="secret123"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_approved_admin_can_sign_in(client, gateway):
    user_id = gateway.add_account("boss@finzoo.com", "secret123", "Boss")
    add_profile("boss@finzoo.com", role="admin", is_approved=True, user_id=user_id)

    r = login(client, "boss@finzoo.com")

    assert r.status_code == 200
    body = r.json()
    assert body["profile"]["role"] == "admin"
    assert gateway.signed_out == []

    me = client.get("/api/auth/me", headers=bearer(body["access_token"]))
    assert me.status_code == 200
    assert me.json()["email"] == "boss@finzoo.com"


def test_unapproved_sign_in_leaves_no_session_every_time(client, gateway):
    gateway.add_account("new@finzoo.com", "secret123")

    for _ in range(2):
        r = login(client, "new@finzoo.com")
        assert r.status_code == 403
        assert r.json()["detail"] == PENDING_APPROVAL_MESSAGE

    assert len(gateway.signed_out) == 2
    with new_session() as db:
        assert ActivityRepository().list_active(db) == []


def test_unapproved_admin_role_is_refused(client, gateway):
    user_id = gateway.add_account("halfway@finzoo.com", "secret123")
    add_profile("halfway@finzoo.com", role="admin", is_approved=False, user_id=user_id)

    assert login(client, "halfway@finzoo.com").status_code == 403
    assert len(gateway.signed_out) == 1


def test_unverifiable_token_is_signed_out(client, gateway, monkeypatch):
    user_id = gateway.add_account("boss@finzoo.com", "secret123")
    add_profile("boss@finzoo.com", role="admin", is_approved=True, user_id=user_id)

    def sign_in(email, password):
        return AuthResult(
            user=AuthUser(id=str(user_id), email=email),
            tokens=AuthTokens(access_token="not-a-jwt", refresh_token="r", expires_in=3600),
        )

    monkeypatch.setattr(gateway, "sign_in_with_password", sign_in)

    r = login(client, "boss@finzoo.com")

    assert r.status_code == 401
    assert gateway.signed_out == ["not-a-jwt"]


def test_invalid_credentials(client, gateway):
    gateway.add_account("boss@finzoo.com", "secret123")
    r = login(client, "boss@finzoo.com", "wrong-password")
    assert r.status_code == 401
    assert gateway.signed_out == []


def test_signup_creates_pending_profile_without_session(client, gateway):
    r = client.post(
        "/api/auth/signup",
        json={"name": "Marina", "email": "marina@finzoo.com", "password": "secret123"},
    )

    assert r.status_code == 201
    profile = r.json()["profile"]
    assert profile["is_approved"] is False
    assert profile["role"] == "user"
    assert profile["name"] == "Marina"
    assert len(gateway.signed_out) == 1

    again = client.post(
        "/api/auth/signup",
        json={"name": "Marina", "email": "marina@finzoo.com", "password": "secret123"},
    )
    assert again.status_code == 400


def test_me_requires_admin(client, user_headers):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers=user_headers).status_code == 403


def test_invalid_token_is_rejected(client):
    r = client.get("/api/auth/me", headers=bearer("not-a-jwt"))
    assert r.status_code == 401


def test_logout_ends_the_session(client, gateway):
    user_id = gateway.add_account("boss@finzoo.com", "secret123")
    add_profile("boss@finzoo.com", role="admin", is_approved=True, user_id=user_id)
    token = login(client, "boss@finzoo.com").json()["access_token"]

    r = client.post("/api/auth/logout", headers=bearer(token))

    assert r.status_code == 200
    assert token in gateway.signed_out
    assert client.get("/api/auth/me", headers=bearer(token)).status_code == 401


def test_idle_session_is_refused(client, gateway):
    profile = add_profile("boss@finzoo.com", role="admin", is_approved=True)
    with new_session() as db:
        ActivityRepository().save_activity(
            db, "idle-session", profile.id, utcnow() - timedelta(hours=2)
        )
    token = make_token(profile.id, profile.email, session_id="idle-session")

    r = client.get("/api/auth/me", headers=bearer(token))

    assert r.status_code == 401
    assert r.json()["detail"] == "Session expired due to inactivity"
    assert token in gateway.signed_out


def test_google_login_sets_pkce_cookie(client):
    r = client.get("/api/auth/google?next=/admin/pets", follow_redirects=False)

    assert r.status_code == 303
    assert r.headers["location"].startswith("http://supabase.test/auth/v1/authorize")
    cookies = r.headers.get_list("set-cookie")
    assert any(c.startswith(f"{PKCE_COOKIE}=verifier") for c in cookies)
    assert any("HttpOnly" in c for c in cookies)


def _callback(client, code=None, next_path="/admin/pets"):
    url = "/api/auth/callback" + (f"?code={code}" if code else "")
    return client.get(
        url,
        headers={"Cookie": f"{PKCE_COOKIE}=verifier; {NEXT_COOKIE}={next_path}"},
        follow_redirects=False,
    )


def test_callback_hands_tokens_to_approved_admin(client, gateway):
    user_id = gateway.add_account("boss@finzoo.com", "unused")
    add_profile("boss@finzoo.com", role="admin", is_approved=True, user_id=user_id)
    gateway.oauth_codes["good-code"] = "boss@finzoo.com"

    r = _callback(client, "good-code")

    location = urlparse(r.headers["location"])
    assert r.status_code == 303
    assert f"{location.scheme}://{location.netloc}{location.path}" == "http://shop.test/admin/pets"
    assert "access_token" in parse_qs(location.fragment)


def test_callback_for_pending_account_redirects_with_message(client, gateway):
    gateway.add_account("new@finzoo.com", "unused")
    gateway.oauth_codes["code"] = "new@finzoo.com"

    r = _callback(client, "code")

    location = urlparse(r.headers["location"])
    assert location.path == "/admin/login"
    assert parse_qs(location.query)["message"] == [PENDING_APPROVAL_MESSAGE]
    assert len(gateway.signed_out) == 1


def test_callback_without_code_is_an_error(client):
    location = urlparse(_callback(client).headers["location"])
    assert location.path == "/admin/login"
    assert parse_qs(location.query)["error"] == ["auth_callback_error"]


def test_callback_ignores_offsite_next(client, gateway):
    user_id = gateway.add_account("boss@finzoo.com", "unused")
    add_profile("boss@finzoo.com", role="admin", is_approved=True, user_id=user_id)
    gateway.oauth_codes["good-code"] = "boss@finzoo.com"

    r = _callback(client, "good-code", next_path="//evil.example")

    assert r.headers["location"].startswith("http://shop.test/admin#")
