from urllib.parse import parse_qs, urlparse

import pytest

from horde.core.config import settings
from horde.core.security import create_access_token
from horde.db import notifications as notifications_db
from horde.utils import google_oauth

PROFILE = {"email": "linus@example.com", "full_name": "Linus Pauling", "user_name": "Linus"}


@pytest.fixture
def google_profile(monkeypatch):
    monkeypatch.setattr(google_oauth, "exchange_code", lambda code: dict(PROFILE))


def _state():
    return create_access_token(data={"purpose": "google_oauth"}, expires_minutes=10)


def _sign_in(client):
    response = client.get(
        "/api/v1/auth/google/callback",
        params={"code": "google-code", "state": _state()},
        follow_redirects=False,
    )
    assert response.status_code == 307
    location = urlparse(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}" == settings.CLIENT_BASE_URL
    assert location.path == "/auth/google/authorize"
    return parse_qs(location.query)["authCode"][0]


def test_login_redirect_requires_configuration(client):
    assert client.get("/api/v1/auth/google", follow_redirects=False).status_code == 403


def test_login_redirects_to_google(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_CLIENT_ID", "client-id")
    response = client.get("/api/v1/auth/google", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"].startswith(google_oauth.AUTHORIZE_URL)


def test_first_sign_in_creates_account(client, google_profile):
    auth_code = _sign_in(client)

    response = client.get("/api/v1/auth/google/exchange-code", params={"authCode": auth_code})
    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == PROFILE["email"]
    assert body["user"]["auth_provider"] == "google"
    assert body["access_token"] and body["refresh_token"]

    me = client.get("/api/v1/user/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["user"]["user_id"] == body["user"]["user_id"]

    types = [n["type"] for n in notifications_db.get_notifications_for_user(body["user"]["user_id"])]
    assert types == ["welcome"]

    reused = client.get("/api/v1/auth/google/exchange-code", params={"authCode": auth_code})
    assert reused.status_code == 400


def test_returning_user_logs_in(client, google_profile):
    client.get("/api/v1/auth/google/exchange-code", params={"authCode": _sign_in(client)})

    response = client.get("/api/v1/auth/google/exchange-code", params={"authCode": _sign_in(client)})
    assert response.status_code == 200
    assert response.json()["message"] == "Login Successful."


def test_callback_with_bad_state(client, google_profile):
    response = client.get(
        "/api/v1/auth/google/callback",
        params={"code": "google-code", "state": create_access_token(data={"sub": "someone"})},
        follow_redirects=False,
    )
    location = urlparse(response.headers["location"])
    assert location.path == "/api/v1/auth/google/failure"
    assert parse_qs(location.query)["error_code"] == ["GOOGLE_STATE_INVALID"]


def test_callback_when_google_rejects_code(client, monkeypatch):
    def reject(code):
        raise google_oauth.GoogleAuthError("Email not verified", "GOOGLE_EMAIL_UNVERIFIED")

    monkeypatch.setattr(google_oauth, "exchange_code", reject)
    response = client.get(
        "/api/v1/auth/google/callback",
        params={"code": "google-code", "state": _state()},
        follow_redirects=False,
    )
    assert parse_qs(urlparse(response.headers["location"]).query)["error_code"] == ["GOOGLE_EMAIL_UNVERIFIED"]


def test_failure_redirects_to_client(client):
    response = client.get(
        "/api/v1/auth/google/failure",
        params={"error_message": "Denied", "error_code": "GOOGLE_AUTH_DENIED"},
        follow_redirects=False,
    )
    location = urlparse(response.headers["location"])
    assert location.path == "/auth/google/error"
    assert parse_qs(location.query) == {"message": ["Denied"], "code": ["GOOGLE_AUTH_DENIED"]}
