"""Summary: Tests for OAuth token endpoint helpers.

Importance: Validates grant payloads and expiry arithmetic without network calls.
Alternatives: Test OAuth flows manually against Google.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs, urlparse

import pytest

from focusboard.config import AppConfig
from focusboard.errors import ProviderUnavailable
from focusboard.oauth import (
    OAuthTokenResult,
    _refresh_payload,
    _token_payload,
    build_google_auth_url,
    exchange_oauth_code,
    refresh_oauth_token,
)


def _config(client_id: str = "google-client", client_secret: str = "google-secret") -> AppConfig:
    return AppConfig(
        db_path="test.db",
        default_user_name="Local User",
        default_user_email="local@focusboard",
        token_secret="secret",
        google_client_id=client_id,
        google_client_secret=client_secret,
        google_token_url="https://oauth2.googleapis.com/token",
        google_auth_url="https://accounts.google.com/o/oauth2/v2/auth",
        oauth_redirect_uri="http://localhost:8000/oauth/callback",
        gmail_api_base_url="https://gmail.googleapis.com/gmail/v1",
        calendar_api_base_url="https://www.googleapis.com/calendar/v3",
        http_timeout_seconds=5,
    )


def test_refresh_payload_uses_refresh_grant() -> None:
    """Summary: Verify the refresh grant carries client credentials and the refresh token.

    Importance: Google rejects refresh requests missing any of these fields.
    Alternatives: Send credentials via HTTP basic auth.
    """

    payload = _refresh_payload(_config(), "refresh-1")
    assert payload == {
        "client_id": "google-client",
        "client_secret": "google-secret",
        "refresh_token": "refresh-1",
        "grant_type": "refresh_token",
    }


def test_token_payload_uses_authorization_code_grant() -> None:
    payload = _token_payload(_config(), "code-1")
    assert payload["grant_type"] == "authorization_code"
    assert payload["code"] == "code-1"
    assert payload["redirect_uri"] == "http://localhost:8000/oauth/callback"


def test_missing_client_credentials_raise() -> None:
    with pytest.raises(ValueError):
        _refresh_payload(_config(client_id=""), "refresh-1")


def test_from_response_computes_absolute_expiry() -> None:
    """Summary: expires_in is added to the caller's clock.

    Importance: Stored expiry must be absolute for the refresh buffer check.
    Alternatives: Store expires_in and the issue time separately.
    """

    result = OAuthTokenResult.from_response(
        {"access_token": "new", "expires_in": 3600, "token_type": "Bearer"}, 1_700_000_000.7
    )
    assert result.access_token == "new"
    assert result.expires_at == 1_700_003_600
    assert result.refresh_token is None


def test_from_response_rejects_payload_without_token() -> None:
    with pytest.raises(ProviderUnavailable):
        OAuthTokenResult.from_response({"error": "invalid_grant"}, 0)


def test_refresh_oauth_token_posts_to_token_url(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[str, dict[str, str], float]] = []

    def _fake_post(url: str, payload: dict[str, str], timeout: float) -> dict[str, Any]:
        calls.append((url, payload, timeout))
        return {"access_token": "fresh", "expires_in": 60, "refresh_token": "rotated"}

    monkeypatch.setattr("focusboard.oauth._post_form", _fake_post)
    result = refresh_oauth_token(_config(), "refresh-1", 1000)
    assert result.access_token == "fresh"
    assert result.refresh_token == "rotated"
    assert result.expires_at == 1060
    assert calls[0][0] == "https://oauth2.googleapis.com/token"
    assert calls[0][1]["grant_type"] == "refresh_token"
    assert calls[0][2] == 5


def test_exchange_oauth_code(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "focusboard.oauth._post_form",
        lambda _url, payload, _timeout: {
            "access_token": f"access-for-{payload['code']}",
            "refresh_token": "refresh",
            "expires_in": 3599,
        },
    )
    result = exchange_oauth_code(_config(), "abc", 0)
    assert result.access_token == "access-for-abc"
    assert result.expires_at == 3599


def test_build_google_auth_url_requests_offline_access() -> None:
    url = build_google_auth_url(_config(), "state-1")
    query = parse_qs(urlparse(url).query)
    assert url.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
    assert query["access_type"] == ["offline"]
    assert query["state"] == ["state-1"]
    assert "https://www.googleapis.com/auth/gmail.readonly" in query["scope"][0]
