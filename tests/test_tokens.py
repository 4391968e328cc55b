"""Summary: Tests for the token refresher.

Importance: Ensures near-expiry credentials refresh exactly once and valid ones are left alone.
Alternatives: Skip refresh logic until a provider returns 401.
"""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import Any

import pytest

from focusboard.config import AppConfig
from focusboard.errors import NoCredential, ProviderUnavailable
from focusboard.models import User
from focusboard.oauth import OAuthTokenResult
from focusboard.services import CredentialService, TokenService
from focusboard.storage.sqlite_store import SqliteStore
from focusboard.token_codec import TokenCodec

NOW = 1_700_000_000


def _config() -> AppConfig:
    return AppConfig(
        db_path="test.db",
        default_user_name="Local User",
        default_user_email="local@focusboard",
        token_secret="secret",
        google_client_id="google-client",
        google_client_secret="google-secret",
        google_token_url="https://oauth2.googleapis.com/token",
        google_auth_url="https://accounts.google.com/o/oauth2/v2/auth",
        oauth_redirect_uri="http://localhost:8000/oauth/callback",
        gmail_api_base_url="https://gmail.googleapis.com/gmail/v1",
        calendar_api_base_url="https://www.googleapis.com/calendar/v3",
        http_timeout_seconds=5,
    )


class _Harness:
    """Summary: Store, credential adapter, and token service with write counting."""

    def __init__(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        self.store = SqliteStore(str(tmp_path / "test.db"))
        self.store.initialize()
        self.user_id = self.store.ensure_user(
            User(display_name="Local User", email="local@focusboard")
        )
        self.credentials = CredentialService(store=self.store, codec=TokenCodec("secret"))
        self.tokens = TokenService(
            user_id=self.user_id,
            credentials=self.credentials,
            config=_config(),
            clock=lambda: NOW,
        )
        self.writes: list[tuple[Any, ...]] = []
        original = self.store.update_credential

        def _counting_update(*args: Any, **kwargs: Any) -> bool:
            self.writes.append(args)
            return original(*args, **kwargs)

        monkeypatch.setattr(self.store, "update_credential", _counting_update)

    def link(self, expires_at: int | None, refresh_token: str | None = "refresh") -> None:
        self.credentials.link(self.user_id, "google", "old-access", refresh_token, expires_at)


def _fake_refresh(calls: list[str]):
    def _refresh(_config: AppConfig, refresh_token: str, now: float) -> OAuthTokenResult:
        calls.append(refresh_token)
        return OAuthTokenResult(
            access_token="new-access",
            refresh_token=None,
            expires_at=int(now) + 3600,
            token_type="Bearer",
        )

    return _refresh


def test_valid_token_is_returned_without_refresh(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Summary: A credential outside the refresh buffer is returned unchanged.

    Importance: Avoids needless token endpoint calls and store writes.
    Alternatives: Refresh on every request.
    """

    calls: list[str] = []
    monkeypatch.setattr("focusboard.services.refresh_oauth_token", _fake_refresh(calls))
    harness = _Harness(tmp_path, monkeypatch)
    harness.link(expires_at=NOW + 3600)
    assert harness.tokens.access_token_for() == "old-access"
    assert calls == []
    assert harness.writes == []


def test_token_inside_buffer_refreshes_once(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Summary: A credential within five minutes of expiry is refreshed and persisted once.

    Importance: Callers never receive a token that is about to expire.
    Alternatives: Wait for the provider to reject the token.
    """

    calls: list[str] = []
    monkeypatch.setattr("focusboard.services.refresh_oauth_token", _fake_refresh(calls))
    harness = _Harness(tmp_path, monkeypatch)
    harness.link(expires_at=NOW + 299)
    assert harness.tokens.access_token_for() == "new-access"
    assert calls == ["refresh"]
    assert len(harness.writes) == 1

    stored = harness.credentials.get(harness.user_id, "google")
    assert stored is not None
    assert stored.access_token == "new-access"
    assert stored.expires_at == NOW + 3600
    assert stored.refresh_token == "refresh"


def test_missing_expiry_is_treated_as_expired(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []
    monkeypatch.setattr("focusboard.services.refresh_oauth_token", _fake_refresh(calls))
    harness = _Harness(tmp_path, monkeypatch)
    harness.link(expires_at=None)
    assert harness.tokens.access_token_for() == "new-access"
    assert len(calls) == 1


def test_expired_without_refresh_token_returns_existing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []
    monkeypatch.setattr("focusboard.services.refresh_oauth_token", _fake_refresh(calls))
    harness = _Harness(tmp_path, monkeypatch)
    harness.link(expires_at=NOW - 10, refresh_token=None)
    assert harness.tokens.access_token_for() == "old-access"
    assert calls == []
    assert harness.writes == []


def test_refresh_failure_raises_no_credential(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Summary: A failed refresh yields no token and no store write.

    Importance: The API maps this to 401 so the client can re-authenticate.
    Alternatives: Return the stale token and let the provider reject it.
    """

    def _failing_refresh(*_args: object, **_kwargs: object) -> OAuthTokenResult:
        raise ProviderUnavailable("token endpoint down")

    monkeypatch.setattr("focusboard.services.refresh_oauth_token", _failing_refresh)
    harness = _Harness(tmp_path, monkeypatch)
    harness.link(expires_at=NOW - 10)
    credential = harness.credentials.get(harness.user_id, "google")
    assert harness.tokens.ensure_valid(credential) is None
    with pytest.raises(NoCredential):
        harness.tokens.access_token_for()
    assert harness.writes == []


def test_absent_credential(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    harness = _Harness(tmp_path, monkeypatch)
    assert harness.tokens.ensure_valid(None) is None
    with pytest.raises(NoCredential):
        harness.tokens.access_token_for()


def test_rotated_refresh_token_is_persisted(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _rotating_refresh(_config: AppConfig, _token: str, now: float) -> OAuthTokenResult:
        return OAuthTokenResult(
            access_token="new-access",
            refresh_token="rotated",
            expires_at=None,
            token_type="Bearer",
        )

    monkeypatch.setattr("focusboard.services.refresh_oauth_token", _rotating_refresh)
    harness = _Harness(tmp_path, monkeypatch)
    harness.link(expires_at=NOW)
    harness.tokens.access_token_for()
    stored = harness.credentials.get(harness.user_id, "google")
    assert stored is not None
    assert stored.refresh_token == "rotated"
    assert stored.expires_at == NOW + 3600


def test_expiry_exactly_at_buffer_refreshes(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []
    monkeypatch.setattr("focusboard.services.refresh_oauth_token", _fake_refresh(calls))
    harness = _Harness(tmp_path, monkeypatch)
    harness.link(expires_at=NOW + 300)
    assert harness.tokens.access_token_for() == "new-access"
    assert calls == ["refresh"]
    assert len(harness.writes) == 1


def test_concurrent_requests_refresh_once(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Summary: Two requests racing on one expired credential trigger a single refresh.

    Importance: The waiter reuses the token persisted by the first request.
    Alternatives: Accept duplicate refreshes with the last write winning.
    """

    entered = threading.Event()
    release = threading.Event()
    calls: list[str] = []

    def _blocking_refresh(_config: AppConfig, refresh_token: str, now: float) -> OAuthTokenResult:
        calls.append(refresh_token)
        entered.set()
        release.wait(timeout=5)
        return OAuthTokenResult(
            access_token="new-access",
            refresh_token=None,
            expires_at=int(now) + 3600,
            token_type="Bearer",
        )

    monkeypatch.setattr("focusboard.services.refresh_oauth_token", _blocking_refresh)
    harness = _Harness(tmp_path, monkeypatch)
    harness.link(expires_at=NOW - 10)
    other = replace(harness.tokens)
    results: list[str] = []

    def _request(service: TokenService) -> None:
        results.append(service.access_token_for())

    first = threading.Thread(target=_request, args=(harness.tokens,))
    second = threading.Thread(target=_request, args=(other,))
    first.start()
    assert entered.wait(timeout=5)
    second.start()
    time.sleep(0.05)
    release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert results == ["new-access", "new-access"]
    assert calls == ["refresh"]
    assert len(harness.writes) == 1


def test_refresh_through_token_endpoint_sets_absolute_expiry(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Summary: expires_in 3600 at NOW stores NOW + 3600 and keeps the refresh token.

    Importance: Covers the whole refresh path from the form POST to the store write.
    Alternatives: Test the oauth helper and the service separately only.
    """

    monkeypatch.setattr(
        "focusboard.oauth._post_form",
        lambda _url, _payload, _timeout: {"access_token": "endpoint-access", "expires_in": 3600},
    )
    harness = _Harness(tmp_path, monkeypatch)
    harness.link(expires_at=NOW - 1)
    assert harness.tokens.access_token_for() == "endpoint-access"
    stored = harness.credentials.get(harness.user_id, "google")
    assert stored is not None
    assert stored.expires_at == NOW + 3600
    assert stored.refresh_token == "refresh"
    assert len(harness.writes) == 1
