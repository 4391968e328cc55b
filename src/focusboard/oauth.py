"""Summary: Google OAuth token endpoint helpers.

Importance: Performs refresh-token and authorization-code grants without extra dependencies.
Alternatives: Use google-auth or an OAuth client library.
"""

from __future__ import annotations

import http.client
import json
import secrets
from dataclasses import dataclass
from typing import Any
import urllib.error
import urllib.parse
import urllib.request

from focusboard.config import AppConfig
from focusboard.errors import MalformedUpstreamData, ProviderUnavailable
from focusboard.schemas import TokenResponse, parse_payload

GOOGLE_SCOPES = (
    "openid email profile "
    "https://www.googleapis.com/auth/gmail.readonly "
    "https://www.googleapis.com/auth/calendar.readonly"
)


@dataclass(frozen=True)
class OAuthTokenResult:
    """Summary: Normalized token endpoint response.

    Importance: Converts relative expires_in into an absolute epoch expiry for storage.
    Alternatives: Store the raw provider response.
    """

    access_token: str
    refresh_token: str | None
    expires_at: int | None
    token_type: str | None

    @staticmethod
    def from_response(payload: dict[str, Any], now: float) -> "OAuthTokenResult":
        """Summary: Build an OAuthTokenResult from a token endpoint payload.

        Importance: Expiry is computed as now + expires_in against the caller's clock.
        Alternatives: Trust a provider-supplied absolute expiry.
        """

        try:
            response = parse_payload(TokenResponse, payload)
        except MalformedUpstreamData as exc:
            raise ProviderUnavailable("Token endpoint returned an unexpected payload") from exc
        expires_at = None
        if response.expires_in is not None:
            expires_at = int(now) + response.expires_in
        return OAuthTokenResult(
            access_token=response.access_token,
            refresh_token=response.refresh_token,
            expires_at=expires_at,
            token_type=response.token_type,
        )


def create_state_token() -> str:
    return secrets.token_urlsafe(24)


def build_google_auth_url(config: AppConfig, state: str) -> str:
    """Summary: Build a Google consent URL requesting offline read-only access.

    Importance: Offline access with forced consent guarantees a refresh token on the initial grant.
    Alternatives: Delegate the consent flow to an identity provider library.
    """

    params = {
        "client_id": config.google_client_id,
        "redirect_uri": config.oauth_redirect_uri,
        "response_type": "code",
        "access_type": "offline",
        "prompt": "consent",
        "scope": GOOGLE_SCOPES,
        "state": state,
    }
    return config.google_auth_url + "?" + urllib.parse.urlencode(params)


def exchange_oauth_code(config: AppConfig, code: str, now: float) -> OAuthTokenResult:
    """Summary: Exchange an authorization code for an initial credential."""

    response = _post_form(
        config.google_token_url,
        _token_payload(config, code),
        config.http_timeout_seconds,
    )
    return OAuthTokenResult.from_response(response, now)


def refresh_oauth_token(config: AppConfig, refresh_token: str, now: float) -> OAuthTokenResult:
    """Summary: Exchange a refresh token for a new access token.

    Importance: Keeps mail and calendar reads working without re-consent.
    Alternatives: Force the user through the consent flow on every expiry.
    """

    response = _post_form(
        config.google_token_url,
        _refresh_payload(config, refresh_token),
        config.http_timeout_seconds,
    )
    return OAuthTokenResult.from_response(response, now)


def _token_payload(config: AppConfig, code: str) -> dict[str, str]:
    _ensure_oauth_config(config)
    return {
        "client_id": config.google_client_id,
        "client_secret": config.google_client_secret,
        "code": code,
        "grant_type": "authorization_code",
        "redirect_uri": config.oauth_redirect_uri,
    }


def _refresh_payload(config: AppConfig, refresh_token: str) -> dict[str, str]:
    _ensure_oauth_config(config)
    return {
        "client_id": config.google_client_id,
        "client_secret": config.google_client_secret,
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    }


def _ensure_oauth_config(config: AppConfig) -> None:
    """Summary: Validate that OAuth client credentials exist.

    Importance: Prevents confusing token endpoint errors when credentials are missing.
    Alternatives: Allow requests to fail at the provider endpoint.
    """

    if not config.google_client_id or not config.google_client_secret:
        raise ValueError("Missing OAuth client credentials for google")


def _post_form(url: str, payload: dict[str, str], timeout: float) -> dict[str, Any]:
    """Summary: Send a form-encoded POST request and parse JSON.

    Importance: Token endpoint failures surface as ProviderUnavailable.
    Alternatives: Use requests or a provider SDK.
    """

    data = urllib.parse.urlencode(payload).encode("utf-8")
    request = urllib.request.Request(
        url,
        data=data,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            raw = response.read().decode("utf-8")
    except urllib.error.HTTPError as exc:
        error_body = exc.read().decode("utf-8", errors="replace")
        raise ProviderUnavailable(f"Token exchange failed: {error_body or exc.reason}") from exc
    except (OSError, http.client.HTTPException, UnicodeDecodeError) as exc:
        raise ProviderUnavailable(f"Token endpoint unreachable: {exc}") from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProviderUnavailable("Token endpoint returned a non-JSON response") from exc
