"""Summary: HTTP helpers for Google provider APIs.

Importance: Encapsulates bearer-authorized JSON requests without extra dependencies.
Alternatives: Use requests, httpx, or the Google API client library.
"""

from __future__ import annotations

import http.client
import json
from typing import Any
import urllib.error
import urllib.parse
import urllib.request

from focusboard.errors import ProviderUnavailable


def build_url(base_url: str, path: str, params: dict[str, Any] | None = None) -> str:
    """Summary: Join a base URL, path, and encoded query parameters.

    Importance: Keeps query strings such as Gmail search expressions correctly escaped.
    Alternatives: Format URLs inline at each call site.
    """

    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    if params:
        url += "?" + urllib.parse.urlencode(params, doseq=True)
    return url


def api_get(url: str, access_token: str, timeout: float = 10) -> dict[str, Any]:
    """Summary: Fetch JSON data from a provider API with a bearer token.

    Importance: All mail and calendar reads go through one failure mode.
    Alternatives: Use a provider SDK with its own error types.
    """

    request = urllib.request.Request(
        url,
        headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        method="GET",
    )
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            raw = response.read().decode("utf-8")
    except urllib.error.HTTPError as exc:
        error_body = exc.read().decode("utf-8", errors="replace")
        raise ProviderUnavailable(
            f"Provider request failed ({exc.code}): {error_body or exc.reason}"
        ) from exc
    except (OSError, http.client.HTTPException, UnicodeDecodeError) as exc:
        raise ProviderUnavailable(f"Provider request failed: {exc}") from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProviderUnavailable("Provider returned a non-JSON response") from exc
