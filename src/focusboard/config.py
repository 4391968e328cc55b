"""Summary: Application configuration for FocusBoard.

Importance: Centralizes defaults, .env, and environment overrides so providers receive explicit settings.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for OAuth, provider APIs, and storage.

    Importance: Passed explicitly into the token refresher and fetchers so no module reads globals.
    Alternatives: Read client secrets from the process environment at call time.
    """

    db_path: str
    default_user_name: str
    default_user_email: str
    token_secret: str
    google_client_id: str
    google_client_secret: str
    google_token_url: str
    google_auth_url: str
    oauth_redirect_uri: str
    gmail_api_base_url: str
    calendar_api_base_url: str
    http_timeout_seconds: float

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps every variable defined in the defaults file while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))
        return AppConfig(
            db_path=os.getenv("FOCUSBOARD_DB_PATH", defaults["db_path"]),
            default_user_name=os.getenv(
                "FOCUSBOARD_DEFAULT_USER_NAME", defaults["default_user_name"]
            ),
            default_user_email=os.getenv(
                "FOCUSBOARD_DEFAULT_USER_EMAIL", defaults["default_user_email"]
            ),
            token_secret=os.getenv("FOCUSBOARD_TOKEN_SECRET", defaults["token_secret"]),
            google_client_id=os.getenv("GOOGLE_CLIENT_ID", defaults["google_client_id"]),
            google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET", defaults["google_client_secret"]),
            google_token_url=os.getenv("GOOGLE_TOKEN_URL", defaults["google_token_url"]),
            google_auth_url=os.getenv("GOOGLE_AUTH_URL", defaults["google_auth_url"]),
            oauth_redirect_uri=os.getenv(
                "FOCUSBOARD_OAUTH_REDIRECT_URI", defaults["oauth_redirect_uri"]
            ),
            gmail_api_base_url=os.getenv("GMAIL_API_BASE_URL", defaults["gmail_api_base_url"]),
            calendar_api_base_url=os.getenv(
                "CALENDAR_API_BASE_URL", defaults["calendar_api_base_url"]
            ),
            http_timeout_seconds=float(
                os.getenv("FOCUSBOARD_HTTP_TIMEOUT_SECONDS", defaults["http_timeout_seconds"])
            ),
        )


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps client secrets out of code while supporting local workflows.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip('"'))
