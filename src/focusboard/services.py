"""Summary: Service layer for FocusBoard workflows.

Importance: Binds identity, credential storage, token refresh, and provider fetches for one user.
Alternatives: Embed workflow logic directly in API routes.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
import hashlib
import hmac
import logging
import secrets
import threading
import time
from typing import Callable

from focusboard.calendar import CalendarProvider
from focusboard.config import AppConfig
from focusboard.email import MailProvider
from focusboard.errors import NoCredential, ProviderUnavailable
from focusboard.models import Credential, Dashboard, NormalizedEvent, NormalizedMessage, ThreadMessage
from focusboard.oauth import refresh_oauth_token
from focusboard.priority import build_dashboard
from focusboard.storage.sqlite_store import SqliteStore, StoredApiKey
from focusboard.token_codec import TokenCodec

logger = logging.getLogger(__name__)

GOOGLE_PROVIDER = "google"
REFRESH_BUFFER_SECONDS = 300
DEFAULT_EXPIRES_IN_SECONDS = 3600


@dataclass(frozen=True)
class ApiKeyService:
    """Summary: Issues and verifies per-user API keys.

    Importance: Resolves the calling user for every HTTP request.
    Alternatives: Validate session cookies from an external identity provider.
    """

    store: SqliteStore
    token_secret: str

    def create_api_key(self, user_id: int, label: str | None = None) -> tuple[int, str]:
        """Summary: Create a new API key and return it once in plaintext.

        Importance: Only the keyed hash is stored.
        Alternatives: Store raw tokens in the database.
        """

        raw_token = secrets.token_urlsafe(32)
        key_id = self.store.create_api_key(
            user_id=user_id,
            token_hash=self._hash_token(raw_token),
            label=label,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.info("Issued API key %s for user %s.", key_id, user_id)
        return key_id, raw_token

    def revoke_api_key(self, user_id: int, key_id: int) -> bool:
        return self.store.delete_api_key(user_id, key_id)

    def list_api_keys(self, user_id: int) -> list[StoredApiKey]:
        return self.store.list_api_keys(user_id)

    def resolve_user_id(self, token: str | None) -> int | None:
        """Summary: Resolve a user ID from a presented API key."""

        if not token:
            return None
        return self.store.get_user_id_by_api_key(self._hash_token(token))

    def _hash_token(self, token: str) -> str:
        key = (self.token_secret or "focusboard").encode("utf-8")
        return hmac.new(key, token.encode("utf-8"), hashlib.sha256).hexdigest()


@dataclass(frozen=True)
class CredentialService:
    """Summary: Credential store adapter over SQLite with token encoding.

    Importance: Pass-through to storage; store failures propagate as CredentialStoreUnavailable.
    Alternatives: Let the refresher query SQLite directly.
    """

    store: SqliteStore
    codec: TokenCodec

    def get(self, user_id: int, provider: str) -> Credential | None:
        """Summary: Read and decode the credential for a user and provider."""

        record = self.store.find_credential(user_id, provider)
        if record is None:
            return None
        return Credential(
            id=record.id,
            user_id=record.user_id,
            provider=record.provider,
            access_token=self.codec.decode(record.access_token) or "",
            expires_at=record.expires_at,
            refresh_token=self.codec.decode(record.refresh_token),
        )

    def update(
        self,
        credential_id: int,
        access_token: str,
        expires_at: int,
        refresh_token: str | None = None,
    ) -> bool:
        """Summary: Persist a refreshed access token and its expiry.

        Importance: A None refresh token leaves the stored refresh token unchanged.
        Alternatives: Always overwrite the refresh token column.
        """

        return self.store.update_credential(
            credential_id,
            access_token=self.codec.encode(access_token),
            expires_at=expires_at,
            refresh_token=self.codec.encode(refresh_token),
        )

    def link(
        self,
        user_id: int,
        provider: str,
        access_token: str,
        refresh_token: str | None,
        expires_at: int | None,
    ) -> int:
        """Summary: Record the initial authorization grant for a provider."""

        credential_id = self.store.upsert_credential(
            user_id=user_id,
            provider=provider,
            access_token=self.codec.encode(access_token),
            refresh_token=self.codec.encode(refresh_token),
            expires_at=expires_at,
        )
        logger.info("Linked %s credential for user %s.", provider, user_id)
        return credential_id


class RefreshLocks:
    """Summary: Registry of per-(user, provider) locks around refresh-and-persist.

    Importance: Two concurrent requests for one credential refresh it once instead of twice.
    Locks live for the process lifetime, one per (user, provider) seen, and do not coordinate
    across processes.
    Alternatives: Accept duplicate refreshes with the last write winning.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[int, str], threading.Lock] = {}

    def for_key(self, user_id: int, provider: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault((user_id, provider), threading.Lock())


@dataclass(frozen=True)
class TokenService:
    """Summary: Hands out valid access tokens, refreshing near-expiry credentials.

    Importance: No access token is returned past expiry minus the buffer without a refresh attempt.
    Alternatives: Refresh on every request or only after a provider 401.
    """

    user_id: int
    credentials: CredentialService
    config: AppConfig
    locks: RefreshLocks = field(default_factory=RefreshLocks)
    clock: Callable[[], float] = time.time
    refresh_buffer_seconds: int = REFRESH_BUFFER_SECONDS

    def ensure_valid(self, credential: Credential | None) -> str | None:
        """Summary: Return a usable access token for a credential, refreshing when due.

        Importance: Exactly one persistence write per successful refresh and none otherwise.
        Alternatives: Retry failed refreshes with backoff.
        """

        if credential is None or not credential.access_token:
            return None
        now = self.clock()
        expires_at = credential.expires_at or 0
        if expires_at - self.refresh_buffer_seconds > now or not credential.refresh_token:
            return credential.access_token

        try:
            result = refresh_oauth_token(self.config, credential.refresh_token, now)
        except (ProviderUnavailable, ValueError) as exc:
            logger.error("Token refresh failed for credential %s: %s", credential.id, exc)
            return None
        new_expiry = result.expires_at
        if new_expiry is None:
            new_expiry = int(now) + DEFAULT_EXPIRES_IN_SECONDS
        if not self.credentials.update(
            credential.id, result.access_token, new_expiry, result.refresh_token
        ):
            logger.warning("Credential %s vanished before refresh was saved.", credential.id)
        logger.info("Refreshed %s access token for user %s.", credential.provider, credential.user_id)
        return result.access_token

    def access_token_for(self, provider: str = GOOGLE_PROVIDER) -> str:
        """Summary: Load, refresh if needed, and return the user's access token.

        Importance: An absent token surfaces as NoCredential, which the API maps to 401.
        Alternatives: Return None and let callers decide.
        """

        with self.locks.for_key(self.user_id, provider):
            credential = self.credentials.get(self.user_id, provider)
            access_token = self.ensure_valid(credential)
        if access_token is None:
            raise NoCredential(f"No usable {provider} credential for user {self.user_id}")
        return access_token


@dataclass(frozen=True)
class DashboardService:
    """Summary: Pulls mail and calendar data for one user on demand.

    Importance: Single entry point used by both the HTTP API and the CLI.
    Alternatives: Call providers directly from each entry point.
    """

    tokens: TokenService
    mailbox: MailProvider
    calendar: CalendarProvider

    def important_messages(self) -> list[NormalizedMessage]:
        return self.mailbox.fetch_important(self.tokens.access_token_for())

    def thread(self, thread_id: str) -> list[ThreadMessage]:
        return self.mailbox.fetch_thread(self.tokens.access_token_for(), thread_id)

    def todays_events(self) -> list[NormalizedEvent]:
        return self.calendar.fetch_today(self.tokens.access_token_for())

    def load(self, now: datetime | None = None) -> Dashboard:
        """Summary: Fetch mail and calendar concurrently and merge them.

        Importance: The two providers are independent, so the dashboard waits for the slower one only.
        Alternatives: Fetch sequentially.
        """

        access_token = self.tokens.access_token_for()
        with ThreadPoolExecutor(max_workers=2) as executor:
            messages_future = executor.submit(self.mailbox.fetch_important, access_token)
            events_future = executor.submit(self.calendar.fetch_today, access_token)
            messages = messages_future.result()
            events = events_future.result()
        return build_dashboard(messages, events, now)
