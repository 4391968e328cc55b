"""Summary: Application factory wiring core services.

Importance: Gives the CLI and the HTTP API one construction path for storage, providers, and services.
Alternatives: Instantiate services manually in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass

from focusboard.calendar import CalendarProvider, GoogleCalendar
from focusboard.config import AppConfig
from focusboard.email import GmailMailbox, MailProvider
from focusboard.models import User
from focusboard.services import (
    ApiKeyService,
    CredentialService,
    DashboardService,
    RefreshLocks,
    TokenService,
)
from focusboard.storage.sqlite_store import SqliteStore
from focusboard.token_codec import TokenCodec


@dataclass(frozen=True)
class AppContext:
    """Summary: Shared, process-wide dependencies.

    Importance: Refresh locks and providers are shared so concurrent requests coordinate.
    Alternatives: Rebuild dependencies for every request.
    """

    store: SqliteStore
    config: AppConfig
    mailbox: MailProvider
    calendar: CalendarProvider
    locks: RefreshLocks
    api_keys: ApiKeyService
    credentials: CredentialService

    def services_for_user(self, user_id: int) -> "AppServices":
        """Summary: Build user-scoped services from shared context.

        Importance: Every request works against one user's credential only.
        Alternatives: Pass user_id through every service method.
        """

        tokens = TokenService(
            user_id=user_id,
            credentials=self.credentials,
            config=self.config,
            locks=self.locks,
        )
        dashboard = DashboardService(tokens=tokens, mailbox=self.mailbox, calendar=self.calendar)
        return AppServices(
            tokens=tokens,
            dashboard=dashboard,
            credentials=self.credentials,
            api_keys=self.api_keys,
            store=self.store,
            user_id=user_id,
        )


@dataclass(frozen=True)
class AppServices:
    """Summary: Bundle of services bound to one user."""

    tokens: TokenService
    dashboard: DashboardService
    credentials: CredentialService
    api_keys: ApiKeyService
    store: SqliteStore
    user_id: int


def build_context(
    config: AppConfig,
    mailbox: MailProvider | None = None,
    calendar: CalendarProvider | None = None,
) -> AppContext:
    """Summary: Build shared context, defaulting to the Google providers.

    Importance: Tests inject fake providers without touching the network.
    Alternatives: Monkeypatch provider classes globally.
    """

    store = SqliteStore(config.db_path)
    store.initialize()
    return AppContext(
        store=store,
        config=config,
        mailbox=mailbox
        or GmailMailbox(config.gmail_api_base_url, timeout=config.http_timeout_seconds),
        calendar=calendar
        or GoogleCalendar(config.calendar_api_base_url, timeout=config.http_timeout_seconds),
        locks=RefreshLocks(),
        api_keys=ApiKeyService(store=store, token_secret=config.token_secret),
        credentials=CredentialService(store=store, codec=TokenCodec(config.token_secret)),
    )


def build_services(config: AppConfig) -> AppServices:
    """Summary: Build services for the configured default user.

    Importance: The CLI runs as a single local user.
    Alternatives: Require a user flag on every command.
    """

    context = build_context(config)
    user = User(display_name=config.default_user_name, email=config.default_user_email)
    user_id = context.store.ensure_user(user)
    return context.services_for_user(user_id)
