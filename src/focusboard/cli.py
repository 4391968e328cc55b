"""Summary: Command-line interface for FocusBoard.

Importance: Links credentials, issues API keys, and previews dashboard data locally.
Alternatives: Use a CLI framework like Typer or Click.
"""

from __future__ import annotations

import argparse
import logging
import time

from focusboard.app import AppServices, build_services
from focusboard.config import AppConfig
from focusboard.models import User
from focusboard.oauth import build_google_auth_url, create_state_token, exchange_oauth_code
from focusboard.services import GOOGLE_PROVIDER


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser."""

    parser = argparse.ArgumentParser(description="FocusBoard CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_user = subparsers.add_parser("create-user", help="Create a user and print its ID")
    create_user.add_argument("email", type=str)
    create_user.add_argument("--name", type=str, default=None)

    create_key = subparsers.add_parser("create-api-key", help="Issue an API key")
    create_key.add_argument("--user-id", type=int, default=None)
    create_key.add_argument("--label", type=str, default=None)

    list_keys = subparsers.add_parser("list-api-keys", help="List API keys without secrets")
    list_keys.add_argument("--user-id", type=int, default=None)
    revoke_key = subparsers.add_parser("revoke-api-key", help="Revoke an API key")
    revoke_key.add_argument("key_id", type=int)
    revoke_key.add_argument("--user-id", type=int, default=None)
    show_user = subparsers.add_parser("show-user", help="Show a user record")
    show_user.add_argument("--user-id", type=int, default=None)

    link = subparsers.add_parser("link-google", help="Store an existing Google credential")
    link.add_argument("access_token", type=str)
    link.add_argument("--refresh-token", type=str, default=None)
    link.add_argument("--expires-at", type=int, default=None)

    subparsers.add_parser("oauth-google", help="Print the Google consent URL")
    exchange = subparsers.add_parser("exchange-code", help="Exchange an OAuth code and store it")
    exchange.add_argument("code", type=str)

    subparsers.add_parser("emails", help="List important unread emails")
    thread = subparsers.add_parser("thread", help="Show the last messages of a thread")
    thread.add_argument("thread_id", type=str)
    subparsers.add_parser("calendar", help="List today's events")
    subparsers.add_parser("dashboard", help="Show the ranked task list and meetings")

    return parser


def run_cli(argv: list[str] | None = None) -> None:
    """Summary: Execute CLI commands based on arguments.

    Importance: Drives local use without the HTTP API.
    Alternatives: Invoke services via the HTTP API.
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    config = AppConfig.from_env()
    services = build_services(config)
    _dispatch(args, config, services)


def _dispatch(args: argparse.Namespace, config: AppConfig, services: AppServices) -> None:
    if args.command == "create-user":
        user_id = services.store.ensure_user(
            User(display_name=args.name or args.email.split("@", 1)[0], email=args.email)
        )
        print(f"User {user_id} ({args.email}).")
        return

    if args.command == "create-api-key":
        user_id = args.user_id or services.user_id
        key_id, token = services.api_keys.create_api_key(user_id, label=args.label)
        print(f"API key {key_id} for user {user_id}: {token}")
        return

    if args.command == "list-api-keys":
        for key in services.api_keys.list_api_keys(args.user_id or services.user_id):
            print(f"{key.id}\t{key.label or '-'}\t{key.created_at}")
        return

    if args.command == "revoke-api-key":
        user_id = args.user_id or services.user_id
        if services.api_keys.revoke_api_key(user_id, args.key_id):
            print(f"Revoked API key {args.key_id}.")
        else:
            print(f"No API key {args.key_id} for user {user_id}.")
        return

    if args.command == "show-user":
        user = services.store.get_user(args.user_id or services.user_id)
        if user is None:
            print("User not found.")
        else:
            print(f"{user.id}\t{user.display_name}\t{user.email}")
        return

    if args.command == "link-google":
        credential_id = services.credentials.link(
            services.user_id,
            GOOGLE_PROVIDER,
            args.access_token,
            args.refresh_token,
            args.expires_at,
        )
        print(f"Stored Google credential {credential_id}.")
        return

    if args.command == "oauth-google":
        print(build_google_auth_url(config, create_state_token()))
        return

    if args.command == "exchange-code":
        result = exchange_oauth_code(config, args.code, time.time())
        credential_id = services.credentials.link(
            services.user_id,
            GOOGLE_PROVIDER,
            result.access_token,
            result.refresh_token,
            result.expires_at,
        )
        print(f"Stored Google credential {credential_id}.")
        return

    if args.command == "emails":
        for message in services.dashboard.important_messages():
            print(
                f"[{message.priority_score}] {message.subject} "
                f"({message.sender.name}) thread={message.thread_id}"
            )
        return

    if args.command == "thread":
        for item in services.dashboard.thread(args.thread_id):
            print(f"{item.timestamp.isoformat()} {item.sender.name}: {item.body}")
        return

    if args.command == "calendar":
        for event in services.dashboard.todays_events():
            when = "all day" if event.is_all_day else f"{event.start} - {event.end}"
            link = f" {event.meet_link}" if event.meet_link else ""
            print(f"{when}: {event.title}{link}")
        return

    if args.command == "dashboard":
        dashboard = services.dashboard.load()
        print(dashboard.summary)
        for task in dashboard.tasks:
            print(f"{task.urgency:<6} {task.title} ({task.sender.name}, {task.display_time})")
        for event in dashboard.meetings:
            print(f"meeting {event.title} ({event.start})")
        return


if __name__ == "__main__":
    run_cli()
