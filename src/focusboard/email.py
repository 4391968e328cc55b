"""Summary: Mail provider interface and the Gmail implementation.

Importance: Fetches unread important mail and conversation threads, normalized into stable records.
Alternatives: Use the Gmail API client library and pass its objects through.
"""

from __future__ import annotations

import base64
import binascii
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from urllib.parse import quote

from focusboard.errors import MalformedUpstreamData, ProviderUnavailable
from focusboard.models import NormalizedMessage, ThreadMessage, UNREAD_LABEL
from focusboard.schemas import (
    GmailMessage,
    GmailMessageList,
    GmailPart,
    GmailThread,
    parse_payload,
)
from focusboard.text import decode_html_entities, parse_sender, strip_html
from focusboard.transport import api_get, build_url

logger = logging.getLogger(__name__)

IMPORTANT_QUERY = "is:unread -category:promotions -category:social -category:updates newer_than:30d"
SEARCH_LIMIT = 20
METADATA_FETCH_LIMIT = 10
THREAD_MESSAGE_LIMIT = 5
BODY_DISPLAY_LIMIT = 800
NO_SUBJECT = "(No subject)"

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


class MailProvider(ABC):
    """Summary: Abstract interface for read-only mail access.

    Importance: Lets services and tests swap the Gmail implementation.
    Alternatives: Call Gmail functions directly from services.
    """

    @abstractmethod
    def fetch_important(self, access_token: str) -> list[NormalizedMessage]:
        """Summary: Return unread important messages ranked by priority."""

    @abstractmethod
    def fetch_thread(self, access_token: str, thread_id: str) -> list[ThreadMessage]:
        """Summary: Return the last messages of a conversation, oldest first."""


class GmailMailbox(MailProvider):
    """Summary: Reads unread mail and threads via the Gmail REST API.

    Importance: Every fetch failure degrades to an empty or partial result instead of raising.
    Alternatives: Use IMAP with an OAuth2 SASL mechanism.
    """

    def __init__(self, base_url: str, timeout: float = 10) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def fetch_important(self, access_token: str) -> list[NormalizedMessage]:
        """Summary: Fetch, normalize, deduplicate, and rank candidate messages.

        Importance: Drives the priorities list of the dashboard.
        Alternatives: Return messages in provider order and rank on the client.
        """

        list_url = build_url(
            self._base_url,
            "users/me/messages",
            {"q": IMPORTANT_QUERY, "maxResults": SEARCH_LIMIT},
        )
        try:
            listing = parse_payload(GmailMessageList, api_get(list_url, access_token, self._timeout))
        except (ProviderUnavailable, MalformedUpstreamData) as exc:
            logger.warning("Gmail message list failed: %s", exc)
            return []

        messages: list[NormalizedMessage] = []
        for ref in listing.messages[:METADATA_FETCH_LIMIT]:
            message = self._fetch_metadata(access_token, ref.id)
            if message is not None:
                messages.append(message)
        ranked = rank_messages(dedupe_by_thread(messages))
        logger.info("Fetched %s important messages.", len(ranked))
        return ranked

    def fetch_thread(self, access_token: str, thread_id: str) -> list[ThreadMessage]:
        """Summary: Fetch a conversation and extract readable bodies.

        Importance: Gives the reader context for an email task.
        Alternatives: Show only the stored snippet.
        """

        url = build_url(
            self._base_url,
            f"users/me/threads/{quote(thread_id, safe='')}",
            {"format": "full"},
        )
        try:
            thread = parse_payload(GmailThread, api_get(url, access_token, self._timeout))
        except (ProviderUnavailable, MalformedUpstreamData) as exc:
            logger.warning("Gmail thread %s failed: %s", thread_id, exc)
            return []

        expanded: list[ThreadMessage] = []
        for message in thread.messages[-THREAD_MESSAGE_LIMIT:]:
            body = extract_body(message.payload)
            if not body:
                continue
            expanded.append(
                ThreadMessage(
                    id=message.id,
                    sender=parse_sender(message.payload.header("From")),
                    timestamp=_message_timestamp(message),
                    body=_truncate(body, BODY_DISPLAY_LIMIT),
                )
            )
        return expanded

    def _fetch_metadata(self, access_token: str, message_id: str) -> NormalizedMessage | None:
        url = build_url(
            self._base_url,
            f"users/me/messages/{message_id}",
            {"format": "metadata", "metadataHeaders": ["From", "Subject", "Date"]},
        )
        try:
            message = parse_payload(GmailMessage, api_get(url, access_token, self._timeout))
        except (ProviderUnavailable, MalformedUpstreamData) as exc:
            logger.warning("Skipping Gmail message %s: %s", message_id, exc)
            return None
        return normalize_message(message)


def normalize_message(message: GmailMessage) -> NormalizedMessage:
    """Summary: Map a Gmail metadata payload into a NormalizedMessage.

    Importance: Applies entity decoding and best-effort defaults for missing headers.
    Alternatives: Reject messages with incomplete headers.
    """

    subject = message.payload.header("Subject") or NO_SUBJECT
    return NormalizedMessage(
        id=message.id,
        thread_id=message.thread_id or message.id,
        subject=decode_html_entities(subject),
        snippet=decode_html_entities(message.snippet),
        sender=parse_sender(message.payload.header("From")),
        timestamp=_message_timestamp(message),
        is_unread=UNREAD_LABEL in message.label_ids,
        labels=tuple(message.label_ids),
    )


def dedupe_by_thread(messages: list[NormalizedMessage]) -> list[NormalizedMessage]:
    """Summary: Keep only the first message seen for each conversation."""

    seen: set[str] = set()
    unique: list[NormalizedMessage] = []
    for message in messages:
        if message.thread_id in seen:
            continue
        seen.add(message.thread_id)
        unique.append(message)
    return unique


def rank_messages(messages: list[NormalizedMessage]) -> list[NormalizedMessage]:
    """Summary: Sort by priority score, then newest first."""

    return sorted(
        messages,
        key=lambda message: (message.priority_score, message.timestamp),
        reverse=True,
    )


def extract_body(part: GmailPart) -> str:
    """Summary: Extract readable text from a possibly nested MIME payload.

    Importance: Prefers direct body data, then a plain-text sub-part, then the first sub-part with content.
    Alternatives: Use only the Gmail snippet.
    """

    if part.body.data:
        return decode_body(part.body.data)
    for sub_part in part.parts:
        if sub_part.mime_type == "text/plain" and sub_part.body.data:
            return decode_body(sub_part.body.data)
    for sub_part in part.parts:
        body = extract_body(sub_part)
        if body:
            return body
    return ""


def decode_body(data: str) -> str:
    """Summary: Decode URL-safe base64 body data into clean plain text.

    Importance: HTML-only messages still yield readable text once tags are stripped.
    Alternatives: Return the HTML to the client.
    """

    padded = data + "=" * (-len(data) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, ValueError):
        logger.debug("Discarding undecodable body part.")
        return ""
    text = strip_html(raw.decode("utf-8", errors="replace"))
    return decode_html_entities(text)


def _message_timestamp(message: GmailMessage) -> datetime:
    date_header = message.payload.header("Date")
    if date_header:
        try:
            parsed = parsedate_to_datetime(date_header)
        except (TypeError, ValueError):
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
    if message.internal_date and message.internal_date.isdigit():
        return datetime.fromtimestamp(int(message.internal_date) / 1000, tz=timezone.utc)
    return _EPOCH


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
