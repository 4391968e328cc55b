"""Summary: Text cleanup helpers for provider payloads.

Importance: Removes markup and entity artifacts so subjects, previews, and bodies read cleanly.
Alternatives: Render raw provider text and let the client sanitize it.
"""

from __future__ import annotations

import html
import re
from email.utils import parseaddr

from focusboard.models import Sender

_TAG_PATTERN = re.compile(r"<[^>]*>")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_ENTITY_PATTERN = re.compile(r"&(?:#\d+|#[xX][0-9A-Fa-f]+|[A-Za-z][A-Za-z0-9]*);")

UNKNOWN_SENDER = "Unknown"


def decode_html_entities(text: str) -> str:
    """Summary: Decode semicolon-terminated named, decimal, and hex HTML entities.

    Importance: Gmail snippets arrive HTML-escaped (e.g. &#39; for an apostrophe), while
    plain text such as "R&D &copy deck" must pass through untouched.
    Alternatives: Maintain a hand-written entity table.
    """

    if "&" not in text:
        return text
    return _ENTITY_PATTERN.sub(lambda match: html.unescape(match.group(0)), text)


def strip_html(text: str) -> str:
    """Summary: Replace tags with spaces and collapse whitespace runs."""

    without_tags = _TAG_PATTERN.sub(" ", text)
    return _WHITESPACE_PATTERN.sub(" ", without_tags).strip()


def local_part(address: str) -> str:
    return address.split("@", 1)[0]


def parse_sender(header: str | None) -> Sender:
    """Summary: Parse a From header into a display name and address.

    Importance: Accepts quoted or bare names with angle-bracketed or bare addresses.
    Alternatives: Show the raw header value.
    """

    raw = (header or "").strip()
    if not raw:
        return Sender(name=UNKNOWN_SENDER, email="")
    name, address = parseaddr(raw)
    if not address:
        address = raw
    name = decode_html_entities(name.strip().strip('"').strip())
    if not name:
        name = local_part(address) or UNKNOWN_SENDER
    return Sender(name=name, email=address)
