"""Summary: Domain model dataclasses for FocusBoard.

Importance: Defines the stable record shapes produced from provider payloads.
Alternatives: Pass raw provider dictionaries through to the presentation layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

INBOX_LABEL = "INBOX"
IMPORTANT_LABEL = "IMPORTANT"
STARRED_LABEL = "STARRED"
UNREAD_LABEL = "UNREAD"
URGENT_KEYWORDS = ("urgent", "asap", "important", "action required", "deadline", "today")


@dataclass(frozen=True)
class User:
    """Summary: Represents a dashboard user.

    Importance: Owns credentials and API keys.
    Alternatives: Delegate user records entirely to an external identity service.
    """

    display_name: str
    email: str


@dataclass(frozen=True)
class Credential:
    """Summary: A provider-scoped OAuth access/refresh token pair for one user.

    Importance: The only persisted, mutable entity; the refresher reads it on every request.
    Alternatives: Keep tokens in the session cookie.
    """

    id: int
    user_id: int
    provider: str
    access_token: str
    expires_at: int | None
    refresh_token: str | None = None


@dataclass(frozen=True)
class Sender:
    """Summary: Display name and address parsed from a From header.

    Importance: Gives the presentation layer a readable name even when the header has none.
    Alternatives: Surface the raw header string.
    """

    name: str
    email: str


@dataclass(frozen=True)
class NormalizedMessage:
    """Summary: An unread candidate message with decoded metadata.

    Importance: Core unit ranked by priority and mapped into dashboard tasks.
    Alternatives: Rank raw Gmail metadata payloads.
    """

    id: str
    thread_id: str
    subject: str
    snippet: str
    sender: Sender
    timestamp: datetime
    is_unread: bool
    labels: tuple[str, ...] = ()

    @property
    def priority_score(self) -> int:
        """Summary: Compute the label and keyword priority heuristic.

        Importance: Orders messages so important mail surfaces first.
        Alternatives: Use an AI classifier for urgency.
        """

        score = 0
        if INBOX_LABEL in self.labels:
            score += 2
        if IMPORTANT_LABEL in self.labels:
            score += 3
        if STARRED_LABEL in self.labels:
            score += 3
        subject = self.subject.lower()
        if any(keyword in subject for keyword in URGENT_KEYWORDS):
            score += 2
        return score


@dataclass(frozen=True)
class ThreadMessage:
    """Summary: One message of an expanded conversation with a plain-text body.

    Importance: Provides reading context when a task is opened.
    Alternatives: Link out to the provider web UI.
    """

    id: str
    sender: Sender
    timestamp: datetime
    body: str


@dataclass(frozen=True)
class Attendee:
    """Summary: A non-self event attendee."""

    name: str
    email: str
    response_status: str


@dataclass(frozen=True)
class Organizer:
    """Summary: The organizer of an event."""

    name: str
    email: str
    is_self: bool


@dataclass(frozen=True)
class NormalizedEvent:
    """Summary: A titled calendar event for the current local day.

    Importance: Feeds the meetings list and the attention count.
    Alternatives: Surface raw Calendar API events.
    """

    id: str
    title: str
    start: str
    end: str
    is_all_day: bool
    description: str | None = None
    location: str | None = None
    meet_link: str | None = None
    attendees: tuple[Attendee, ...] = ()
    organizer: Organizer | None = None


@dataclass(frozen=True)
class PriorityTask:
    """Summary: A ranked dashboard task derived from a message.

    Importance: The unit the presentation layer renders in the priorities list.
    Alternatives: Render messages directly without an urgency tier.
    """

    id: str
    title: str
    description: str
    source: str
    urgency: str
    sender: Sender
    timestamp: datetime
    display_time: str
    thread_id: str | None = None


@dataclass(frozen=True)
class Dashboard:
    """Summary: Merged dashboard payload of ranked tasks and today's meetings.

    Importance: One response shape for the dashboard view and its summary header.
    Alternatives: Let the client merge both endpoints itself.
    """

    tasks: tuple[PriorityTask, ...] = ()
    meetings: tuple[NormalizedEvent, ...] = ()
    summary: str = ""

    @property
    def attention_count(self) -> int:
        return len(self.tasks) + len(self.meetings)
