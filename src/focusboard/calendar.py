"""Summary: Calendar provider interface and the Google Calendar implementation.

Importance: Fetches today's events and maps them into stable records with join links and attendees.
Alternatives: Use the Google API client library directly in the API layer.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta
from typing import Callable

from focusboard.errors import MalformedUpstreamData, ProviderUnavailable
from focusboard.models import Attendee, NormalizedEvent, Organizer
from focusboard.schemas import CalendarEvent, CalendarEventList, parse_payload
from focusboard.text import local_part
from focusboard.transport import api_get, build_url

logger = logging.getLogger(__name__)

EVENT_LIMIT = 20
VIDEO_ENTRY_POINT = "video"


class CalendarProvider(ABC):
    """Summary: Abstract interface for read-only calendar access."""

    @abstractmethod
    def fetch_today(self, access_token: str) -> list[NormalizedEvent]:
        """Summary: Return titled events for the current local day in start order."""


class GoogleCalendar(CalendarProvider):
    """Summary: Reads the primary Google calendar for the local day.

    Importance: Window bounds come from the injectable clock, which defaults to naive local wall time.
    An aware clock should carry a real zone (zoneinfo) for DST-correct bounds.
    Alternatives: Query a fixed UTC day.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._clock = clock or datetime.now

    def fetch_today(self, access_token: str) -> list[NormalizedEvent]:
        """Summary: Fetch and normalize today's events.

        Importance: Any provider failure yields an empty list rather than an exception.
        Alternatives: Propagate provider errors to the API layer.
        """

        start, end = local_day_window(self._clock())
        url = build_url(
            self._base_url,
            "calendars/primary/events",
            {
                "timeMin": start.isoformat(),
                "timeMax": end.isoformat(),
                "singleEvents": "true",
                "orderBy": "startTime",
                "maxResults": EVENT_LIMIT,
            },
        )
        try:
            listing = parse_payload(CalendarEventList, api_get(url, access_token, self._timeout))
        except (ProviderUnavailable, MalformedUpstreamData) as exc:
            logger.warning("Calendar event list failed: %s", exc)
            return []

        events: list[NormalizedEvent] = []
        for item in listing.items:
            try:
                event = parse_payload(CalendarEvent, item)
            except MalformedUpstreamData as exc:
                logger.warning("Skipping calendar event: %s", exc)
                continue
            normalized = normalize_event(event)
            if normalized is not None:
                events.append(normalized)
        logger.info("Fetched %s calendar events.", len(events))
        return events


def local_day_window(now: datetime) -> tuple[datetime, datetime]:
    """Summary: Return local midnight and the following midnight for a wall-clock time.

    Importance: Each bound gets its own UTC offset, so DST-transition days span 23 or 25 hours.
    Alternatives: Reuse the offset of the current time for both bounds.
    """

    day = now.date()
    next_day = day + timedelta(days=1)
    if now.tzinfo is None:
        return (
            datetime.combine(day, time.min).astimezone(),
            datetime.combine(next_day, time.min).astimezone(),
        )
    return (
        datetime.combine(day, time.min, tzinfo=now.tzinfo),
        datetime.combine(next_day, time.min, tzinfo=now.tzinfo),
    )


def normalize_event(event: CalendarEvent) -> NormalizedEvent | None:
    """Summary: Map a Calendar API event into a NormalizedEvent.

    Importance: Untitled events are dropped since they carry nothing a reader can act on.
    Alternatives: Substitute a placeholder title.
    """

    if not event.summary:
        return None
    return NormalizedEvent(
        id=event.id,
        title=event.summary,
        description=event.description or None,
        start=event.start.date_time or event.start.date or "",
        end=event.end.date_time or event.end.date or "",
        is_all_day=not event.start.date_time,
        location=event.location or None,
        meet_link=_video_link(event),
        attendees=tuple(
            Attendee(
                name=attendee.display_name or local_part(attendee.email),
                email=attendee.email,
                response_status=attendee.response_status,
            )
            for attendee in event.attendees
            if not attendee.is_self
        ),
        organizer=(
            Organizer(
                name=event.organizer.display_name or local_part(event.organizer.email),
                email=event.organizer.email,
                is_self=event.organizer.is_self,
            )
            if event.organizer
            else None
        ),
    )


def _video_link(event: CalendarEvent) -> str | None:
    if event.hangout_link:
        return event.hangout_link
    if event.conference_data:
        for entry_point in event.conference_data.entry_points:
            if entry_point.entry_point_type == VIDEO_ENTRY_POINT:
                return entry_point.uri or None
    return None
