"""Summary: Partial-optional schemas for provider payloads.

Importance: Validates and defaults Gmail, Calendar, and token-endpoint responses at the boundary.
Alternatives: Read nested dictionaries with .get() chains inside business logic.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from focusboard.errors import MalformedUpstreamData


class ProviderModel(BaseModel):
    """Summary: Base schema that tolerates unknown provider fields.

    Importance: Providers add fields over time; only the ones we read are validated.
    Alternatives: Use strict models and break on every API addition.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TokenResponse(ProviderModel):
    """Summary: OAuth token endpoint response."""

    access_token: str
    expires_in: int | None = None
    refresh_token: str | None = None
    token_type: str | None = None
    scope: str | None = None


class GmailHeader(ProviderModel):
    name: str = ""
    value: str = ""


class GmailBody(ProviderModel):
    data: str | None = None
    size: int = 0


class GmailPart(ProviderModel):
    """Summary: A MIME part of a Gmail payload, possibly containing sub-parts.

    Importance: Mirrors the recursive multipart structure used by body extraction.
    Alternatives: Walk raw dictionaries recursively.
    """

    mime_type: str = Field(default="", alias="mimeType")
    headers: list[GmailHeader] = Field(default_factory=list)
    body: GmailBody = Field(default_factory=GmailBody)
    parts: list[GmailPart] = Field(default_factory=list)

    def header(self, name: str) -> str | None:
        """Summary: Return the first header value matching a name case-insensitively.

        Importance: Gmail header casing varies between senders.
        Alternatives: Build a dictionary keyed by exact header names.
        """

        wanted = name.lower()
        for header in self.headers:
            if header.name.lower() == wanted and header.value:
                return header.value
        return None


GmailPart.model_rebuild()


class GmailMessageRef(ProviderModel):
    id: str
    thread_id: str = Field(default="", alias="threadId")


class GmailMessageList(ProviderModel):
    messages: list[GmailMessageRef] = Field(default_factory=list)
    result_size_estimate: int = Field(default=0, alias="resultSizeEstimate")


class GmailMessage(ProviderModel):
    """Summary: A Gmail message in metadata or full format."""

    id: str
    thread_id: str = Field(default="", alias="threadId")
    label_ids: list[str] = Field(default_factory=list, alias="labelIds")
    snippet: str = ""
    internal_date: str | None = Field(default=None, alias="internalDate")
    payload: GmailPart = Field(default_factory=GmailPart)


class GmailThread(ProviderModel):
    id: str = ""
    messages: list[GmailMessage] = Field(default_factory=list)


class EventTime(ProviderModel):
    date_time: str | None = Field(default=None, alias="dateTime")
    date: str | None = None
    time_zone: str | None = Field(default=None, alias="timeZone")


class EntryPoint(ProviderModel):
    entry_point_type: str = Field(default="", alias="entryPointType")
    uri: str = ""


class ConferenceData(ProviderModel):
    entry_points: list[EntryPoint] = Field(default_factory=list, alias="entryPoints")


class EventAttendee(ProviderModel):
    display_name: str | None = Field(default=None, alias="displayName")
    email: str = ""
    response_status: str = Field(default="needsAction", alias="responseStatus")
    is_self: bool = Field(default=False, alias="self")


class EventOrganizer(ProviderModel):
    display_name: str | None = Field(default=None, alias="displayName")
    email: str = ""
    is_self: bool = Field(default=False, alias="self")


class CalendarEvent(ProviderModel):
    """Summary: A Google Calendar event with only the fields the dashboard reads."""

    id: str = ""
    summary: str | None = None
    description: str | None = None
    start: EventTime = Field(default_factory=EventTime)
    end: EventTime = Field(default_factory=EventTime)
    location: str | None = None
    hangout_link: str | None = Field(default=None, alias="hangoutLink")
    conference_data: ConferenceData | None = Field(default=None, alias="conferenceData")
    attendees: list[EventAttendee] = Field(default_factory=list)
    organizer: EventOrganizer | None = None


class CalendarEventList(ProviderModel):
    items: list[dict[str, Any]] = Field(default_factory=list)


ModelT = TypeVar("ModelT", bound=ProviderModel)


def parse_payload(model: type[ModelT], payload: Any) -> ModelT:
    """Summary: Validate a provider payload against a schema.

    Importance: Converts pydantic validation failures into the domain error type.
    Alternatives: Let ValidationError propagate to callers.
    """

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise MalformedUpstreamData(
            f"Unexpected {model.__name__} payload: {exc.error_count()} validation errors"
        ) from exc
