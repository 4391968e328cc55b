"""Summary: FastAPI application for FocusBoard.

Importance: Exposes the calendar, email, and dashboard read endpoints used by the presentation layer.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

from focusboard.app import AppContext, build_context
from focusboard.config import AppConfig
from focusboard.errors import CredentialStoreUnavailable, FocusboardError, NoCredential, Unauthenticated
from focusboard.models import (
    Dashboard,
    NormalizedEvent,
    NormalizedMessage,
    PriorityTask,
    Sender,
    ThreadMessage,
)

logger = logging.getLogger(__name__)


def create_app(config: AppConfig, context: AppContext | None = None) -> FastAPI:
    """Summary: Create a FastAPI app wired to FocusBoard services.

    Importance: Ensures the API layer shares configuration, storage, and refresh locks.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="FocusBoard API", version="0.1.0")
    context = context or build_context(config)
    app.state.context = context

    @app.exception_handler(Unauthenticated)
    async def unauthenticated_handler(_request: Request, _exc: Unauthenticated) -> JSONResponse:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    @app.exception_handler(NoCredential)
    async def no_credential_handler(_request: Request, exc: NoCredential) -> JSONResponse:
        logger.info("Rejected request without usable credential: %s", exc)
        return JSONResponse(status_code=401, content={"error": "No access token"})

    @app.exception_handler(CredentialStoreUnavailable)
    async def store_unavailable_handler(
        _request: Request, exc: CredentialStoreUnavailable
    ) -> JSONResponse:
        logger.error("Credential store unavailable: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Credential store unavailable"})

    @app.exception_handler(FocusboardError)
    async def focusboard_error_handler(_request: Request, exc: FocusboardError) -> JSONResponse:
        logger.error("Unhandled FocusBoard error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    def current_user_id(
        authorization: str | None = Header(default=None),
        x_api_key: str | None = Header(default=None),
    ) -> int:
        """Summary: Resolve the calling user from a bearer or X-API-Key header.

        Importance: Stands in for the session-based identity boundary.
        Alternatives: Validate a signed session cookie.
        """

        token = x_api_key
        if authorization and authorization.lower().startswith("bearer "):
            token = authorization[len("bearer "):].strip()
        user_id = context.api_keys.resolve_user_id(token)
        if user_id is None:
            raise Unauthenticated("Missing or unknown API key")
        return user_id

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/calendar")
    def calendar(user_id: int = Depends(current_user_id)) -> Any:
        """Summary: Return today's normalized events.

        Importance: Feeds the meetings panel.
        Alternatives: Merge meetings into the email response.
        """

        services = context.services_for_user(user_id)
        try:
            events = services.dashboard.todays_events()
        except NoCredential:
            raise
        except Exception:
            logger.exception("Calendar API error for user %s", user_id)
            return _server_error("Failed to fetch calendar")
        return {"meetings": [event_payload(event) for event in events]}

    @app.get("/api/emails")
    def emails(
        thread_id: str | None = Query(default=None, alias="threadId"),
        user_id: int = Depends(current_user_id),
    ) -> Any:
        """Summary: Return important messages, or one expanded thread when threadId is given.

        Importance: One endpoint serves both the priorities list and the thread drawer.
        Alternatives: Split thread expansion into its own route.
        """

        services = context.services_for_user(user_id)
        try:
            if thread_id:
                messages = services.dashboard.thread(thread_id)
                return {"messages": [thread_message_payload(item) for item in messages]}
            important = services.dashboard.important_messages()
        except NoCredential:
            raise
        except Exception:
            logger.exception("Email API error for user %s", user_id)
            return _server_error("Failed to fetch emails")
        return {"emails": [message_payload(message) for message in important]}

    @app.get("/api/dashboard")
    def dashboard(user_id: int = Depends(current_user_id)) -> Any:
        """Summary: Return ranked tasks, today's meetings, and the attention summary."""

        services = context.services_for_user(user_id)
        try:
            loaded = services.dashboard.load()
        except NoCredential:
            raise
        except Exception:
            logger.exception("Dashboard API error for user %s", user_id)
            return _server_error("Failed to load dashboard")
        return dashboard_payload(loaded)

    return app


def build_app() -> FastAPI:
    """Summary: Build the app from environment configuration.

    Importance: Entry point for `uvicorn --factory focusboard.api:build_app`.
    Alternatives: Create a module-level app at import time.
    """

    return create_app(AppConfig.from_env())


def _server_error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message})


def sender_payload(sender: Sender) -> dict[str, str]:
    return {"name": sender.name, "email": sender.email}


def message_payload(message: NormalizedMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "threadId": message.thread_id,
        "subject": message.subject,
        "snippet": message.snippet,
        "from": sender_payload(message.sender),
        "date": message.timestamp.isoformat(),
        "isUnread": message.is_unread,
        "labels": list(message.labels),
    }


def thread_message_payload(message: ThreadMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "from": sender_payload(message.sender),
        "date": message.timestamp.isoformat(),
        "body": message.body,
    }


def event_payload(event: NormalizedEvent) -> dict[str, Any]:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "start": event.start,
        "end": event.end,
        "isAllDay": event.is_all_day,
        "location": event.location,
        "meetLink": event.meet_link,
        "attendees": [
            {
                "name": attendee.name,
                "email": attendee.email,
                "responseStatus": attendee.response_status,
            }
            for attendee in event.attendees
        ],
        "organizer": (
            {
                "name": event.organizer.name,
                "email": event.organizer.email,
                "self": event.organizer.is_self,
            }
            if event.organizer
            else None
        ),
    }


def task_payload(task: PriorityTask) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "source": task.source,
        "urgency": task.urgency,
        "sender": task.sender.name,
        "senderEmail": task.sender.email,
        "timestamp": task.display_time,
        "date": task.timestamp.isoformat(),
        "threadId": task.thread_id,
    }


def dashboard_payload(dashboard: Dashboard) -> dict[str, Any]:
    return {
        "tasks": [task_payload(task) for task in dashboard.tasks],
        "meetings": [event_payload(event) for event in dashboard.meetings],
        "attentionCount": dashboard.attention_count,
        "summary": dashboard.summary,
    }
