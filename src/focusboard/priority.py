"""Summary: Merges ranked messages and today's events into the dashboard payload.

Importance: Assigns positional urgency tiers and the attention summary shown in the header.
Alternatives: Let the presentation layer derive tiers from raw scores.
"""

from __future__ import annotations

from datetime import datetime, timezone

from focusboard.models import Dashboard, NormalizedEvent, NormalizedMessage, PriorityTask

HIGH_URGENCY_SLOTS = 2
MEDIUM_URGENCY_SLOTS = 3
EMAIL_SOURCE = "email"


def urgency_for_rank(index: int) -> str:
    """Summary: Map a zero-based rank to an urgency tier.

    Importance: Tiers follow position in the ranked list, not the intrinsic score.
    Alternatives: Bucket by priority score thresholds.
    """

    if index < HIGH_URGENCY_SLOTS:
        return "high"
    if index < HIGH_URGENCY_SLOTS + MEDIUM_URGENCY_SLOTS:
        return "medium"
    return "low"


def build_tasks(messages: list[NormalizedMessage], now: datetime | None = None) -> list[PriorityTask]:
    """Summary: Map ranked messages 1:1 into dashboard tasks, preserving order."""

    reference = now or datetime.now(timezone.utc)
    return [
        PriorityTask(
            id=message.id,
            title=message.subject,
            description=message.snippet,
            source=EMAIL_SOURCE,
            urgency=urgency_for_rank(index),
            sender=message.sender,
            timestamp=message.timestamp,
            display_time=format_relative_time(message.timestamp, reference),
            thread_id=message.thread_id,
        )
        for index, message in enumerate(messages)
    ]


def build_dashboard(
    messages: list[NormalizedMessage],
    events: list[NormalizedEvent],
    now: datetime | None = None,
) -> Dashboard:
    """Summary: Combine tasks and meetings into one dashboard payload.

    Importance: Meetings stay a separate list but count toward the attention total.
    Alternatives: Interleave meetings into the ranked task list.
    """

    tasks = build_tasks(messages, now)
    return Dashboard(
        tasks=tuple(tasks),
        meetings=tuple(events),
        summary=attention_summary(len(tasks), len(events)),
    )


def attention_summary(task_count: int, meeting_count: int) -> str:
    parts: list[str] = []
    if task_count > 0:
        parts.append(f"{task_count} email{'' if task_count == 1 else 's'}")
    if meeting_count > 0:
        parts.append(f"{meeting_count} meeting{'' if meeting_count == 1 else 's'}")
    if not parts:
        return "No items requiring attention today"
    return f"You have {' and '.join(parts)} needing your attention"


def format_relative_time(timestamp: datetime, now: datetime) -> str:
    """Summary: Format a timestamp relative to now for compact display.

    Importance: Task rows show "5m ago" style hints instead of full dates.
    Alternatives: Send ISO timestamps and format on the client.
    """

    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    seconds = (now - timestamp).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days}d ago"
    return f"{timestamp.strftime('%b')} {timestamp.day}"
