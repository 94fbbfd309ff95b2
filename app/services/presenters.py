# File: app/services/presenters.py
"""Display helpers shared by the feed, detail view and realtime stream."""
from datetime import datetime, timezone
from typing import Optional

from app.models.issue import Issue, IssueStatus

STATUS_LABELS = {
    "open": "OPEN",
    "in_progress": "IN PROGRESS",
    "resolved": "RESOLVED",
    "closed": "CLOSED",
}


def status_value(status) -> str:
    return status.value if isinstance(status, IssueStatus) else str(status)


def status_label(status) -> str:
    if status is None:
        return STATUS_LABELS["open"]
    return STATUS_LABELS.get(status_value(status).lower(), STATUS_LABELS["open"])


def relative_time(when: Optional[datetime], now: Optional[datetime] = None) -> Optional[str]:
    """"Just now" / "12m ago" / "3h ago" / "2d ago", then the plain date."""
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    minutes = int((now - when).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if minutes < 24 * 60:
        return f"{minutes // 60}h ago"
    if minutes < 7 * 24 * 60:
        return f"{minutes // (24 * 60)}d ago"
    return when.date().isoformat()


def author_name(username: Optional[str], full_name: Optional[str] = None) -> str:
    return username or full_name or "Anonymous"


def issue_dict(issue: Issue, username=None, full_name=None, avatar_url=None) -> dict:
    status = status_value(issue.status) if issue.status is not None else "open"
    return {
        "id": issue.id,
        "title": issue.title,
        "description": issue.description,
        "category": issue.category,
        "status": status,
        "status_label": status_label(status),
        "image_url": issue.image_url,
        "latitude": issue.latitude,
        "longitude": issue.longitude,
        "upvotes": issue.upvotes or 0,
        "user_id": issue.user_id,
        "created_at": issue.created_at,
        "posted": relative_time(issue.created_at),
        "author_name": author_name(username, full_name),
        "author_avatar": avatar_url,
    }
