# File: app/services/feed.py
"""
Feed service - ranked, paginated issue listing and the client-side view state
that sits on top of it.

Issues are ordered by tally (upvotes desc) then recency (created_at desc) and
fetched with offset pagination. `FeedView` keeps the list the client is
rendering, appends pages on "load more", and folds realtime change events
into the list. `StatusWatcher` remembers the last seen status of the signed-in
user's issues so status changes can be announced.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, MutableMapping, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.issue import Issue
from app.models.profile import Profile
from app.services import presenters
from app.services.realtime import DELETE, INSERT, UPDATE

logger = logging.getLogger(__name__)

LIST = "list"
MAP = "map"


@dataclass
class FeedPage:
    items: List[dict]
    total: int
    page: int
    page_size: int

    @property
    def has_more(self) -> bool:
        # assumes every earlier page was fetched in full
        return self.page * self.page_size + len(self.items) < self.total


def page_size() -> int:
    return settings.feed_page_size


def fetch_page(db: Session, page: int = 0, size: Optional[int] = None) -> FeedPage:
    """One page of the feed with the author's profile embedded."""
    size = size or page_size()
    start = max(page, 0) * size

    total = db.query(func.count(Issue.id)).scalar() or 0
    rows = (
        db.query(Issue, Profile.username, Profile.full_name, Profile.avatar_url)
        .outerjoin(Profile, Profile.id == Issue.user_id)
        .order_by(Issue.upvotes.desc(), Issue.created_at.desc(), Issue.id.desc())
        .offset(start)
        .limit(size)
        .all()
    )
    items = [
        presenters.issue_dict(issue, username=username, full_name=full_name, avatar_url=avatar)
        for issue, username, full_name, avatar in rows
    ]
    return FeedPage(items=items, total=total, page=max(page, 0), page_size=size)


def get_issue_row(db: Session, issue_id: int) -> Optional[dict]:
    row = (
        db.query(Issue, Profile.username, Profile.full_name, Profile.avatar_url)
        .outerjoin(Profile, Profile.id == Issue.user_id)
        .filter(Issue.id == issue_id)
        .first()
    )
    if not row:
        return None
    issue, username, full_name, avatar = row
    return presenters.issue_dict(issue, username=username, full_name=full_name, avatar_url=avatar)


def to_markers(items: List[dict]) -> List[dict]:
    return [
        {
            "id": item["id"],
            "title": item["title"],
            "status": item["status"],
            "latitude": item["latitude"],
            "longitude": item["longitude"],
        }
        for item in items
        if item.get("latitude") is not None and item.get("longitude") is not None
    ]


def status_store_key(issue_id) -> str:
    return f"issue_status_{issue_id}"


@dataclass
class StatusAlert:
    issue_id: int
    title: str
    old_status: str
    new_status: str

    @property
    def message(self) -> str:
        return (
            f'Your issue "{self.title}" status changed from '
            f'"{self.old_status}" to "{self.new_status}"'
        )

    def as_dict(self) -> dict:
        return {
            "issue_id": self.issue_id,
            "title": self.title,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "message": self.message,
        }


class StatusWatcher:
    """Compares incoming issue rows against the last status stored for the user's issues."""

    def __init__(self, user_id: Optional[str], store: Optional[MutableMapping[str, str]] = None):
        self.user_id = user_id
        self.store: MutableMapping[str, str] = store if store is not None else {}

    def seed(self, db: Session) -> int:
        if not self.user_id:
            return 0
        rows = db.query(Issue.id, Issue.status).filter(Issue.user_id == self.user_id).all()
        for issue_id, status in rows:
            self.store[status_store_key(issue_id)] = presenters.status_value(status)
        return len(rows)

    def remember(self, row: dict) -> None:
        if self.user_id and row.get("user_id") == self.user_id and row.get("status"):
            self.store.setdefault(status_store_key(row["id"]), row["status"])

    def observe(self, row: dict) -> Optional[StatusAlert]:
        if not self.user_id or row.get("user_id") != self.user_id:
            return None
        new_status = row.get("status")
        key = status_store_key(row.get("id"))
        old_status = self.store.get(key)
        if old_status and new_status and old_status != new_status:
            self.store[key] = new_status
            return StatusAlert(
                issue_id=row["id"],
                title=row.get("title") or "",
                old_status=old_status,
                new_status=new_status,
            )
        return None


@dataclass
class FeedUpdate:
    """What a change event did to the view."""
    kind: str
    issue_id: Optional[int] = None
    alert: Optional[StatusAlert] = None
    items: List[dict] = field(default_factory=list)


class FeedView:
    """
    List/map feed state for one client.

    The view holds no session: every call that reads the database takes one,
    so a long-lived client never keeps a connection checked out.
    """

    def __init__(self, user_id: Optional[str] = None, size: Optional[int] = None,
                 store: Optional[MutableMapping[str, str]] = None):
        self.size = size or page_size()
        self.items: List[dict] = []
        self.page = 0
        self.total = 0
        self.has_more = True
        self.mode = LIST
        self.loading = False
        self.watcher = StatusWatcher(user_id, store)

    def start(self, db: Session) -> List[dict]:
        self.watcher.seed(db)
        return self.refresh(db)

    def refresh(self, db: Session) -> List[dict]:
        self._fetch(db, 0, append=False)
        self.page = 0
        return self.items

    def load_more(self, db: Session) -> List[dict]:
        """Appends the next page; returns only the newly fetched rows."""
        if self.loading or not self.has_more:
            return []
        before = len(self.items)
        next_page = self.page + 1
        self._fetch(db, next_page, append=True)
        self.page = next_page
        return self.items[before:]

    def set_mode(self, mode: str) -> None:
        if mode not in (LIST, MAP):
            raise ValueError(f"Unknown feed view mode: {mode}")
        self.mode = mode

    def markers(self) -> List[dict]:
        return to_markers(self.items)

    def render(self) -> dict:
        state = {"view": self.mode, "total": self.total, "page": self.page,
                 "page_size": self.size, "has_more": self.has_more}
        if self.mode == MAP:
            state["markers"] = self.markers()
        else:
            state["items"] = self.items
        return state

    def apply_change(self, db: Session, change: dict) -> FeedUpdate:
        kind = change.get("eventType")
        if kind == UPDATE:
            row = change.get("new") or {}
            alert = self.watcher.observe(row)
            self._merge(row)
            return FeedUpdate(kind=UPDATE, issue_id=row.get("id"), alert=alert)
        if kind in (INSERT, DELETE):
            if kind == INSERT:
                self.watcher.remember(change.get("new") or {})
            self.refresh(db)
            return FeedUpdate(kind=kind, items=self.items)
        logger.debug(f"Ignoring change event {kind!r}")
        return FeedUpdate(kind="ignored")

    def _merge(self, row: dict) -> None:
        issue_id = row.get("id")
        for i, item in enumerate(self.items):
            if item["id"] == issue_id:
                merged = {**item, **row}
                if "status" in row:
                    merged["status_label"] = presenters.status_label(row["status"])
                self.items[i] = merged

    def _fetch(self, db: Session, page: int, append: bool) -> None:
        # state is only touched once the page has been read
        self.loading = True
        try:
            result = fetch_page(db, page, self.size)
        finally:
            self.loading = False
        if append:
            self.items = self.items + result.items
        else:
            self.items = result.items
        self.total = result.total
        self.has_more = len(self.items) < self.total
