# File: app/services/realtime.py
"""
Change stream for the `issues` table.

Issue rows written through any SQLAlchemy session are collected at flush time
and published once the surrounding transaction commits, in the same shape as a
postgres_changes payload: {"eventType", "table", "new", "old"}. Rolled back
transactions publish nothing.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from app.models.issue import Issue

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

_PENDING_KEY = "issue_changes"

Subscriber = Callable[[dict], None]


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def row_payload(obj: Issue) -> dict:
    """Loaded column values only; reading unloaded attributes here would emit SQL mid-flush."""
    state = inspect(obj)
    loaded = state.dict
    row = {}
    for attr in state.mapper.column_attrs:
        if attr.key in loaded:
            row[attr.key] = _jsonable(loaded[attr.key])
    if state.identity:
        row["id"] = state.identity[0]
    return row


class ChangeBroker:
    """Fan-out of committed issue changes to in-process subscribers."""

    def __init__(self):
        self._subscribers: Dict[int, Subscriber] = {}
        self._lock = threading.Lock()
        self._next_id = 0

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._next_id += 1
            token = self._next_id
            self._subscribers[token] = callback

        def _unsubscribe():
            with self._lock:
                self._subscribers.pop(token, None)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, change: dict) -> None:
        with self._lock:
            callbacks = list(self._subscribers.values())
        for callback in callbacks:
            try:
                callback(change)
            except Exception as e:
                logger.error(f"Realtime subscriber failed: {e}", exc_info=True)


broker = ChangeBroker()


@event.listens_for(Session, "after_flush")
def _collect_issue_changes(session, flush_context):
    pending: List[dict] = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        if isinstance(obj, Issue):
            pending.append({"eventType": INSERT, "table": "issues", "new": row_payload(obj), "old": {}})
    for obj in session.dirty:
        if isinstance(obj, Issue) and session.is_modified(obj, include_collections=False):
            pending.append({"eventType": UPDATE, "table": "issues", "new": row_payload(obj), "old": {"id": inspect(obj).identity[0]}})
    for obj in session.deleted:
        if isinstance(obj, Issue):
            pending.append({"eventType": DELETE, "table": "issues", "new": {}, "old": {"id": inspect(obj).identity[0]}})


@event.listens_for(Session, "after_commit")
def _publish_issue_changes(session):
    pending = session.info.pop(_PENDING_KEY, [])
    for change in pending:
        broker.publish(change)


@event.listens_for(Session, "after_rollback")
def _discard_issue_changes(session):
    session.info.pop(_PENDING_KEY, None)
