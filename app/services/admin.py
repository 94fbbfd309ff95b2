# File: app/services/admin.py
"""Admin triage: status changes and deletes, each recorded in admin_actions."""

import logging
from typing import Dict, List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.admin_action import ActionType, AdminAction
from app.models.issue import Issue, IssueStatus
from app.models.vote import Vote

logger = logging.getLogger(__name__)

ISSUE_TARGET = "issue"


def _audit(db: Session, admin_id: str, action: ActionType, issue_id: int, details: dict) -> AdminAction:
    row = AdminAction(
        admin_id=admin_id,
        action_type=action.value,
        target_type=ISSUE_TARGET,
        target_id=str(issue_id),
        details=details,
    )
    db.add(row)
    return row


def change_status(db: Session, admin_id: str, issue_id: int, new_status: str) -> Issue:
    """
    Move an issue to any of the four statuses; transitions are unconstrained.

    Setting the status an issue already has changes nothing and writes no audit row.
    """
    status = IssueStatus(new_status)
    issue = db.query(Issue).filter(Issue.id == issue_id).first()
    if not issue:
        raise LookupError("Issue not found")

    old_status = issue.status
    if old_status == status:
        return issue

    issue.status = status
    _audit(db, admin_id, ActionType.status_change, issue.id, {
        "old_status": old_status.value if old_status else None,
        "new_status": status.value,
    })
    db.commit()
    db.refresh(issue)
    logger.info(f"Admin {admin_id} moved issue {issue_id} from {old_status} to {status.value}")
    return issue


def delete_issue(db: Session, admin_id: str, issue_id: int) -> None:
    issue = db.query(Issue).filter(Issue.id == issue_id).first()
    if not issue:
        raise LookupError("Issue not found")

    details = {"title": issue.title, "status": issue.status.value if issue.status else None}
    db.query(Vote).filter(Vote.issue_id == issue_id).delete(synchronize_session=False)
    db.delete(issue)
    _audit(db, admin_id, ActionType.delete_issue, issue_id, details)
    db.commit()
    logger.info(f"Admin {admin_id} deleted issue {issue_id}")


def list_actions(db: Session, offset: int = 0, limit: int = 50) -> Tuple[List[AdminAction], int]:
    q = db.query(AdminAction)
    total = q.count()
    rows = (
        q.order_by(AdminAction.created_at.desc(), AdminAction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total


def status_summary(db: Session) -> Dict[str, int]:
    counts = {s.value: 0 for s in IssueStatus}
    for status, n in db.query(Issue.status, func.count(Issue.id)).group_by(Issue.status):
        if status is not None:
            counts[status.value] = n
    return {"total": sum(counts.values()), **counts}
