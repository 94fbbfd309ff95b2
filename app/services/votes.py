# File: app/services/votes.py
"""
Vote Service - upvote/downvote on issues.

One vote row per (user, issue) is kept by reading before writing; the
issue's `upvotes` column is recomputed from every vote row after each change.
"""

import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from app.core.security import ensure_profile
from app.models.issue import Issue
from app.models.vote import DOWNVOTE, UPVOTE, Vote

logger = logging.getLogger(__name__)

VOTE_NAMES = {UPVOTE: "upvoted", DOWNVOTE: "downvoted"}


class VoteRejected(Exception):
    pass


def cast_vote(db: Session, user_id: str, issue_id: int, vote_type: int) -> int:
    """
    Record `vote_type` (+1/-1) from `user_id` and return the new tally.

    Raises:
        ValueError: vote_type is not +1 or -1
        LookupError: the issue does not exist
        VoteRejected: the user already voted the same way
    """
    if vote_type not in (UPVOTE, DOWNVOTE):
        raise ValueError("vote_type must be 1 or -1")
    if not db.query(Issue.id).filter(Issue.id == issue_id).first():
        raise LookupError("Issue not found")

    existing = (
        db.query(Vote)
        .filter(Vote.user_id == user_id, Vote.issue_id == issue_id)
        .first()
    )
    if existing and existing.vote_type == vote_type:
        raise VoteRejected(f"You've already {VOTE_NAMES[vote_type]} this issue")

    if existing:
        existing.vote_type = vote_type
    else:
        ensure_profile(db, user_id)
        db.add(Vote(user_id=user_id, issue_id=issue_id, vote_type=vote_type))
    db.commit()

    return recompute_tally(db, issue_id)


def tally_votes(db: Session, issue_id: int) -> Dict[str, int]:
    up = down = 0
    for (vote_type,) in db.query(Vote.vote_type).filter(Vote.issue_id == issue_id):
        if vote_type == UPVOTE:
            up += 1
        elif vote_type == DOWNVOTE:
            down += 1
    return {"upvotes": up, "downvotes": down, "score": up - down}


def recompute_tally(db: Session, issue_id: int) -> int:
    """Scans every vote of the issue and writes the signed total back onto the issue row."""
    score = tally_votes(db, issue_id)["score"]
    issue = db.query(Issue).filter(Issue.id == issue_id).first()
    if issue is None:
        logger.warning(f"Issue {issue_id} disappeared before its tally was stored")
        return score
    issue.upvotes = score
    db.commit()
    return score


def vote_summary(db: Session, issue_id: int, user_id: Optional[str] = None) -> Dict:
    summary = tally_votes(db, issue_id)
    user_vote = None
    if user_id:
        mine = (
            db.query(Vote.vote_type)
            .filter(Vote.user_id == user_id, Vote.issue_id == issue_id)
            .first()
        )
        user_vote = mine[0] if mine else None
    return {"issue_id": issue_id, **summary, "user_vote": user_vote}
