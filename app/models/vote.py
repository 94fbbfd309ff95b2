# File: app/models/vote.py
from __future__ import annotations
from sqlalchemy import Integer, String, ForeignKey, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base

UPVOTE = 1
DOWNVOTE = -1

class Vote(Base):
    __tablename__ = "votes"

    # no unique (user_id, issue_id): one vote per pair is kept by read-before-write
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), index=True)
    issue_id: Mapped[int] = mapped_column(Integer, ForeignKey("issues.id", ondelete="CASCADE"), index=True)
    vote_type: Mapped[int] = mapped_column(SmallInteger)
