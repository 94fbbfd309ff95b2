# File: app/routers/issues.py
from fastapi import APIRouter, Depends, Query, HTTPException, UploadFile, File, Request, Form
from sqlalchemy.orm import Session
from typing import List, Literal, Optional
from app.db.session import get_db
from app.models.issue import IssueStatus
from app.models.vote import UPVOTE, DOWNVOTE
from app.schemas.issue import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    CategoryOut,
    FeedPageOut,
    IssueDetailOut,
    IssueOut,
    IssueStatusPatch,
    VoteSummaryOut,
)
from app.core.ratelimit import limiter
from app.core.security import AuthUser, get_current_user, get_optional_user, is_admin, require_admin
from app.services import admin as admin_service
from app.services import feed as feed_service
from app.services import votes as vote_service
from app.services.issues import IssueValidationError, Photo, create_issue as create_issue_row
from app.services.storage import ALLOWED, StorageError

router = APIRouter(prefix="/issues", tags=["issues"])


def _issue_or_404(db: Session, issue_id: int) -> dict:
    row = feed_service.get_issue_row(db, issue_id)
    if not row:
        raise HTTPException(status_code=404, detail="Issue not found")
    return row


@router.get("/categories", response_model=List[CategoryOut])
def list_categories():
    return CATEGORIES


@router.get("", response_model=FeedPageOut)
@limiter.limit("30/minute")
def list_issues(
    request: Request,
    db: Session = Depends(get_db),
    page: int = Query(default=0, ge=0),
    view: Literal["list", "map"] = Query(default="list"),
):
    result = feed_service.fetch_page(db, page)
    out = {
        "view": view,
        "total": result.total,
        "page": result.page,
        "page_size": result.page_size,
        "has_more": result.has_more,
    }
    if view == "map":
        out["markers"] = feed_service.to_markers(result.items)
    else:
        out["items"] = result.items
    return out


@router.post("", response_model=IssueOut, status_code=201)
@limiter.limit("10/minute")
def create_issue(
    request: Request,
    title: str = Form(""),
    description: str = Form(""),
    category: str = Form(DEFAULT_CATEGORY),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    photo: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
):
    image = None
    if photo is not None and photo.filename:
        image = Photo(
            data=photo.file.read(),
            filename=photo.filename,
            content_type=photo.content_type if photo.content_type in ALLOWED else None,
        )
    try:
        obj = create_issue_row(
            db,
            user_id=user.id,
            title=title,
            description=description,
            category=category,
            latitude=latitude,
            longitude=longitude,
            photo=image,
        )
    except IssueValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=f"Upload failed: {e}")
    return feed_service.get_issue_row(db, obj.id)


@router.get("/{issue_id}", response_model=IssueDetailOut)
def get_issue(
    issue_id: int,
    db: Session = Depends(get_db),
    current: Optional[AuthUser] = Depends(get_optional_user),
):
    row = _issue_or_404(db, issue_id)
    actions = []
    if current:
        actions += ["upvote", "downvote"]
        if is_admin(db, current.id):
            actions += [f"status:{s.value}" for s in IssueStatus if s.value != row["status"]]
            actions.append("delete")
    return {**row, "actions": actions}


@router.patch("/{issue_id}/status", response_model=IssueOut)
def update_status(
    issue_id: int,
    body: IssueStatusPatch,
    db: Session = Depends(get_db),
    admin: AuthUser = Depends(require_admin),
):
    try:
        admin_service.change_status(db, admin.id, issue_id, body.status)
    except LookupError:
        raise HTTPException(status_code=404, detail="Issue not found")
    return _issue_or_404(db, issue_id)


@router.delete("/{issue_id}")
def delete_issue(
    issue_id: int,
    db: Session = Depends(get_db),
    admin: AuthUser = Depends(require_admin),
):
    try:
        admin_service.delete_issue(db, admin.id, issue_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Issue not found")
    return {"ok": True}


def _vote(db: Session, user: Optional[AuthUser], issue_id: int, vote_type: int) -> dict:
    if user is None:
        raise HTTPException(status_code=401, detail="Please log in to vote")
    try:
        vote_service.cast_vote(db, user.id, issue_id, vote_type)
    except LookupError:
        raise HTTPException(status_code=404, detail="Issue not found")
    except vote_service.VoteRejected as e:
        raise HTTPException(status_code=409, detail=str(e))
    return vote_service.vote_summary(db, issue_id, user.id)


@router.post("/{issue_id}/upvote", response_model=VoteSummaryOut)
def upvote(issue_id: int, db: Session = Depends(get_db), user: Optional[AuthUser] = Depends(get_optional_user)):
    return _vote(db, user, issue_id, UPVOTE)


@router.post("/{issue_id}/downvote", response_model=VoteSummaryOut)
def downvote(issue_id: int, db: Session = Depends(get_db), user: Optional[AuthUser] = Depends(get_optional_user)):
    return _vote(db, user, issue_id, DOWNVOTE)


@router.get("/{issue_id}/votes", response_model=VoteSummaryOut)
def get_votes(
    issue_id: int,
    db: Session = Depends(get_db),
    current: Optional[AuthUser] = Depends(get_optional_user),
):
    _issue_or_404(db, issue_id)
    return vote_service.vote_summary(db, issue_id, current.id if current else None)
