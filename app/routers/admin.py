# File: app/routers/admin.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.core.security import require_admin
from app.schemas.admin import AdminActionsPage, StatusSummaryOut
from app.services import admin as admin_service

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/actions", response_model=AdminActionsPage)
def list_actions(
    db: Session = Depends(get_db),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
):
    rows, total = admin_service.list_actions(db, offset=offset, limit=limit)
    return {"items": rows, "total": total, "offset": offset, "limit": limit}


@router.get("/summary", response_model=StatusSummaryOut)
def summary(db: Session = Depends(get_db)):
    return admin_service.status_summary(db)
