# File: app/schemas/admin.py
from datetime import datetime
from pydantic import BaseModel


class AdminActionOut(BaseModel):
    id: int
    admin_id: str
    action_type: str
    target_type: str
    target_id: str
    details: dict | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class AdminActionsPage(BaseModel):
    items: list[AdminActionOut]
    total: int
    offset: int
    limit: int


class StatusSummaryOut(BaseModel):
    total: int
    open: int
    in_progress: int
    resolved: int
    closed: int
