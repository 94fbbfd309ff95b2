from pydantic import BaseModel
from typing import Optional, Literal, List
from datetime import datetime

Status = Literal["open", "in_progress", "resolved", "closed"]

CATEGORIES = [
    {"label": "Road Issue", "value": "road"},
    {"label": "Waste Management", "value": "waste"},
    {"label": "Water Supply", "value": "water"},
    {"label": "Electricity", "value": "electricity"},
    {"label": "Public Safety", "value": "safety"},
    {"label": "Infrastructure", "value": "infrastructure"},
    {"label": "Other", "value": "other"},
]
DEFAULT_CATEGORY = "general"
CATEGORY_VALUES = {c["value"] for c in CATEGORIES} | {DEFAULT_CATEGORY}


class IssueOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    status: Status
    status_label: str

    image_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    upvotes: int = 0

    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    posted: Optional[str] = None

    # embedded author profile
    author_name: str = "Anonymous"
    author_avatar: Optional[str] = None


class IssueDetailOut(IssueOut):
    """Detail view; `actions` lists what the viewer may do with the issue."""
    actions: List[str] = []


class MapMarker(BaseModel):
    id: int
    title: str
    status: Status
    latitude: float
    longitude: float


class FeedPageOut(BaseModel):
    view: Literal["list", "map"] = "list"
    items: List[IssueOut] = []
    markers: List[MapMarker] = []
    total: int
    page: int
    page_size: int
    has_more: bool


class IssueStatusPatch(BaseModel):
    status: Status


class VoteSummaryOut(BaseModel):
    issue_id: int
    upvotes: int
    downvotes: int
    score: int
    user_vote: Optional[int] = None


class CategoryOut(BaseModel):
    label: str
    value: str
