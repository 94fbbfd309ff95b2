# File: app/services/issues.py
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import ensure_profile
from app.models.issue import Issue, IssueStatus
from app.schemas.issue import CATEGORY_VALUES
from app.services.storage import ALLOWED, StorageError, content_type_for, make_object_key, upload_image

logger = logging.getLogger(__name__)

TITLE_MIN = 5
TITLE_MAX = 100
DESCRIPTION_MAX = 500


class IssueValidationError(Exception):
    def __init__(self, title: str, message: str):
        super().__init__(message)
        self.title = title
        self.message = message


@dataclass
class Photo:
    """A captured or picked image as received from the client."""
    data: bytes
    filename: str = "upload.jpg"
    content_type: Optional[str] = None


def validate_issue(title: Optional[str], description: Optional[str], category: Optional[str],
                   latitude: Optional[float], longitude: Optional[float]) -> None:
    title = (title or "").strip()
    description = (description or "").strip()
    if not title:
        raise IssueValidationError("Missing Title", "Please enter a title for the issue.")
    if len(title) < TITLE_MIN:
        raise IssueValidationError("Title Too Short", f"Title must be at least {TITLE_MIN} characters.")
    if len(title) > TITLE_MAX:
        raise IssueValidationError("Title Too Long", f"Title must be at most {TITLE_MAX} characters.")
    if not description:
        raise IssueValidationError("Missing Description", "Please enter a description.")
    if len(description) > DESCRIPTION_MAX:
        raise IssueValidationError("Description Too Long", f"Description must be at most {DESCRIPTION_MAX} characters.")
    if latitude is None or longitude is None:
        raise IssueValidationError("Missing Location", "Please select a location on the map or use current location.")
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        raise IssueValidationError("Invalid Location", "Location coordinates are out of range.")
    if not category:
        raise IssueValidationError("Missing Category", "Please select a category.")
    if category not in CATEGORY_VALUES:
        raise IssueValidationError("Unknown Category", f"Unknown category: {category}")


def validate_photo(photo: Photo) -> str:
    content_type = photo.content_type or content_type_for(photo.filename)
    if content_type not in ALLOWED:
        raise IssueValidationError("Unsupported Image", "Unsupported image type")
    if not photo.data:
        raise IssueValidationError("Empty Image", "The selected image is empty")
    if len(photo.data) > settings.max_image_bytes:
        limit_mb = settings.max_image_bytes // (1024 * 1024)
        raise IssueValidationError("Image Too Large", f"Image exceeds {limit_mb}MB")
    return content_type


def create_issue(db: Session, user_id: str, title: str, description: str, category: str,
                 latitude: Optional[float], longitude: Optional[float],
                 photo: Optional[Photo] = None) -> Issue:
    """
    Validate, upload the optional photo, then insert the issue row.

    Nothing is uploaded or written when validation fails; nothing is written
    when the upload fails (StorageError propagates).
    """
    validate_issue(title, description, category, latitude, longitude)
    content_type = validate_photo(photo) if photo else None

    image_url = None
    if photo:
        key = make_object_key(photo.filename)
        try:
            image_url = upload_image(photo.data, content_type, key)
        except StorageError:
            logger.warning(f"Issue submission by {user_id} aborted: image upload failed")
            raise

    ensure_profile(db, user_id)
    obj = Issue(
        user_id=user_id,
        title=title.strip(),
        description=description.strip(),
        category=category,
        image_url=image_url,
        latitude=latitude,
        longitude=longitude,
        upvotes=0,
        status=IssueStatus.open,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info(f"Issue {obj.id} created by {user_id}")
    return obj
