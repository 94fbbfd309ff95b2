# File: app/routers/profile.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.core.security import AuthUser, ensure_profile, get_current_user, get_profile
from app.models.profile import Profile
from app.schemas.profile import ProfileOut, ProfileUpdate

router = APIRouter(prefix="/profile", tags=["profile"])


def _profile_out(user: AuthUser, profile: Profile | None) -> dict:
    is_admin = bool(profile and profile.is_admin)
    return {
        "id": user.id,
        "email": user.email,
        "display_name": (profile.full_name if profile else None) or user.email or "",
        "full_name": profile.full_name if profile else None,
        "username": profile.username if profile else None,
        "avatar_url": profile.avatar_url if profile else None,
        "is_admin": is_admin,
        "role_label": "Administrator" if is_admin else "Resident",
    }


@router.get("/me", response_model=ProfileOut)
def me(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return _profile_out(user, get_profile(db, user.id))


@router.put("/me", response_model=ProfileOut)
def update_me(
    body: ProfileUpdate,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    profile = ensure_profile(db, user.id)
    # is_admin is never writable from here
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(profile, key, value.strip() if isinstance(value, str) else value)
    db.commit()
    db.refresh(profile)
    return _profile_out(user, profile)
