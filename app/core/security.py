# app/core/security.py
from dataclasses import dataclass, field
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import jwt
from sqlalchemy.orm import Session
from app.core.config import settings
from app.db.session import get_db
from app.models.profile import Profile

ALGO = "HS256"
AUDIENCE = "authenticated"
bearer = HTTPBearer(auto_error=False)


class TokenError(Exception):
    pass


@dataclass
class AuthUser:
    """The signed-in user as described by a Supabase access token."""
    id: str
    email: Optional[str] = None
    expires_at: Optional[int] = None
    claims: dict = field(default_factory=dict)


def decode_access_token(token: str) -> AuthUser:
    try:
        payload = jwt.decode(token, settings.supabase_jwt_secret, algorithms=[ALGO], audience=AUDIENCE)
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except jwt.PyJWTError:
        raise TokenError("Invalid token")
    sub = payload.get("sub")
    if not sub:
        raise TokenError("Invalid token payload")
    return AuthUser(id=sub, email=payload.get("email"), expires_at=payload.get("exp"), claims=payload)


def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> AuthUser:
    if not creds:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        return decode_access_token(creds.credentials)
    except TokenError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


def get_optional_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> Optional[AuthUser]:
    if not creds:
        return None
    try:
        return decode_access_token(creds.credentials)
    except TokenError:
        return None


def get_profile(db: Session, user_id: Optional[str]) -> Optional[Profile]:
    if not user_id:
        return None
    return db.query(Profile).filter(Profile.id == user_id).first()


def ensure_profile(db: Session, user_id: str, full_name: Optional[str] = None) -> Profile:
    """Profile row for an authenticated user, created when signup never wrote one."""
    profile = get_profile(db, user_id)
    if profile is None:
        profile = Profile(id=user_id, full_name=full_name)
        db.add(profile)
        db.flush()
    return profile


def is_admin(db: Session, user_id: Optional[str]) -> bool:
    profile = get_profile(db, user_id)
    return bool(profile and profile.is_admin)


def require_admin(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)) -> AuthUser:
    if not is_admin(db, user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
