# File: app/routers/auth.py

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.models.profile import Profile
from app.schemas.auth import SignupIn, LoginIn, RefreshIn, TokenPair, SignupOut, SessionOut
from app.core.security import bearer
from app.services import supabase_auth
from app.services.session_gate import SessionGate

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_pair(data: dict) -> dict:
    user = data.get("user") or {}
    return {
        "access_token": data.get("access_token", ""),
        "refresh_token": data.get("refresh_token", ""),
        "token_type": data.get("token_type", "bearer"),
        "expires_in": int(data.get("expires_in") or 0),
        "user_id": user.get("id", ""),
    }


@router.post("/signup", response_model=SignupOut, status_code=201)
def signup(body: SignupIn, db: Session = Depends(get_db)):
    full_name = body.full_name.strip()
    if not full_name:
        raise HTTPException(status_code=400, detail="Enter your full name")
    try:
        user = supabase_auth.sign_up(body.email, body.password, full_name)
    except supabase_auth.AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    user_id = user.get("id")
    if user_id:
        # create profile row
        db.merge(Profile(id=user_id, full_name=full_name))
        db.commit()
    return {
        "ok": True,
        "user_id": user_id,
        "message": "Account created. Check email if confirmation is required.",
    }


@router.post("/login", response_model=TokenPair)
def login(body: LoginIn):
    try:
        data = supabase_auth.sign_in_with_password(body.email, body.password)
    except supabase_auth.AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _token_pair(data)


@router.post("/refresh", response_model=TokenPair)
def refresh(body: RefreshIn):
    try:
        data = supabase_auth.refresh_session(body.refresh_token)
    except supabase_auth.AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return _token_pair(data)


@router.post("/logout")
def logout(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)):
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        supabase_auth.sign_out(creds.credentials)
    except supabase_auth.AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"ok": True}


@router.get("/session", response_model=SessionOut)
def session(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
):
    return SessionGate().start(db, creds.credentials if creds else None)
