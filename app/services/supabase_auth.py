# File: app/services/supabase_auth.py
"""
Thin REST client for Supabase Auth (GoTrue).

Sign-up, password sign-in, token refresh and sign-out are performed by the
hosted auth service; this module only forwards the calls and normalises the
error messages it returns.
"""
import logging
from typing import Optional

import requests
from app.core.config import settings

logger = logging.getLogger(__name__)

TIMEOUT = 15


class AuthError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _headers(access_token: Optional[str] = None) -> dict:
    key = settings.supabase_anon_key or ""
    return {
        "apikey": key,
        "Authorization": f"Bearer {access_token or key}",
        "Content-Type": "application/json",
    }


def _url(path: str) -> str:
    if not settings.supabase_url:
        raise AuthError("Authentication service is not configured", status_code=503)
    return f"{settings.supabase_url}/auth/v1/{path}"


def _error_message(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or "Authentication failed"
    return (
        body.get("msg")
        or body.get("error_description")
        or body.get("message")
        or body.get("error")
        or "Authentication failed"
    )


def _post(path: str, payload: Optional[dict] = None, access_token: Optional[str] = None) -> dict:
    try:
        resp = requests.post(_url(path), json=payload or {}, headers=_headers(access_token), timeout=TIMEOUT)
    except requests.RequestException as e:
        logger.error(f"Auth request to {path} failed: {e}", exc_info=True)
        raise AuthError("Authentication service unavailable", status_code=503) from e
    if resp.status_code >= 400:
        raise AuthError(_error_message(resp), status_code=resp.status_code)
    if resp.status_code == 204 or not resp.content:
        return {}
    return resp.json()


def sign_up(email: str, password: str, full_name: str) -> dict:
    """Returns the created user; `user` is nested when a session is issued immediately."""
    data = _post("signup", {"email": email, "password": password, "data": {"full_name": full_name}})
    return data.get("user") or data


def sign_in_with_password(email: str, password: str) -> dict:
    return _post("token?grant_type=password", {"email": email, "password": password})


def refresh_session(refresh_token: str) -> dict:
    return _post("token?grant_type=refresh_token", {"refresh_token": refresh_token})


def sign_out(access_token: str) -> None:
    _post("logout", access_token=access_token)
