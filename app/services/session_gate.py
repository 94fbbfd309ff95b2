# File: app/services/session_gate.py
"""
Session gate - decides between the login screens and the main tabs.

The gate follows a session token through its lifecycle: an initial fetch
(`start`) followed by change notifications (`change`). After every change the
signed-in user's profile is read again so the admin tab tracks `is_admin`;
the session to read it with is passed per call.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.core.security import AuthUser, TokenError, decode_access_token, get_profile

logger = logging.getLogger(__name__)

BASE_TABS = ["feed", "create", "profile"]
ADMIN_TAB = "admin"

INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"

Listener = Callable[[str, dict], None]


class SessionGate:

    def __init__(self):
        self.user: Optional[AuthUser] = None
        self.is_admin = False
        self.event = INITIAL_SESSION
        self._listeners: List[Listener] = []

    @property
    def screen(self) -> str:
        return "main" if self.user else "login"

    @property
    def tabs(self) -> List[str]:
        if not self.user:
            return []
        return BASE_TABS + [ADMIN_TAB] if self.is_admin else list(BASE_TABS)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for session changes; returns the unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def start(self, db: Session, token: Optional[str]) -> dict:
        return self._apply(db, INITIAL_SESSION, token)

    def change(self, db: Session, event: str, token: Optional[str]) -> dict:
        return self._apply(db, event, token)

    def sign_out(self) -> dict:
        return self._apply(None, SIGNED_OUT, None)

    def snapshot(self) -> dict:
        return {
            "event": self.event,
            "authenticated": self.user is not None,
            "screen": self.screen,
            "tabs": self.tabs,
            "user_id": self.user.id if self.user else None,
            "email": self.user.email if self.user else None,
            "is_admin": self.is_admin,
        }

    def _apply(self, db: Optional[Session], event: str, token: Optional[str]) -> dict:
        user = None
        if token:
            try:
                user = decode_access_token(token)
            except TokenError as e:
                logger.warning(f"Session token rejected: {e}")
                event = SIGNED_OUT
        elif event != INITIAL_SESSION:
            event = SIGNED_OUT

        self.user = user
        self.event = event
        profile = get_profile(db, user.id) if user else None
        self.is_admin = bool(profile and profile.is_admin)

        state = self.snapshot()
        for listener in list(self._listeners):
            listener(event, state)
        return state
