import os
import json
import time
import uuid
from datetime import datetime, timedelta, timezone

# -------------------------------------------------------
# Test configuration (must be set before the app is imported)
# -------------------------------------------------------
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SERVICE_ROLE"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"

import jwt
import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import event

from app.main import app
from app.db.base import Base
from app.db.session import engine, SessionLocal, get_db
from app.models.issue import Issue, IssueStatus
from app.models.profile import Profile

JWT_SECRET = "test-jwt-secret"


@event.listens_for(engine, "connect")
def _enforce_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores REFERENCES unless asked; Postgres always enforces them
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# -------------------------------------------------------
# Database / client
# -------------------------------------------------------
@pytest.fixture(scope="function")
def db_session():
    """In-memory SQLite standing in for the Supabase database, rebuilt per test."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    del app.dependency_overrides[get_db]


# -------------------------------------------------------
# Identities
# -------------------------------------------------------
def make_token(user_id: str, email: str = "user@example.com", expires_in: int = 3600) -> str:
    now = int(time.time())
    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def make_profile(db_session):
    def _make(full_name="Resident One", username=None, is_admin=False, avatar_url=None):
        profile = Profile(
            id=str(uuid.uuid4()),
            full_name=full_name,
            username=username,
            is_admin=is_admin,
            avatar_url=avatar_url,
        )
        db_session.add(profile)
        db_session.commit()
        return profile
    return _make


@pytest.fixture
def resident(make_profile):
    return make_profile(full_name="Sita Resident", username="sita")


@pytest.fixture
def admin_user(make_profile):
    return make_profile(full_name="Ward Admin", username="admin", is_admin=True)


@pytest.fixture
def headers_for():
    def _headers(profile, email="user@example.com"):
        return {"Authorization": f"Bearer {make_token(profile.id, email)}"}
    return _headers


# -------------------------------------------------------
# Data
# -------------------------------------------------------
@pytest.fixture
def make_issue(db_session):
    base = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def _make(title="Pothole on main road", upvotes=0, minutes=0, user_id=None,
              status=IssueStatus.open, latitude=27.7, longitude=85.3, category="road"):
        issue = Issue(
            title=title,
            description="Large pothole near the bus stop",
            category=category,
            status=status,
            latitude=latitude,
            longitude=longitude,
            upvotes=upvotes,
            user_id=user_id,
            created_at=base + timedelta(minutes=minutes),
        )
        db_session.add(issue)
        db_session.commit()
        db_session.refresh(issue)
        return issue
    return _make


# -------------------------------------------------------
# HTTP fakes for the Supabase REST services
# -------------------------------------------------------
class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode()
        self.text = self.content.decode()

    def json(self):
        if self._payload is None:
            raise ValueError("empty body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def fake_response():
    return FakeResponse
