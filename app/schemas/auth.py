# File: app/schemas/auth.py

from pydantic import BaseModel, EmailStr, Field

class SignupIn(BaseModel):
    full_name: str = Field(max_length=120)
    email: EmailStr
    password: str = Field(min_length=6, max_length=512)

class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=512)

class RefreshIn(BaseModel):
    refresh_token: str

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int
    user_id: str

class SignupOut(BaseModel):
    ok: bool = True
    user_id: str | None = None
    message: str

class SessionOut(BaseModel):
    """What the client should render for the presented session."""
    event: str
    authenticated: bool
    screen: str
    tabs: list[str]
    user_id: str | None = None
    email: str | None = None
    is_admin: bool = False
