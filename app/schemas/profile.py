#app/schemas/profile.py
from pydantic import BaseModel, Field

class ProfileOut(BaseModel):
    id: str
    email: str | None = None
    display_name: str
    full_name: str | None = None
    username: str | None = None
    avatar_url: str | None = None
    is_admin: bool = False
    role_label: str

class ProfileUpdate(BaseModel):
    full_name: str | None = Field(default=None, max_length=120)
    username: str | None = Field(default=None, max_length=60)
    avatar_url: str | None = Field(default=None, max_length=1000)
