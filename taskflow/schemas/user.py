from pydantic import Field
from datetime import datetime
from typing import Optional

from .base import CamelModel


class UserBase(CamelModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    profile_picture: Optional[str] = None


class UserCreate(UserBase):
    password: str = Field(..., min_length=1)
    admin_invite_token: Optional[str] = None


class LoginRequest(CamelModel):
    email: str
    password: str


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class User(UserBase):
    id: str
    role: str
    created_at: datetime
    updated_at: datetime


class UserWithTaskCounts(User):
    pending_tasks: int = 0
    in_progress_tasks: int = 0
    completed_tasks: int = 0


class TokenData(CamelModel):
    user_id: Optional[str] = None


class AuthResponse(User):
    token: str
