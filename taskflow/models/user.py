from sqlmodel import SQLModel, Field
from datetime import datetime
from typing import Optional
import enum

from .common import new_id, utc_column, utcnow


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    MEMBER = "member"


class User(SQLModel, table=True):
    """User account. Tasks reference users by id only."""
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    hashed_password: str
    role: str = Field(default=UserRole.MEMBER.value, index=True)
    profile_picture: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_column=utc_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=utc_column())
