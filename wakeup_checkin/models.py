from datetime import datetime, date, timezone
from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """
    Signed-in user profile:
    - id: identity provider email (or provider subject when no email is shared)
    - name: provider nickname, "익명" when none is supplied
    """
    __tablename__ = "users"

    id: str = Field(primary_key=True)
    name: str
    profile_url: Optional[str] = None
    provider: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CheckIn(SQLModel, table=True):
    """
    One wake-up check-in.
    Only one row per user_id + auth_date; the unique constraint closes the
    window between the read-before-write check and the insert.
    """
    __tablename__ = "rankings"
    __table_args__ = (UniqueConstraint("user_id", "auth_date", name="uq_rankings_user_date"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    user_name: str
    auth_time: str  # HH:MM:SS, 24-hour
    auth_date: date = Field(index=True)
    quote: str
    created_at: datetime = Field(default_factory=utcnow)
