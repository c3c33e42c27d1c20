import enum
import uuid
from datetime import datetime
from typing import List, Optional
from uuid6 import uuid7
from sqlalchemy import JSON, DateTime, String, Uuid
from sqlmodel import Column, SQLModel, Field
from vybe_auth.common.utils import now


class VerifiedBadge(str, enum.Enum):
    PHONE = "PHONE"
    EMAIL = "EMAIL"
    GOOGLE = "GOOGLE"
    APPLE = "APPLE"
    ID = "ID"


class Account(SQLModel, table=True):
    __tablename__ = "accounts"

    id: uuid.UUID = Field(
        default_factory=uuid7,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False)
    )
    # each external identifier belongs to at most one account
    phone: Optional[str] = Field(default=None, sa_column=Column(String(20), unique=True, nullable=True))
    email: Optional[str] = Field(default=None, sa_column=Column(String(320), unique=True, nullable=True))
    google_id: Optional[str] = Field(default=None, sa_column=Column(String(255), unique=True, nullable=True))
    apple_id: Optional[str] = Field(default=None, sa_column=Column(String(255), unique=True, nullable=True))

    display_name: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    username: Optional[str] = Field(default=None, sa_column=Column(String(64), unique=True, nullable=True))
    avatar_url: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))

    verified_badges: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False, default=list))

    last_active_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=now, onupdate=now))
