import uuid
from datetime import datetime
from typing import Optional
from uuid6 import uuid7
from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlmodel import Column, SQLModel, Field
from vybe_auth.common.utils import now


class UserSession(SQLModel, table=True):
    """One authenticated device. Holds only the hash of its current refresh token."""
    __tablename__ = "user_sessions"

    id: uuid.UUID = Field(
        default_factory=uuid7,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False)
    )
    account_id: uuid.UUID = Field(
        sa_column=Column(Uuid(as_uuid=True), ForeignKey("accounts.id", ondelete="CASCADE"), index=True, nullable=False)
    )
    refresh_token_hash: str = Field(sa_column=Column(String(128), nullable=False))

    device_type: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    ip_address: Optional[str] = Field(default=None, sa_column=Column(String(45), nullable=True))

    expires_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False, index=True))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=now))

    __table_args__ = (Index("ix_user_sessions_account_created", "account_id", "created_at"),)
