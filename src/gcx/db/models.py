"""ORM models for users, one-time passcodes, submissions and messages."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gcx.db.base import Base
from gcx.submissions.status import ALLOWED_STATUSES

# Stored in otps.email for codes issued to the operator identity.
ADMIN_OTP_EMAIL = "admin"

OTP_TYPE_USER = "user"
OTP_TYPE_ADMIN = "admin"

SENDER_USER = "user"
SENDER_ADMIN = "admin"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_STATUS_CHECK = "status IN (" + ", ".join(f"'{s}'" for s in ALLOWED_STATUSES) + ")"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Registered seller. Deleting a user removes their messages and submissions."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    submissions: Mapped[list[Submission]] = relationship(
        "Submission", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    messages: Mapped[list[Message]] = relationship(
        "Message", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )


# ---------------------------------------------------------------------------
# One-time passcodes
# ---------------------------------------------------------------------------


class OneTimePasscode(Base):
    """A 6-digit passcode. Rows are kept after expiry for audit.

    `verified` gates the user guard; `is_used` is the one-shot flag consumed
    by the admin guard.
    """

    __tablename__ = "otps"
    __table_args__ = (
        CheckConstraint("type IN ('user', 'admin')", name="otps_type_check"),
        Index("ix_otps_live_admin", "otp", postgresql_where=text("type = 'admin' AND is_used = false")),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    otp: Mapped[str] = mapped_column(String(6), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


class Submission(Base):
    """A gift card redemption claim."""

    __tablename__ = "submissions"
    __table_args__ = (CheckConstraint(_STATUS_CHECK, name="submissions_status_check"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ticket_user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    gc_code: Mapped[str] = mapped_column(String(255), nullable=False)
    gc_phone: Mapped[str] = mapped_column(String(255), nullable=False)
    ticket_number: Mapped[str] = mapped_column(String(255), nullable=False)
    upi_id: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    proof_video_url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="pending", server_default="pending", index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    user: Mapped[User] = relationship("User", back_populates="submissions")


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class Message(Base):
    """One chat line between a user and the operators."""

    __tablename__ = "messages"
    __table_args__ = (CheckConstraint("sender IN ('user', 'admin')", name="messages_sender_check"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sender: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    user: Mapped[User] = relationship("User", back_populates="messages")
