"""SQLAlchemy ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class UserModel(Base):
    """User account model (owned by the account service, read here)."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    bio: Mapped[str | None] = mapped_column(Text)
    photos: Mapped[list[str] | None] = mapped_column(JSONB)
    city: Mapped[str | None] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    scent_profile: Mapped["ScentProfileModel | None"] = relationship(
        "ScentProfileModel",
        back_populates="user",
        uselist=False,
    )


class ScentProfileModel(Base):
    """Self-reported scent notes and preferences (owned by the profile service)."""

    __tablename__ = "scent_profiles"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    scent_notes: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    intensity: Mapped[int] = mapped_column(
        Integer,
        CheckConstraint("intensity BETWEEN 1 AND 10", name="ck_scent_profiles_intensity"),
        nullable=False,
        default=5,
    )
    preferred_notes: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    avoid_notes: Mapped[list[str] | None] = mapped_column(JSONB)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # Relationships
    user: Mapped["UserModel"] = relationship("UserModel", back_populates="scent_profile")


class MatchModel(Base):
    """Match model, one row per unordered user pair (user1_id < user2_id)."""

    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_matches_pair"),
        CheckConstraint("user1_id < user2_id", name="ck_matches_canonical_pair"),
        Index("ix_matches_user2_status", "user2_id", "status"),
        Index("ix_matches_status_expires", "status", "expires_at"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    user1_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    user2_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "status IN ('pending', 'mutual', 'passed', 'unmatched', 'expired')",
            name="ck_matches_status",
        ),
        nullable=False,
        default="pending",
    )
    compatibility_score: Mapped[int | None] = mapped_column(Integer)
    score_breakdown: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    user1_liked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    user2_liked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
    matched_at: Mapped[datetime | None] = mapped_column(DateTime)
    unmatched_at: Mapped[datetime | None] = mapped_column(DateTime)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime)
    last_activity_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    user1: Mapped["UserModel"] = relationship("UserModel", foreign_keys=[user1_id])
    user2: Mapped["UserModel"] = relationship("UserModel", foreign_keys=[user2_id])
    messages: Mapped[list["MessageModel"]] = relationship(
        "MessageModel",
        back_populates="match",
        cascade="all, delete-orphan",
    )


class MessageModel(Base):
    """Encrypted message model. Append-only apart from read_at."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_match_sent", "match_id", "sent_at"),
        Index("ix_messages_receiver_unread", "receiver_id", "read_at"),
    )

    # Integer key doubles as insertion order for messages sharing a timestamp.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    match_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    receiver_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    iv: Mapped[str] = mapped_column(String(64), nullable=False)
    ciphertext: Mapped[str] = mapped_column(Text, nullable=False)
    auth_tag: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "kind IN ('text', 'image', 'voice', 'video')",
            name="ck_messages_kind",
        ),
        nullable=False,
        default="text",
    )
    media_url: Mapped[str | None] = mapped_column(String(500))
    sent_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    match: Mapped["MatchModel"] = relationship("MatchModel", back_populates="messages")
