"""Pydantic schemas for Message API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from api.v1.schemas.match import UserSummaryResponse
from core.config import settings
from domain.entities.message import ConversationSummary, MessageKind, MessageView


class MessageCreate(BaseModel):
    """Schema for sending a message."""

    match_id: UUID
    content: str = Field(..., min_length=1, max_length=settings.message_max_length)
    kind: MessageKind = MessageKind.TEXT
    media_url: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def media_url_matches_kind(self) -> "MessageCreate":
        if self.kind != MessageKind.TEXT and not self.media_url:
            raise ValueError(f"media_url is required for {self.kind.value} messages")
        return self


class MessageResponse(BaseModel):
    """Schema for a decrypted message, framed for the caller."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 42,
                "match_id": "123e4567-e89b-12d3-a456-426614174000",
                "sender_id": "0a4e0e2c-5f1b-4a43-9d2a-2f3b7c1d9e01",
                "receiver_id": "7b2c9d3e-1a4f-4c8b-9e0d-5f6a7b8c9d02",
                "content": "Your sample smelled like a bonfire in the best way",
                "kind": "text",
                "media_url": None,
                "sent_at": "2026-01-29T09:00:00",
                "read_at": None,
                "is_me": True,
                "decryption_failed": False,
            }
        },
    )

    id: int | None
    match_id: UUID
    sender_id: UUID
    receiver_id: UUID
    content: str | None
    kind: MessageKind
    media_url: str | None
    sent_at: datetime
    read_at: datetime | None
    is_me: bool
    decryption_failed: bool = False

    @classmethod
    def from_view(cls, view: MessageView) -> "MessageResponse":
        return cls.model_validate(view)


class MessageListResponse(BaseModel):
    """Schema for a page of messages, oldest first."""

    data: list[MessageResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class MessageDetailResponse(BaseModel):
    """Schema for single Message response."""

    data: MessageResponse


class ConversationResponse(BaseModel):
    """One entry of the caller's conversation list."""

    match_id: UUID
    user: UserSummaryResponse | None
    last_message: MessageResponse | None
    unread_count: int
    last_activity_at: datetime | None

    @classmethod
    def from_summary(cls, summary: ConversationSummary) -> "ConversationResponse":
        return cls(
            match_id=summary.match_id,
            user=UserSummaryResponse.from_summary(summary.user),
            last_message=(
                MessageResponse.from_view(summary.last_message) if summary.last_message else None
            ),
            unread_count=summary.unread_count,
            last_activity_at=summary.last_activity_at,
        )


class ConversationListResponse(BaseModel):
    """Schema for the caller's conversations, most recent first."""

    data: list[ConversationResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class UnreadCountResponse(BaseModel):
    """Unread messages addressed to the caller."""

    unread_count: int


class MarkReadResponse(BaseModel):
    """Number of messages newly marked as read."""

    marked_read: int
