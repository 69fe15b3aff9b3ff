"""Message domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from domain.entities.user import UserSummary


class MessageKind(StrEnum):
    """Kind of content carried by a message."""

    TEXT = "text"
    IMAGE = "image"
    VOICE = "voice"
    VIDEO = "video"


@dataclass(frozen=True, slots=True)
class EncryptedBundle:
    """Authenticated-encryption output, persisted together as one unit.

    All three fields are hex encoded.
    """

    iv: str
    ciphertext: str
    tag: str


@dataclass
class Message:
    """Domain entity for a stored (encrypted) message.

    ``id`` is assigned by the database and follows insertion order.
    """

    match_id: UUID
    sender_id: UUID
    receiver_id: UUID
    payload: EncryptedBundle
    kind: MessageKind = MessageKind.TEXT
    media_url: str | None = None
    id: int | None = None
    sent_at: datetime = field(default_factory=datetime.utcnow)
    read_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class MessageView:
    """Read-only value object: a decrypted message framed for one reader.

    ``content`` is None and ``decryption_failed`` is True when the stored
    payload could not be authenticated.
    """

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


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    """Read-only value object: one entry of a user's conversation list."""

    match_id: UUID
    user: UserSummary | None
    last_message: MessageView | None
    unread_count: int
    last_activity_at: datetime | None
