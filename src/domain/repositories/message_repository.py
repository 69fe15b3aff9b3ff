"""Message repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.message import Message


class IMessageRepository(Protocol):
    """Repository interface for Message entities. Messages are append-only."""

    async def create(self, message: Message) -> Message:
        """Insert a new message and return it with its assigned ID."""
        ...

    async def get_for_match(
        self,
        match_id: UUID,
        before: datetime | None = None,
        before_id: int | None = None,
        limit: int = 50,
    ) -> list[Message]:
        """Get the newest messages of a match, newest first."""
        ...

    async def get_latest_for_matches(self, match_ids: list[UUID]) -> dict[UUID, Message]:
        """Get the most recent message of each match."""
        ...

    async def mark_read(self, match_id: UUID, receiver_id: UUID, at: datetime) -> int:
        """Stamp read_at on unread messages addressed to a user. Returns count updated."""
        ...

    async def count_unread(self, receiver_id: UUID) -> int:
        """Count unread messages addressed to a user across all matches."""
        ...

    async def count_unread_by_match(self, receiver_id: UUID) -> dict[UUID, int]:
        """Count unread messages addressed to a user, grouped by match."""
        ...
