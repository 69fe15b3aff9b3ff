"""Match repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.match import Match, MatchStatus


class IMatchRepository(Protocol):
    """Repository interface for Match entities.

    Pair lookups expect the canonical (lower, higher) ordering.
    """

    async def create(self, match: Match) -> Match:
        """Insert a new match. Raises IntegrityError if the pair already exists."""
        ...

    async def get(self, match_id: UUID, for_update: bool = False) -> Match | None:
        """Get a match by ID, optionally locking the row."""
        ...

    async def get_by_pair(
        self, user1_id: UUID, user2_id: UUID, for_update: bool = False
    ) -> Match | None:
        """Get the match for a canonical user pair, optionally locking the row."""
        ...

    async def update(self, match: Match) -> Match:
        """Persist state changes of an existing match."""
        ...

    async def touch_activity(self, match_id: UUID, at: datetime) -> None:
        """Set the last-activity timestamp of a match."""
        ...

    async def get_for_user(
        self,
        user_id: UUID,
        status: MatchStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Match]:
        """Get matches involving a user, newest first."""
        ...

    async def count_for_user(self, user_id: UUID, status: MatchStatus) -> int:
        """Count matches of a status involving a user."""
        ...

    async def count_pending(self, user_id: UUID, liked_by_user: bool) -> int:
        """Count pending matches the user sent (True) or received (False)."""
        ...

    async def get_stale_pending(self, now: datetime, limit: int = 500) -> list[Match]:
        """Get pending matches whose expiry has passed."""
        ...
