"""User and scent profile repository protocols (read-only)."""

from typing import Protocol
from uuid import UUID

from domain.entities.user import ScentProfile, User


class IUserRepository(Protocol):
    """Read access to users owned by the account service."""

    async def get(self, user_id: UUID) -> User | None:
        """Get a user by ID."""
        ...

    async def get_many(self, user_ids: list[UUID]) -> dict[UUID, User]:
        """Get several users keyed by ID. Unknown IDs are omitted."""
        ...


class IScentProfileRepository(Protocol):
    """Read access to scent profiles owned by the profile service."""

    async def get_for_user(self, user_id: UUID) -> ScentProfile | None:
        """Get the scent profile of a user."""
        ...
