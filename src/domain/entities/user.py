"""User and scent profile domain entities (read-only in this service)."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4


@dataclass
class User:
    """Domain entity for a user, owned by the account service."""

    id: UUID = field(default_factory=uuid4)
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    bio: str | None = None
    photos: list[str] = field(default_factory=list)
    city: str | None = None
    state: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True, slots=True)
class UserSummary:
    """Read-only value object: the public-facing fields shown to a match."""

    id: UUID
    first_name: str
    last_name: str
    photos: list[str]
    bio: str | None = None
    city: str | None = None
    state: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            photos=list(user.photos),
            bio=user.bio,
            city=user.city,
            state=user.state,
        )


@dataclass
class ScentProfile:
    """Domain entity for a user's self-reported scent and preferences."""

    user_id: UUID
    scent_notes: list[str] = field(default_factory=list)
    intensity: int = 5
    preferred_notes: list[str] = field(default_factory=list)
    avoid_notes: list[str] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_complete(self) -> bool:
        """A profile can be scored once both note lists are filled in."""
        return bool(self.scent_notes) and bool(self.preferred_notes)
