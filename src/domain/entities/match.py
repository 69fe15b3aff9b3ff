"""Match domain entity and its lifecycle state machine."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4

from core.exceptions import InvalidTransitionError
from domain.entities.user import UserSummary


class MatchStatus(StrEnum):
    """Status of the relationship between two users."""

    PENDING = "pending"
    MUTUAL = "mutual"
    PASSED = "passed"
    UNMATCHED = "unmatched"
    EXPIRED = "expired"


class MatchEvent(StrEnum):
    """Actions that drive a match between states."""

    LIKE = "like"
    PASS = "pass"
    UNMATCH = "unmatch"
    EXPIRE = "expire"


# Legal (status, event) pairs. Anything missing is an invalid transition.
# Self-loops are idempotent no-ops.
MATCH_TRANSITIONS: dict[tuple[MatchStatus, MatchEvent], MatchStatus] = {
    (MatchStatus.PENDING, MatchEvent.LIKE): MatchStatus.MUTUAL,
    (MatchStatus.PENDING, MatchEvent.PASS): MatchStatus.PASSED,
    (MatchStatus.PENDING, MatchEvent.EXPIRE): MatchStatus.EXPIRED,
    (MatchStatus.MUTUAL, MatchEvent.LIKE): MatchStatus.MUTUAL,
    (MatchStatus.MUTUAL, MatchEvent.UNMATCH): MatchStatus.UNMATCHED,
    (MatchStatus.PASSED, MatchEvent.PASS): MatchStatus.PASSED,
    (MatchStatus.EXPIRED, MatchEvent.PASS): MatchStatus.PASSED,
    (MatchStatus.EXPIRED, MatchEvent.EXPIRE): MatchStatus.EXPIRED,
}


def next_status(status: MatchStatus, event: MatchEvent) -> MatchStatus:
    """Return the status reached by applying ``event`` to ``status``.

    Raises:
        InvalidTransitionError: If the state machine does not allow it.
    """
    try:
        return MATCH_TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransitionError(status.value, event.value) from None


def canonical_pair(a: UUID, b: UUID) -> tuple[UUID, UUID]:
    """Order two user IDs so every unordered pair has one key (lower first)."""
    return (a, b) if a < b else (b, a)


@dataclass
class Match:
    """Domain entity for the match record of one unordered user pair.

    ``user1_id`` is always the lower of the two IDs (see ``canonical_pair``).
    """

    user1_id: UUID
    user2_id: UUID
    id: UUID = field(default_factory=uuid4)
    status: MatchStatus = MatchStatus.PENDING
    compatibility_score: int | None = None
    score_breakdown: dict[str, Any] | None = None
    user1_liked: bool = False
    user2_liked: bool = False
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    matched_at: datetime | None = None
    unmatched_at: datetime | None = None
    expires_at: datetime | None = None
    last_activity_at: datetime | None = None

    @classmethod
    def for_pair(cls, actor_id: UUID, target_id: UUID, **kwargs: Any) -> "Match":
        """Build a new match for the pair, stored in canonical order."""
        user1_id, user2_id = canonical_pair(actor_id, target_id)
        return cls(user1_id=user1_id, user2_id=user2_id, **kwargs)

    @property
    def pair(self) -> tuple[UUID, UUID]:
        return (self.user1_id, self.user2_id)

    @property
    def is_mutual(self) -> bool:
        return self.status == MatchStatus.MUTUAL

    def is_participant(self, user_id: UUID) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_participant(self, user_id: UUID) -> UUID:
        """Return the participant who is not ``user_id``."""
        if user_id == self.user1_id:
            return self.user2_id
        if user_id == self.user2_id:
            return self.user1_id
        raise ValueError(f"User {user_id} is not part of match {self.id}")

    def has_liked(self, user_id: UUID) -> bool:
        if user_id == self.user1_id:
            return self.user1_liked
        if user_id == self.user2_id:
            return self.user2_liked
        return False

    def mark_liked(self, user_id: UUID) -> None:
        if user_id == self.user1_id:
            self.user1_liked = True
        elif user_id == self.user2_id:
            self.user2_liked = True
        else:
            raise ValueError(f"User {user_id} is not part of match {self.id}")

    # --- Transitions ---

    def like(self, actor_id: UUID) -> bool:
        """Apply a like from ``actor_id``. Returns True if the match became mutual.

        A repeated like from the user who is already waiting changes nothing.
        """
        if self.status == MatchStatus.PENDING and self.has_liked(actor_id):
            return False

        new_status = next_status(self.status, MatchEvent.LIKE)
        if new_status == self.status:
            return False

        now = datetime.utcnow()
        self.user1_liked = True
        self.user2_liked = True
        self.status = new_status
        self.matched_at = now
        self.last_activity_at = now
        self.expires_at = None
        self.updated_at = now
        return True

    def pass_(self) -> bool:
        """Decline the match. Returns False when it was already passed."""
        return self._apply(MatchEvent.PASS)

    def unmatch(self) -> None:
        if self._apply(MatchEvent.UNMATCH):
            self.unmatched_at = self.updated_at

    def expire(self) -> bool:
        """Time out a pending match. Returns False when it was already expired."""
        return self._apply(MatchEvent.EXPIRE)

    def _apply(self, event: MatchEvent) -> bool:
        new_status = next_status(self.status, event)
        if new_status == self.status:
            return False
        self.status = new_status
        self.expires_at = None
        self.updated_at = datetime.utcnow()
        return True


def pending_expiry(ttl_days: int, now: datetime | None = None) -> datetime:
    """Expiry timestamp for a newly created pending match."""
    return (now or datetime.utcnow()) + timedelta(days=ttl_days)


@dataclass(frozen=True, slots=True)
class LikeResult:
    """Outcome of a like: the match record and whether it just became mutual."""

    match: Match
    is_mutual: bool
    created: bool


@dataclass(frozen=True, slots=True)
class MatchView:
    """Read-only value object: a match as seen by one of its participants."""

    match: Match
    other_user: UserSummary | None


@dataclass(frozen=True, slots=True)
class MatchStats:
    """Per-user match counters."""

    active_matches: int
    pending_likes: int
    pending_received: int
