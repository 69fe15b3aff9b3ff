"""Scent compatibility scoring."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from core.exceptions import InvalidArgumentError, ScentProfileNotFoundError
from domain.entities.user import ScentProfile
from domain.repositories.unit_of_work import IUnitOfWork

NOTE_WEIGHT = 10
NEUTRAL_SCORE = 50


@dataclass(frozen=True, slots=True)
class CompatibilityResult:
    """Score from 0 to 100 plus the notes that produced it."""

    percentage: int
    breakdown: dict[str, Any]


@dataclass(frozen=True, slots=True)
class CompatibilityReport:
    """Compatibility between the caller and another user, with both profiles."""

    user_id: UUID
    other_user_id: UUID
    result: CompatibilityResult
    profile: ScentProfile
    other_profile: ScentProfile


def _matched_notes(preferred: Iterable[str], scent: Iterable[str]) -> tuple[list[str], int]:
    """Return the preferred notes found in ``scent`` and how many were checked."""
    available = set(scent)
    distinct = list(dict.fromkeys(preferred))
    return [note for note in distinct if note in available], len(distinct)


def score(profile_a: ScentProfile, profile_b: ScentProfile) -> CompatibilityResult:
    """Score how well two scent profiles suit each other.

    Every note A prefers that B wears is worth ``NOTE_WEIGHT`` points, and the
    same the other way round. The percentage is awarded over possible points,
    rounded half up. With no preferences on either side the score is
    ``NEUTRAL_SCORE``.
    """
    a_to_b, checked_a = _matched_notes(profile_a.preferred_notes, profile_b.scent_notes)
    b_to_a, checked_b = _matched_notes(profile_b.preferred_notes, profile_a.scent_notes)

    awarded = (len(a_to_b) + len(b_to_a)) * NOTE_WEIGHT
    possible = (checked_a + checked_b) * NOTE_WEIGHT

    if possible == 0:
        percentage = NEUTRAL_SCORE
    else:
        percentage = (awarded * 200 + possible) // (possible * 2)

    return CompatibilityResult(
        percentage=percentage,
        breakdown={
            "a_to_b": a_to_b,
            "b_to_a": b_to_a,
            "awarded": awarded,
            "possible": possible,
        },
    )


class CompatibilityService:
    """Service layer for compatibility lookups between two users."""

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def get_compatibility(self, user_id: UUID, other_user_id: UUID) -> CompatibilityReport:
        """Score the caller's scent profile against another user's.

        Raises:
            InvalidArgumentError: If both IDs are the same user.
            ScentProfileNotFoundError: If either user has no scent profile.
        """
        if user_id == other_user_id:
            raise InvalidArgumentError("Cannot score compatibility with yourself")

        async with self._uow_factory() as uow:
            mine = await uow.scent_profiles.get_for_user(user_id)
            if not mine:
                raise ScentProfileNotFoundError(str(user_id))
            theirs = await uow.scent_profiles.get_for_user(other_user_id)
            if not theirs:
                raise ScentProfileNotFoundError(str(other_user_id))

        return CompatibilityReport(
            user_id=user_id,
            other_user_id=other_user_id,
            result=score(mine, theirs),
            profile=mine,
            other_profile=theirs,
        )
