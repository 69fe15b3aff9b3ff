"""Match service layer: likes, passes, unmatches and expiry."""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError

from core.config import settings
from core.exceptions import (
    ConflictRetryableError,
    InvalidArgumentError,
    MatchNotFoundError,
    UserNotFoundError,
)
from core.locks import KeyedLockRegistry
from domain.entities.match import (
    LikeResult,
    Match,
    MatchStats,
    MatchStatus,
    MatchView,
    canonical_pair,
    pending_expiry,
)
from domain.entities.user import UserSummary
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.compatibility_service import score

logger = structlog.get_logger()

T = TypeVar("T")

# One retry after losing an insert race; the second attempt sees the winner's row.
MAX_PAIR_ATTEMPTS = 2
MAX_PAGE_SIZE = 100


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = str(exc.orig).lower() if exc.orig else ""
    return "unique" in orig or "duplicate" in orig


class MatchService:
    """Service layer owning the match state machine.

    Every transition on a user pair runs under a lock keyed by the canonical
    pair and re-reads the row ``FOR UPDATE`` inside its transaction.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        pending_ttl_days: int = settings.match_pending_ttl_days,
        pair_locks: KeyedLockRegistry | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._pending_ttl_days = pending_ttl_days
        self._pair_locks = pair_locks or KeyedLockRegistry()

    # --- Transitions ---

    async def like(self, actor_id: UUID, target_id: UUID) -> LikeResult:
        """Like another user.

        Creates a pending match, completes a pending like from the other side
        into a mutual match, or does nothing if already mutual.

        Raises:
            InvalidArgumentError: If the actor likes themselves.
            UserNotFoundError: If the target does not exist or is inactive.
            InvalidTransitionError: If the pair was passed, unmatched or expired.
            ConflictRetryableError: If a concurrent writer kept winning the pair.
        """
        if actor_id == target_id:
            raise InvalidArgumentError("Cannot match with yourself")
        return await self._run_for_pair(actor_id, target_id, self._like_once)

    async def pass_user(self, actor_id: UUID, target_id: UUID) -> Match:
        """Decline another user.

        Raises:
            InvalidArgumentError: If the actor passes on themselves.
            UserNotFoundError: If the target does not exist or is inactive.
            InvalidTransitionError: If the pair is mutual or unmatched.
            ConflictRetryableError: If a concurrent writer kept winning the pair.
        """
        if actor_id == target_id:
            raise InvalidArgumentError("Cannot pass on yourself")
        return await self._run_for_pair(actor_id, target_id, self._pass_once)

    async def unmatch(self, actor_id: UUID, match_id: UUID) -> Match:
        """End a mutual match.

        Raises:
            MatchNotFoundError: If the match does not exist or the actor is not in it.
            InvalidTransitionError: If the match is not mutual.
        """
        pair = await self._pair_of(match_id)
        async with self._pair_locks.hold(pair):
            async with self._uow_factory() as uow:
                match = await uow.matches.get(match_id, for_update=True)
                if not match or not match.is_participant(actor_id):
                    raise MatchNotFoundError(str(match_id))

                match.unmatch()
                updated = await uow.matches.update(match)
                await uow.commit()

        logger.info("match_unmatched", match_id=str(match_id), actor_id=str(actor_id))
        return updated

    async def expire(self, match_id: UUID) -> Match:
        """Time out a pending match. Called by the expiry scheduler.

        Raises:
            MatchNotFoundError: If the match does not exist.
            InvalidTransitionError: If the match is mutual, passed or unmatched.
        """
        pair = await self._pair_of(match_id)
        async with self._pair_locks.hold(pair):
            async with self._uow_factory() as uow:
                match = await uow.matches.get(match_id, for_update=True)
                if not match:
                    raise MatchNotFoundError(str(match_id))

                if match.expire():
                    match = await uow.matches.update(match)
                    await uow.commit()
                    logger.info("match_expired", match_id=str(match_id))
                return match

    async def expire_stale(self, now: datetime | None = None) -> int:
        """Expire every pending match whose expiry time has passed.

        Rows that changed state since they were selected are skipped.

        Returns:
            Number of matches expired.
        """
        now = now or datetime.utcnow()
        async with self._uow_factory() as uow:
            stale = await uow.matches.get_stale_pending(now)

        expired = 0
        for candidate in stale:
            async with self._pair_locks.hold(candidate.pair):
                async with self._uow_factory() as uow:
                    match = await uow.matches.get(candidate.id, for_update=True)
                    if (
                        not match
                        or match.status != MatchStatus.PENDING
                        or match.expires_at is None
                        or match.expires_at > now
                    ):
                        continue
                    match.expire()
                    await uow.matches.update(match)
                    await uow.commit()
                    expired += 1

        if expired:
            logger.info("matches_expired", count=expired)
        return expired

    # --- Queries ---

    async def list_matches(
        self,
        user_id: UUID,
        status: MatchStatus = MatchStatus.MUTUAL,
        limit: int = 20,
        offset: int = 0,
    ) -> list[MatchView]:
        """List a user's matches in one status with the other user's public profile."""
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidArgumentError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise InvalidArgumentError("offset must not be negative")

        async with self._uow_factory() as uow:
            matches = await uow.matches.get_for_user(user_id, status=status, limit=limit, offset=offset)
            others = await uow.users.get_many([m.other_participant(user_id) for m in matches])

        views = []
        for match in matches:
            other = others.get(match.other_participant(user_id))
            views.append(
                MatchView(
                    match=match,
                    other_user=UserSummary.from_user(other) if other else None,
                )
            )
        return views

    async def get_stats(self, user_id: UUID) -> MatchStats:
        """Count mutual matches, likes sent and likes received still pending."""
        async with self._uow_factory() as uow:
            return MatchStats(
                active_matches=await uow.matches.count_for_user(user_id, MatchStatus.MUTUAL),
                pending_likes=await uow.matches.count_pending(user_id, liked_by_user=True),
                pending_received=await uow.matches.count_pending(user_id, liked_by_user=False),
            )

    # --- Internal helpers ---

    async def _run_for_pair(
        self,
        actor_id: UUID,
        target_id: UUID,
        operation: Callable[[UUID, UUID], Awaitable[T]],
    ) -> T:
        """Run one pair transition under the pair lock, retrying a lost insert race once."""
        pair = canonical_pair(actor_id, target_id)
        attempt = 1
        async with self._pair_locks.hold(pair):
            while True:
                try:
                    return await operation(actor_id, target_id)
                except IntegrityError as exc:
                    # Only unique-constraint violations mean another writer got here first.
                    if not _is_unique_violation(exc):
                        raise
                    if attempt >= MAX_PAIR_ATTEMPTS:
                        raise ConflictRetryableError() from exc
                    logger.info(
                        "match_pair_conflict_retry",
                        user1_id=str(pair[0]),
                        user2_id=str(pair[1]),
                        attempt=attempt,
                    )
                    attempt += 1

    async def _like_once(self, actor_id: UUID, target_id: UUID) -> LikeResult:
        async with self._uow_factory() as uow:
            await self._require_active_user(uow, target_id)

            user1_id, user2_id = canonical_pair(actor_id, target_id)
            match = await uow.matches.get_by_pair(user1_id, user2_id, for_update=True)

            if match is None:
                match = Match.for_pair(
                    actor_id,
                    target_id,
                    status=MatchStatus.PENDING,
                    expires_at=pending_expiry(self._pending_ttl_days),
                )
                match.mark_liked(actor_id)
                await self._annotate_score(uow, match)
                created = await uow.matches.create(match)
                await uow.commit()
                logger.info(
                    "match_created",
                    match_id=str(created.id),
                    actor_id=str(actor_id),
                    status=created.status.value,
                )
                return LikeResult(match=created, is_mutual=False, created=True)

            if match.like(actor_id):
                if match.compatibility_score is None:
                    await self._annotate_score(uow, match)
                match = await uow.matches.update(match)
                await uow.commit()
                logger.info("match_mutual", match_id=str(match.id), actor_id=str(actor_id))

            return LikeResult(match=match, is_mutual=match.is_mutual, created=False)

    async def _pass_once(self, actor_id: UUID, target_id: UUID) -> Match:
        async with self._uow_factory() as uow:
            await self._require_active_user(uow, target_id)

            user1_id, user2_id = canonical_pair(actor_id, target_id)
            match = await uow.matches.get_by_pair(user1_id, user2_id, for_update=True)

            if match is None:
                match = Match.for_pair(actor_id, target_id, status=MatchStatus.PASSED)
                created = await uow.matches.create(match)
                await uow.commit()
                logger.info(
                    "match_created",
                    match_id=str(created.id),
                    actor_id=str(actor_id),
                    status=created.status.value,
                )
                return created

            if match.pass_():
                match = await uow.matches.update(match)
                await uow.commit()
                logger.info("match_passed", match_id=str(match.id), actor_id=str(actor_id))
            return match

    async def _pair_of(self, match_id: UUID) -> tuple[UUID, UUID]:
        async with self._uow_factory() as uow:
            match = await uow.matches.get(match_id)
        if not match:
            raise MatchNotFoundError(str(match_id))
        return match.pair

    @staticmethod
    async def _require_active_user(uow: IUnitOfWork, user_id: UUID) -> None:
        user = await uow.users.get(user_id)
        if not user or not user.is_active:
            raise UserNotFoundError(str(user_id))

    @staticmethod
    async def _annotate_score(uow: IUnitOfWork, match: Match) -> None:
        """Attach a compatibility score when both users have a scent profile."""
        profile1 = await uow.scent_profiles.get_for_user(match.user1_id)
        profile2 = await uow.scent_profiles.get_for_user(match.user2_id)
        if not profile1 or not profile2:
            return
        result = score(profile1, profile2)
        match.compatibility_score = result.percentage
        match.score_breakdown = result.breakdown
