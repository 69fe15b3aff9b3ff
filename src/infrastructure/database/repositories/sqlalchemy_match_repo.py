"""SQLAlchemy implementation of Match repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.match import Match, MatchStatus
from infrastructure.database.models import MatchModel


class SQLAlchemyMatchRepository:
    """SQLAlchemy implementation of IMatchRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, match: Match) -> Match:
        """Insert a new match. The pair unique constraint fires on flush."""
        model = self._to_model(match)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get(self, match_id: UUID, for_update: bool = False) -> Match | None:
        """Get a match by ID, optionally locking the row."""
        stmt = select(MatchModel).where(MatchModel.id == match_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_pair(
        self, user1_id: UUID, user2_id: UUID, for_update: bool = False
    ) -> Match | None:
        """Get the match for a canonical user pair, optionally locking the row."""
        stmt = select(MatchModel).where(
            MatchModel.user1_id == user1_id,
            MatchModel.user2_id == user2_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def update(self, match: Match) -> Match:
        """Persist state changes of an existing match."""
        stmt = select(MatchModel).where(MatchModel.id == match.id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            raise ValueError(f"Match {match.id} not found")

        model.status = match.status.value
        model.compatibility_score = match.compatibility_score
        model.score_breakdown = match.score_breakdown
        model.user1_liked = match.user1_liked
        model.user2_liked = match.user2_liked
        model.matched_at = match.matched_at
        model.unmatched_at = match.unmatched_at
        model.expires_at = match.expires_at
        model.last_activity_at = match.last_activity_at
        model.updated_at = match.updated_at

        await self._session.flush()
        return self._to_entity(model)

    async def touch_activity(self, match_id: UUID, at: datetime) -> None:
        """Set the last-activity timestamp of a match."""
        stmt = (
            update(MatchModel)
            .where(MatchModel.id == match_id)
            .values(last_activity_at=at, updated_at=at)
        )
        await self._session.execute(stmt)

    async def get_for_user(
        self,
        user_id: UUID,
        status: MatchStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Match]:
        """Get matches involving a user, newest first."""
        stmt = select(MatchModel).where(
            or_(MatchModel.user1_id == user_id, MatchModel.user2_id == user_id)
        )
        if status is not None:
            stmt = stmt.where(MatchModel.status == status.value)

        stmt = stmt.order_by(
            func.coalesce(MatchModel.matched_at, MatchModel.created_at).desc(),
            MatchModel.id,
        ).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def count_for_user(self, user_id: UUID, status: MatchStatus) -> int:
        """Count matches of a status involving a user."""
        stmt = select(func.count(MatchModel.id)).where(
            or_(MatchModel.user1_id == user_id, MatchModel.user2_id == user_id),
            MatchModel.status == status.value,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def count_pending(self, user_id: UUID, liked_by_user: bool) -> int:
        """Count pending matches the user sent (True) or received (False)."""
        as_user1 = and_(MatchModel.user1_id == user_id, MatchModel.user1_liked.is_(liked_by_user))
        as_user2 = and_(MatchModel.user2_id == user_id, MatchModel.user2_liked.is_(liked_by_user))
        stmt = select(func.count(MatchModel.id)).where(
            MatchModel.status == MatchStatus.PENDING.value,
            or_(as_user1, as_user2),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def get_stale_pending(self, now: datetime, limit: int = 500) -> list[Match]:
        """Get pending matches whose expiry has passed."""
        stmt = (
            select(MatchModel)
            .where(
                MatchModel.status == MatchStatus.PENDING.value,
                MatchModel.expires_at.is_not(None),
                MatchModel.expires_at <= now,
            )
            .order_by(MatchModel.expires_at)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    def _to_entity(self, model: MatchModel) -> Match:
        """Convert ORM model to domain entity."""
        return Match(
            id=model.id,
            user1_id=model.user1_id,
            user2_id=model.user2_id,
            status=MatchStatus(model.status),
            compatibility_score=model.compatibility_score,
            score_breakdown=model.score_breakdown,
            user1_liked=model.user1_liked,
            user2_liked=model.user2_liked,
            created_at=model.created_at,
            updated_at=model.updated_at,
            matched_at=model.matched_at,
            unmatched_at=model.unmatched_at,
            expires_at=model.expires_at,
            last_activity_at=model.last_activity_at,
        )

    def _to_model(self, entity: Match) -> MatchModel:
        """Convert domain entity to ORM model."""
        return MatchModel(
            id=entity.id,
            user1_id=entity.user1_id,
            user2_id=entity.user2_id,
            status=entity.status.value,
            compatibility_score=entity.compatibility_score,
            score_breakdown=entity.score_breakdown,
            user1_liked=entity.user1_liked,
            user2_liked=entity.user2_liked,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            matched_at=entity.matched_at,
            unmatched_at=entity.unmatched_at,
            expires_at=entity.expires_at,
            last_activity_at=entity.last_activity_at,
        )
