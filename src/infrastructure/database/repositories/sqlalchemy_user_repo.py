"""SQLAlchemy implementations of the read-only User and ScentProfile repositories."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.user import ScentProfile, User
from infrastructure.database.models import ScentProfileModel, UserModel


class SQLAlchemyUserRepository:
    """SQLAlchemy implementation of IUserRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID) -> User | None:
        """Get a user by ID."""
        stmt = select(UserModel).where(UserModel.id == user_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_many(self, user_ids: list[UUID]) -> dict[UUID, User]:
        """Get several users keyed by ID. Unknown IDs are omitted."""
        if not user_ids:
            return {}
        stmt = select(UserModel).where(UserModel.id.in_(set(user_ids)))
        result = await self._session.execute(stmt)
        return {model.id: self._to_entity(model) for model in result.scalars()}

    def _to_entity(self, model: UserModel) -> User:
        """Convert ORM model to domain entity."""
        return User(
            id=model.id,
            email=model.email,
            first_name=model.first_name,
            last_name=model.last_name,
            bio=model.bio,
            photos=list(model.photos or []),
            city=model.city,
            state=model.state,
            is_active=model.is_active,
            created_at=model.created_at,
        )


class SQLAlchemyScentProfileRepository:
    """SQLAlchemy implementation of IScentProfileRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_for_user(self, user_id: UUID) -> ScentProfile | None:
        """Get the scent profile of a user."""
        stmt = select(ScentProfileModel).where(ScentProfileModel.user_id == user_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    def _to_entity(self, model: ScentProfileModel) -> ScentProfile:
        """Convert ORM model to domain entity."""
        return ScentProfile(
            id=model.id,
            user_id=model.user_id,
            scent_notes=list(model.scent_notes or []),
            intensity=model.intensity,
            preferred_notes=list(model.preferred_notes or []),
            avoid_notes=list(model.avoid_notes or []),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
