"""SQLAlchemy implementation of Message repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.message import EncryptedBundle, Message, MessageKind
from infrastructure.database.models import MessageModel


class SQLAlchemyMessageRepository:
    """SQLAlchemy implementation of IMessageRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: Message) -> Message:
        """Insert a new message and return it with its assigned ID."""
        model = self._to_model(message)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_for_match(
        self,
        match_id: UUID,
        before: datetime | None = None,
        before_id: int | None = None,
        limit: int = 50,
    ) -> list[Message]:
        """Get the newest messages of a match, newest first."""
        stmt = select(MessageModel).where(MessageModel.match_id == match_id)
        if before is not None and before_id is not None:
            # Keyset on (sent_at, id); ties on sent_at fall back to id.
            stmt = stmt.where(
                or_(
                    MessageModel.sent_at < before,
                    and_(MessageModel.sent_at == before, MessageModel.id < before_id),
                )
            )
        elif before is not None:
            stmt = stmt.where(MessageModel.sent_at < before)
        stmt = stmt.order_by(MessageModel.sent_at.desc(), MessageModel.id.desc()).limit(limit)

        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_latest_for_matches(self, match_ids: list[UUID]) -> dict[UUID, Message]:
        """Get the most recent message of each match."""
        if not match_ids:
            return {}

        latest_ids = (
            select(func.max(MessageModel.id))
            .where(MessageModel.match_id.in_(match_ids))
            .group_by(MessageModel.match_id)
        )
        stmt = select(MessageModel).where(MessageModel.id.in_(latest_ids))
        result = await self._session.execute(stmt)
        return {model.match_id: self._to_entity(model) for model in result.scalars()}

    async def mark_read(self, match_id: UUID, receiver_id: UUID, at: datetime) -> int:
        """Stamp read_at on unread messages addressed to a user. Returns count updated."""
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.match_id == match_id,
                MessageModel.receiver_id == receiver_id,
                MessageModel.read_at.is_(None),
            )
            .values(read_at=at)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def count_unread(self, receiver_id: UUID) -> int:
        """Count unread messages addressed to a user across all matches."""
        stmt = select(func.count(MessageModel.id)).where(
            MessageModel.receiver_id == receiver_id,
            MessageModel.read_at.is_(None),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def count_unread_by_match(self, receiver_id: UUID) -> dict[UUID, int]:
        """Count unread messages addressed to a user, grouped by match."""
        stmt = (
            select(MessageModel.match_id, func.count(MessageModel.id))
            .where(
                MessageModel.receiver_id == receiver_id,
                MessageModel.read_at.is_(None),
            )
            .group_by(MessageModel.match_id)
        )
        result = await self._session.execute(stmt)
        return {match_id: count for match_id, count in result.all()}

    def _to_entity(self, model: MessageModel) -> Message:
        """Convert ORM model to domain entity."""
        return Message(
            id=model.id,
            match_id=model.match_id,
            sender_id=model.sender_id,
            receiver_id=model.receiver_id,
            payload=EncryptedBundle(
                iv=model.iv,
                ciphertext=model.ciphertext,
                tag=model.auth_tag,
            ),
            kind=MessageKind(model.kind),
            media_url=model.media_url,
            sent_at=model.sent_at,
            read_at=model.read_at,
        )

    def _to_model(self, entity: Message) -> MessageModel:
        """Convert domain entity to ORM model."""
        return MessageModel(
            id=entity.id,
            match_id=entity.match_id,
            sender_id=entity.sender_id,
            receiver_id=entity.receiver_id,
            iv=entity.payload.iv,
            ciphertext=entity.payload.ciphertext,
            auth_tag=entity.payload.tag,
            kind=entity.kind.value,
            media_url=entity.media_url,
            sent_at=entity.sent_at,
            read_at=entity.read_at,
        )
