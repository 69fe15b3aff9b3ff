"""Conversation service layer for encrypted direct messages between matches."""

from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

import structlog

from core.config import settings
from core.exceptions import (
    DecryptionError,
    InvalidArgumentError,
    MatchNotActiveError,
    MatchNotFoundError,
)
from domain.entities.match import Match, MatchStatus
from domain.entities.message import ConversationSummary, Message, MessageKind, MessageView
from domain.entities.user import UserSummary
from domain.repositories.unit_of_work import IUnitOfWork
from infrastructure.crypto.provider import IMessageCipher

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100


class ConversationService:
    """Service layer for sending, reading and summarising messages.

    Content is encrypted before it reaches the repository and decrypted
    per message on the way out, so one damaged row never hides the rest.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        cipher: IMessageCipher,
        max_length: int = settings.message_max_length,
    ) -> None:
        self._uow_factory = uow_factory
        self._cipher = cipher
        self._max_length = max_length

    async def send(
        self,
        user_id: UUID,
        match_id: UUID,
        content: str,
        kind: MessageKind = MessageKind.TEXT,
        media_url: str | None = None,
    ) -> MessageView:
        """Send a message to the other participant of a mutual match.

        Args:
            user_id: The sender.
            match_id: The match the message belongs to.
            content: Plaintext body, encrypted before it is stored.
            kind: Text or a media variant.
            media_url: Location of the media for non-text kinds.

        Returns:
            The stored message with its plaintext, framed for the sender.

        Raises:
            InvalidArgumentError: If content is empty or too long.
            MatchNotFoundError: If the match does not exist or the sender is not in it.
            MatchNotActiveError: If the match is not mutual.
        """
        content = content.strip()
        if not content:
            raise InvalidArgumentError("Message content must not be empty")
        if len(content) > self._max_length:
            raise InvalidArgumentError(
                f"Message content must be at most {self._max_length} characters",
                details={"max_length": self._max_length},
            )

        async with self._uow_factory() as uow:
            # Row lock keeps a concurrent unmatch from slipping in before the insert.
            match = await self._require_participant(uow, match_id, user_id, for_update=True)
            if match.status != MatchStatus.MUTUAL:
                raise MatchNotActiveError(str(match_id), match.status.value)

            now = datetime.utcnow()
            message = Message(
                match_id=match_id,
                sender_id=user_id,
                receiver_id=match.other_participant(user_id),
                payload=self._cipher.encrypt(content),
                kind=kind,
                media_url=media_url,
                sent_at=now,
            )
            created = await uow.messages.create(message)
            await uow.matches.touch_activity(match_id, now)
            await uow.commit()

        logger.info("message_sent", match_id=str(match_id), message_id=created.id)
        return self._view(created, user_id, content)

    async def list_messages(
        self,
        user_id: UUID,
        match_id: UUID,
        before: datetime | None = None,
        limit: int = settings.message_page_limit,
        before_id: int | None = None,
    ) -> list[MessageView]:
        """Get a page of messages in chronological order.

        Returns the newest ``limit`` messages sent strictly before ``before``
        (or the newest overall), oldest first. Past matches stay readable.

        Args:
            user_id: The reader.
            match_id: The match to read.
            before: ``sent_at`` of the oldest message already seen. Aware
                values are converted to naive UTC.
            limit: Page size, 1 to ``MAX_PAGE_SIZE``.
            before_id: ``id`` of that oldest message. Messages sharing its
                ``sent_at`` with a lower id are still returned.

        Raises:
            InvalidArgumentError: If limit is out of range.
            MatchNotFoundError: If the match does not exist or the user is not in it.
        """
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidArgumentError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        # Stored timestamps are naive UTC.
        if before is not None and before.tzinfo is not None:
            before = before.astimezone(timezone.utc).replace(tzinfo=None)

        async with self._uow_factory() as uow:
            await self._require_participant(uow, match_id, user_id)
            messages = await uow.messages.get_for_match(
                match_id, before=before, before_id=before_id, limit=limit
            )

        messages.sort(key=lambda m: (m.sent_at, m.id or 0))
        return [self._decrypt_view(m, user_id) for m in messages]

    async def mark_read(self, user_id: UUID, match_id: UUID) -> int:
        """Mark every unread message addressed to the user in a match as read.

        Returns:
            Number of messages newly marked; 0 when nothing was unread.
        """
        async with self._uow_factory() as uow:
            await self._require_participant(uow, match_id, user_id)
            count = await uow.messages.mark_read(match_id, user_id, datetime.utcnow())
            await uow.commit()
            return count

    async def list_conversations(self, user_id: UUID) -> list[ConversationSummary]:
        """List the user's mutual matches with last message and unread count.

        Ordered by most recent activity first.
        """
        async with self._uow_factory() as uow:
            matches = await uow.matches.get_for_user(user_id, status=MatchStatus.MUTUAL)
            match_ids = [m.id for m in matches]
            others = await uow.users.get_many([m.other_participant(user_id) for m in matches])
            latest = await uow.messages.get_latest_for_matches(match_ids)
            unread = await uow.messages.count_unread_by_match(user_id)

        summaries = []
        for match in matches:
            other = others.get(match.other_participant(user_id))
            last = latest.get(match.id)
            summaries.append(
                ConversationSummary(
                    match_id=match.id,
                    user=UserSummary.from_user(other) if other else None,
                    last_message=self._decrypt_view(last, user_id) if last else None,
                    unread_count=unread.get(match.id, 0),
                    last_activity_at=self._activity_time(match, last),
                )
            )

        summaries.sort(key=lambda s: s.last_activity_at or datetime.min, reverse=True)
        return summaries

    async def unread_count(self, user_id: UUID) -> int:
        """Total unread messages addressed to the user across all matches."""
        async with self._uow_factory() as uow:
            return await uow.messages.count_unread(user_id)

    # --- Internal helpers ---

    @staticmethod
    async def _require_participant(
        uow: IUnitOfWork,
        match_id: UUID,
        user_id: UUID,
        for_update: bool = False,
    ) -> Match:
        """Load a match the user takes part in. Raises MatchNotFoundError otherwise."""
        match = await uow.matches.get(match_id, for_update=for_update)
        if not match or not match.is_participant(user_id):
            raise MatchNotFoundError(str(match_id))
        return match

    @staticmethod
    def _activity_time(match: Match, last: Message | None) -> datetime | None:
        if last is not None:
            return last.sent_at
        return match.last_activity_at or match.matched_at or match.created_at

    def _decrypt_view(self, message: Message, user_id: UUID) -> MessageView:
        try:
            content = self._cipher.decrypt(message.payload)
        except DecryptionError:
            logger.warning(
                "message_decryption_failed",
                match_id=str(message.match_id),
                message_id=message.id,
            )
            return self._view(message, user_id, None, decryption_failed=True)
        return self._view(message, user_id, content)

    @staticmethod
    def _view(
        message: Message,
        user_id: UUID,
        content: str | None,
        decryption_failed: bool = False,
    ) -> MessageView:
        return MessageView(
            id=message.id,
            match_id=message.match_id,
            sender_id=message.sender_id,
            receiver_id=message.receiver_id,
            content=content,
            kind=message.kind,
            media_url=message.media_url,
            sent_at=message.sent_at,
            read_at=message.read_at,
            is_me=message.sender_id == user_id,
            decryption_failed=decryption_failed,
        )
