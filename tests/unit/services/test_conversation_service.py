"""Unit tests for Conversation service layer."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from core.exceptions import InvalidArgumentError, MatchNotActiveError, MatchNotFoundError
from domain.entities.match import Match, MatchStatus
from domain.entities.message import Message, MessageKind
from domain.entities.user import User
from domain.services.conversation_service import ConversationService
from infrastructure.crypto.aes_gcm import AESGCMCipher


@pytest.fixture
def cipher() -> AESGCMCipher:
    return AESGCMCipher(bytes(32), associated_data="unit-test")


@pytest.fixture
def service(uow, cipher: AESGCMCipher) -> ConversationService:
    return ConversationService(lambda: uow, cipher=cipher, max_length=1000)


@pytest.fixture
def mutual(user_id: UUID, other_user_id: UUID) -> Match:
    match = Match.for_pair(user_id, other_user_id)
    match.mark_liked(user_id)
    match.like(other_user_id)
    return match


def _stored(match: Match, sender: UUID, text: str, cipher: AESGCMCipher, **kwargs) -> Message:
    return Message(
        match_id=match.id,
        sender_id=sender,
        receiver_id=match.other_participant(sender),
        payload=cipher.encrypt(text),
        **kwargs,
    )


def _with_id(message: Message) -> Message:
    return replace(message, id=1)


# --- send() ---


class TestSend:
    async def test_send_encrypts_and_returns_plaintext_view(
        self,
        service: ConversationService,
        uow,
        cipher: AESGCMCipher,
        mutual: Match,
        user_id: UUID,
        other_user_id: UUID,
    ) -> None:
        uow.matches.get.return_value = mutual
        uow.messages.create.side_effect = _with_id

        view = await service.send(user_id, mutual.id, "  hello there  ")

        assert view.content == "hello there"
        assert view.is_me is True
        assert view.receiver_id == other_user_id
        assert view.kind == MessageKind.TEXT

        stored: Message = uow.messages.create.await_args.args[0]
        assert "hello" not in stored.payload.ciphertext
        assert cipher.decrypt(stored.payload) == "hello there"
        uow.matches.get.assert_awaited_once_with(mutual.id, for_update=True)
        uow.matches.touch_activity.assert_awaited_once_with(mutual.id, stored.sent_at)
        assert uow.committed

    async def test_send_media_message(
        self, service: ConversationService, uow, mutual: Match, user_id: UUID
    ) -> None:
        uow.matches.get.return_value = mutual
        uow.messages.create.side_effect = _with_id

        view = await service.send(
            user_id,
            mutual.id,
            "sample photo",
            kind=MessageKind.IMAGE,
            media_url="https://cdn.example.com/a.jpg",
        )

        assert view.kind == MessageKind.IMAGE
        assert view.media_url == "https://cdn.example.com/a.jpg"

    @pytest.mark.parametrize("content", ["", "   ", "x" * 1001])
    async def test_send_rejects_bad_length(
        self, service: ConversationService, uow, mutual: Match, user_id: UUID, content: str
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            await service.send(user_id, mutual.id, content)

        uow.messages.create.assert_not_awaited()

    async def test_send_accepts_max_length(
        self, service: ConversationService, uow, mutual: Match, user_id: UUID
    ) -> None:
        uow.matches.get.return_value = mutual
        uow.messages.create.side_effect = _with_id

        view = await service.send(user_id, mutual.id, "x" * 1000)

        assert len(view.content) == 1000

    @pytest.mark.parametrize(
        "status", [MatchStatus.PENDING, MatchStatus.PASSED, MatchStatus.UNMATCHED, MatchStatus.EXPIRED]
    )
    async def test_send_requires_mutual(
        self,
        service: ConversationService,
        uow,
        mutual: Match,
        user_id: UUID,
        status: MatchStatus,
    ) -> None:
        mutual.status = status
        uow.matches.get.return_value = mutual

        with pytest.raises(MatchNotActiveError) as exc_info:
            await service.send(user_id, mutual.id, "hi")

        assert exc_info.value.status_code == 403
        uow.messages.create.assert_not_awaited()

    async def test_send_by_outsider_is_not_found(
        self, service: ConversationService, uow, mutual: Match
    ) -> None:
        uow.matches.get.return_value = mutual

        with pytest.raises(MatchNotFoundError):
            await service.send(uuid4(), mutual.id, "hi")


# --- list_messages() ---


class TestListMessages:
    async def test_returns_oldest_first_framed_for_reader(
        self,
        service: ConversationService,
        uow,
        cipher: AESGCMCipher,
        mutual: Match,
        user_id: UUID,
        other_user_id: UUID,
    ) -> None:
        t0 = datetime(2026, 5, 1, 12, 0, 0)
        first = _stored(mutual, user_id, "first", cipher, id=1, sent_at=t0)
        second = _stored(mutual, other_user_id, "second", cipher, id=2, sent_at=t0)
        third = _stored(mutual, user_id, "third", cipher, id=3, sent_at=t0 + timedelta(seconds=1))
        uow.matches.get.return_value = mutual
        uow.messages.get_for_match.return_value = [third, second, first]

        views = await service.list_messages(other_user_id, mutual.id)

        assert [v.content for v in views] == ["first", "second", "third"]
        assert [v.is_me for v in views] == [False, True, False]

    async def test_decryption_failure_is_isolated(
        self,
        service: ConversationService,
        uow,
        cipher: AESGCMCipher,
        mutual: Match,
        user_id: UUID,
    ) -> None:
        t0 = datetime(2026, 5, 1, 12, 0, 0)
        good = _stored(mutual, user_id, "still readable", cipher, id=1, sent_at=t0)
        bad = _stored(mutual, user_id, "tampered", cipher, id=2, sent_at=t0 + timedelta(seconds=1))
        flipped = bytearray(bytes.fromhex(bad.payload.tag))
        flipped[0] ^= 0x80
        bad = replace(bad, payload=replace(bad.payload, tag=flipped.hex()))
        uow.matches.get.return_value = mutual
        uow.messages.get_for_match.return_value = [bad, good]

        views = await service.list_messages(user_id, mutual.id)

        assert views[0].content == "still readable"
        assert views[0].decryption_failed is False
        assert views[1].content is None
        assert views[1].decryption_failed is True

    async def test_readable_after_unmatch(
        self, service: ConversationService, uow, mutual: Match, user_id: UUID
    ) -> None:
        mutual.unmatch()
        uow.matches.get.return_value = mutual
        uow.messages.get_for_match.return_value = []

        assert await service.list_messages(user_id, mutual.id) == []

    async def test_passes_cursor_and_limit(
        self, service: ConversationService, uow, mutual: Match, user_id: UUID
    ) -> None:
        before = datetime(2026, 5, 1)
        uow.matches.get.return_value = mutual
        uow.messages.get_for_match.return_value = []

        await service.list_messages(user_id, mutual.id, before=before, limit=10)

        uow.messages.get_for_match.assert_awaited_once_with(
            mutual.id, before=before, before_id=None, limit=10
        )

    async def test_aware_cursor_becomes_naive_utc(
        self, service: ConversationService, uow, mutual: Match, user_id: UUID
    ) -> None:
        uow.matches.get.return_value = mutual
        uow.messages.get_for_match.return_value = []
        cursor = datetime(2026, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

        await service.list_messages(user_id, mutual.id, before=cursor, before_id=7, limit=10)

        kwargs = uow.messages.get_for_match.await_args.kwargs
        assert kwargs["before"] == datetime(2026, 5, 1, 10, 0)
        assert kwargs["before"].tzinfo is None
        assert kwargs["before_id"] == 7

    @pytest.mark.parametrize("limit", [0, 101])
    async def test_rejects_out_of_range_limit(
        self, service: ConversationService, mutual: Match, user_id: UUID, limit: int
    ) -> None:
        with pytest.raises(InvalidArgumentError):
            await service.list_messages(user_id, mutual.id, limit=limit)

    async def test_outsider_is_not_found(
        self, service: ConversationService, uow, mutual: Match
    ) -> None:
        uow.matches.get.return_value = mutual

        with pytest.raises(MatchNotFoundError):
            await service.list_messages(uuid4(), mutual.id)


# --- read state ---


class TestReadState:
    async def test_mark_read_returns_count(
        self, service: ConversationService, uow, mutual: Match, user_id: UUID
    ) -> None:
        uow.matches.get.return_value = mutual
        uow.messages.mark_read.return_value = 3

        assert await service.mark_read(user_id, mutual.id) == 3
        assert uow.messages.mark_read.await_args.args[:2] == (mutual.id, user_id)
        assert uow.committed

    async def test_mark_read_missing_match(self, service: ConversationService, uow, user_id: UUID) -> None:
        uow.matches.get.return_value = None

        with pytest.raises(MatchNotFoundError):
            await service.mark_read(user_id, uuid4())

    async def test_unread_count(self, service: ConversationService, uow, user_id: UUID) -> None:
        uow.messages.count_unread.return_value = 4

        assert await service.unread_count(user_id) == 4
        uow.messages.count_unread.assert_awaited_once_with(user_id)


# --- list_conversations() ---


class TestListConversations:
    async def test_orders_by_latest_activity(
        self, service: ConversationService, uow, cipher: AESGCMCipher, user_id: UUID
    ) -> None:
        quiet_partner, chatty_partner = uuid4(), uuid4()
        quiet = Match.for_pair(user_id, quiet_partner, status=MatchStatus.MUTUAL)
        quiet.matched_at = datetime(2026, 5, 3)
        chatty = Match.for_pair(user_id, chatty_partner, status=MatchStatus.MUTUAL)
        chatty.matched_at = datetime(2026, 5, 1)
        last = _stored(chatty, chatty_partner, "see you", cipher, id=9, sent_at=datetime(2026, 5, 4))

        uow.matches.get_for_user.return_value = [quiet, chatty]
        uow.users.get_many.return_value = {
            quiet_partner: User(id=quiet_partner, first_name="Quinn"),
            chatty_partner: User(id=chatty_partner, first_name="Cass"),
        }
        uow.messages.get_latest_for_matches.return_value = {chatty.id: last}
        uow.messages.count_unread_by_match.return_value = {chatty.id: 2}

        summaries = await service.list_conversations(user_id)

        assert [s.match_id for s in summaries] == [chatty.id, quiet.id]
        assert summaries[0].user.first_name == "Cass"
        assert summaries[0].last_message.content == "see you"
        assert summaries[0].last_message.is_me is False
        assert summaries[0].unread_count == 2
        assert summaries[1].last_message is None
        assert summaries[1].unread_count == 0
        assert summaries[1].last_activity_at == datetime(2026, 5, 3)
        uow.matches.get_for_user.assert_awaited_once_with(user_id, status=MatchStatus.MUTUAL)

    async def test_undecryptable_last_message_is_isolated(
        self, service: ConversationService, uow, cipher: AESGCMCipher, user_id: UUID
    ) -> None:
        broken_partner, fine_partner = uuid4(), uuid4()
        broken = Match.for_pair(user_id, broken_partner, status=MatchStatus.MUTUAL)
        fine = Match.for_pair(user_id, fine_partner, status=MatchStatus.MUTUAL)
        damaged = _stored(broken, broken_partner, "lost", cipher, id=3, sent_at=datetime(2026, 5, 5))
        damaged = replace(damaged, payload=replace(damaged.payload, iv="zz"))
        readable = _stored(fine, fine_partner, "hello", cipher, id=4, sent_at=datetime(2026, 5, 4))

        uow.matches.get_for_user.return_value = [broken, fine]
        uow.users.get_many.return_value = {}
        uow.messages.get_latest_for_matches.return_value = {broken.id: damaged, fine.id: readable}
        uow.messages.count_unread_by_match.return_value = {}

        summaries = await service.list_conversations(user_id)

        assert [s.match_id for s in summaries] == [broken.id, fine.id]
        assert summaries[0].last_message.content is None
        assert summaries[0].last_message.decryption_failed is True
        assert summaries[1].last_message.content == "hello"
        assert summaries[1].user is None
