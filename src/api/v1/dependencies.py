"""Dependency injection factories for API v1."""

from functools import lru_cache
from typing import Callable

from core.locks import KeyedLockRegistry
from domain.services.compatibility_service import CompatibilityService
from domain.services.conversation_service import ConversationService
from domain.services.match_service import MatchService
from infrastructure.crypto.aes_gcm import AESGCMCipher
from infrastructure.crypto.provider import IMessageCipher
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_cipher() -> IMessageCipher:
    """Process-wide message cipher, built once from settings."""
    return AESGCMCipher.from_settings()


@lru_cache
def get_pair_locks() -> KeyedLockRegistry:
    """Process-wide registry of per-pair locks."""
    return KeyedLockRegistry()


@lru_cache
def get_match_service() -> MatchService:
    """Get Match service instance."""
    return MatchService(get_uow_factory(), pair_locks=get_pair_locks())


@lru_cache
def get_conversation_service() -> ConversationService:
    """Get Conversation service instance."""
    return ConversationService(get_uow_factory(), cipher=get_cipher())


@lru_cache
def get_compatibility_service() -> CompatibilityService:
    """Get Compatibility service instance."""
    return CompatibilityService(get_uow_factory())
