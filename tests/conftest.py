"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any, Callable

# Settings are read at import time, so the environment goes first.
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_ENV"] = "test"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.crypto.aes_gcm import AESGCMCipher
from infrastructure.database.models import Base
from infrastructure.database.session import build_engine, build_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork

TEST_JWT_SECRET = "test-secret-key"
TEST_ENCRYPTION_KEY = bytes(range(32))


# Compile JSONB as JSON for SQLite (used in tests)
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_: Any, compiler: Any, **kw: Any) -> str:
    return "JSON"


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """A file-backed SQLite database per test, with the schema created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'scentmatch.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def uow_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SQLAlchemyUnitOfWork]:
    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    return factory


@pytest.fixture
def cipher() -> AESGCMCipher:
    return AESGCMCipher(TEST_ENCRYPTION_KEY, associated_data="scentmatch-test")


@pytest.fixture
def auth_provider() -> JWTAuthProvider:
    """Create auth provider for testing."""
    return JWTAuthProvider(
        secret_key=TEST_JWT_SECRET,
        algorithm="HS256",
        expire_minutes=30,
    )


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client (no auth)."""
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def api_client(
    uow_factory: Callable[[], SQLAlchemyUnitOfWork],
    cipher: AESGCMCipher,
    auth_provider: JWTAuthProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client wired to the per-test database.

    This client:
    - Validates tokens issued by the test auth provider
    - Builds every service on the test Unit of Work factory
    - Encrypts messages with the test cipher
    """
    from api.dependencies.auth import get_auth_provider
    from api.v1.dependencies import (
        get_compatibility_service,
        get_conversation_service,
        get_match_service,
    )
    from core.locks import KeyedLockRegistry
    from domain.services.compatibility_service import CompatibilityService
    from domain.services.conversation_service import ConversationService
    from domain.services.match_service import MatchService
    from main import create_app

    app = create_app()
    match_service = MatchService(uow_factory, pair_locks=KeyedLockRegistry())

    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    app.dependency_overrides[get_match_service] = lambda: match_service
    app.dependency_overrides[get_conversation_service] = lambda: ConversationService(
        uow_factory, cipher=cipher
    )
    app.dependency_overrides[get_compatibility_service] = lambda: CompatibilityService(uow_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
