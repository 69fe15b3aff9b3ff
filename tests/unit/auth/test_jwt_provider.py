"""Unit tests for JWTAuthProvider and the JWKS cache."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import httpx
import pytest
from jose import jwt as jose_jwt

from infrastructure.auth import jwt_provider as jwt_provider_module
from infrastructure.auth.jwt_provider import JWKSCache, JWTAuthProvider

JWKS_URL = "https://example.supabase.co/auth/v1/.well-known/jwks.json"


def _make_hs256_token(payload: dict, secret: str = "test-secret") -> str:
    return jose_jwt.encode(payload, secret, algorithm="HS256")


def _mock_client(jwks: dict | None = None, error: Exception | None = None) -> AsyncMock:
    response = MagicMock()
    response.json.return_value = jwks or {}
    response.raise_for_status = MagicMock()

    client = AsyncMock()
    if error is not None:
        client.get.side_effect = error
    else:
        client.get.return_value = response
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


@pytest.fixture
def hs256_provider() -> JWTAuthProvider:
    return JWTAuthProvider(
        secret_key="test-secret",
        algorithm="HS256",
        expire_minutes=30,
        jwks=JWKSCache(""),
    )


# --- HS256 claims ---


class TestValidateTokenClaims:
    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "user@example.com", "exp": 9999999999},
            {"sub": str(uuid4()), "exp": 9999999999},
            {"sub": "", "email": "user@example.com", "exp": 9999999999},
            {"sub": "not-a-uuid", "email": "user@example.com", "exp": 9999999999},
        ],
    )
    async def test_returns_none_for_unusable_claims(
        self, hs256_provider: JWTAuthProvider, payload: dict
    ):
        assert await hs256_provider.validate_token(_make_hs256_token(payload)) is None

    async def test_extracts_user(self, hs256_provider: JWTAuthProvider):
        user_id = uuid4()
        token = _make_hs256_token(
            {"sub": str(user_id), "email": "u@example.com", "role": "authenticated", "exp": 9999999999}
        )

        user = await hs256_provider.validate_token(token)

        assert user is not None
        assert user.id == user_id
        assert user.role == "authenticated"

    async def test_garbage_token_returns_none(self, hs256_provider: JWTAuthProvider):
        assert await hs256_provider.validate_token("garbage") is None


# --- JWKSCache ---


class TestJWKSCache:
    async def test_empty_url_returns_nothing(self):
        assert await JWKSCache("").get("any") is None

    async def test_fetches_and_caches_keys(self):
        client = _mock_client(
            {
                "keys": [
                    {"kid": "key-1", "kty": "EC"},
                    {"kty": "EC"},
                ]
            }
        )
        cache = JWKSCache(JWKS_URL)

        with patch.object(jwt_provider_module.httpx, "AsyncClient", return_value=client):
            first = await cache.get("key-1")
            second = await cache.get("key-1")

        assert first == {"kid": "key-1", "kty": "EC"}
        assert second == first
        assert client.get.await_count == 1

    async def test_refetches_once_on_unknown_kid(self):
        client = _mock_client({"keys": [{"kid": "old", "kty": "EC"}]})
        cache = JWKSCache(JWKS_URL)

        with patch.object(jwt_provider_module.httpx, "AsyncClient", return_value=client):
            await cache.get("old")
            missing = await cache.get("rotated")

        assert missing is None
        assert client.get.await_count == 2

    async def test_http_error_yields_no_key(self):
        client = _mock_client(error=httpx.ConnectError("refused"))
        cache = JWKSCache(JWKS_URL)

        with patch.object(jwt_provider_module.httpx, "AsyncClient", return_value=client):
            assert await cache.get("key-1") is None


# --- ES256 path ---


class TestES256:
    async def test_missing_kid_returns_none(self):
        jwks = AsyncMock(spec=JWKSCache)
        provider = JWTAuthProvider(secret_key="unused", jwks=jwks)

        assert await provider._decode_es256("dummy.token.value", {"alg": "ES256"}) is None
        jwks.get.assert_not_awaited()

    async def test_unknown_kid_returns_none(self):
        jwks = AsyncMock(spec=JWKSCache)
        jwks.get.return_value = None
        provider = JWTAuthProvider(secret_key="unused", jwks=jwks)

        result = await provider._decode_es256("dummy.token.value", {"alg": "ES256", "kid": "k"})

        assert result is None

    async def test_decodes_with_jwks_key(self):
        key_data = {"kid": "test-kid", "kty": "EC", "crv": "P-256"}
        payload = {"sub": str(uuid4()), "email": "es@example.com"}
        jwks = AsyncMock(spec=JWKSCache)
        jwks.get.return_value = key_data
        provider = JWTAuthProvider(secret_key="unused", jwks=jwks)

        with (
            patch.object(jwt_provider_module, "ECKey") as mock_eckey_cls,
            patch.object(jwt_provider_module.jwt, "decode", return_value=payload) as mock_decode,
        ):
            result = await provider._decode_es256(
                "es256.token.value", {"alg": "ES256", "kid": "test-kid"}
            )

        assert result == payload
        mock_eckey_cls.assert_called_once_with(key_data, algorithm="ES256")
        mock_decode.assert_called_once_with(
            "es256.token.value",
            mock_eckey_cls.return_value,
            algorithms=["ES256"],
            options={"verify_aud": False},
        )

    async def test_validate_token_takes_es256_path(self):
        user_id = uuid4()
        provider = JWTAuthProvider(secret_key="unused", jwks=AsyncMock(spec=JWKSCache))

        with (
            patch.object(
                jwt_provider_module.jwt,
                "get_unverified_header",
                return_value={"alg": "ES256", "kid": "k1"},
            ),
            patch.object(provider, "_decode_es256", new_callable=AsyncMock) as mock_es256,
        ):
            mock_es256.return_value = {"sub": str(user_id), "email": "es@example.com"}
            user = await provider.validate_token("es256.token.here")

        mock_es256.assert_awaited_once_with("es256.token.here", {"alg": "ES256", "kid": "k1"})
        assert user is not None
        assert user.id == user_id
