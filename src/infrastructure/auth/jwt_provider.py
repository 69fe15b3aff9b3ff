"""JWT authentication provider.

Accessing the API requires a token issued by the account service. Two
signing schemes are accepted:

- ES256 tokens issued by Supabase Auth, verified against the project's
  JWKS document.
- HS256 tokens signed with ``JWT_SECRET_KEY``, used by internal callers
  and the test suite.

The caller's user ID is the ``sub`` claim.
"""

from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

import httpx
import structlog
from jose import JWTError, jwt
from jose.backends import ECKey

from core.config import settings
from infrastructure.auth.provider import TokenUser

logger = structlog.get_logger()


class JWKSCache:
    """Lazily fetched ``kid -> JWK`` mapping for a JWKS endpoint."""

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self._url = url
        self._timeout = timeout
        self._keys: dict[str, dict[str, Any]] | None = None

    async def get(self, kid: str) -> dict[str, Any] | None:
        """Look up a key, refetching once on a miss to follow key rotation."""
        keys = await self._load()
        if kid in keys:
            return keys[kid]
        self._keys = None
        return (await self._load()).get(kid)

    async def _load(self) -> dict[str, dict[str, Any]]:
        if self._keys is not None:
            return self._keys
        if not self._url:
            return {}

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(self._url, timeout=self._timeout)
                response.raise_for_status()
                document = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("jwks_fetch_failed", url=self._url)
            return {}

        self._keys = {key["kid"]: key for key in document.get("keys", []) if key.get("kid")}
        logger.info("jwks_fetched", key_count=len(self._keys))
        return self._keys


class JWTAuthProvider:
    """Validates bearer JWTs into a TokenUser."""

    def __init__(
        self,
        secret_key: str = settings.jwt_secret_key,
        algorithm: str = settings.jwt_algorithm,
        expire_minutes: int = settings.jwt_expire_minutes,
        jwks: JWKSCache | None = None,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes
        self._jwks = jwks or JWKSCache(settings.supabase_jwks_url)

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """
        Validate a JWT and extract the caller.

        Args:
            token: The JWT to validate

        Returns:
            TokenUser if valid, None if invalid, expired or missing claims
        """
        try:
            header = jwt.get_unverified_header(token)
            if header.get("alg") == "ES256":
                payload = await self._decode_es256(token, header)
            else:
                payload = jwt.decode(
                    token,
                    self._secret_key,
                    algorithms=[self._algorithm],
                    options={"verify_aud": False},
                )
        except JWTError:
            return None

        if payload is None:
            return None
        return self._to_user(payload)

    async def _decode_es256(self, token: str, header: dict) -> Optional[dict]:
        kid = header.get("kid")
        if not kid:
            return None

        key_data = await self._jwks.get(kid)
        if not key_data:
            logger.warning("jwks_key_not_found", kid=kid)
            return None

        return jwt.decode(
            token,
            ECKey(key_data, algorithm="ES256"),
            algorithms=["ES256"],
            options={"verify_aud": False},
        )

    @staticmethod
    def _to_user(payload: dict) -> Optional[TokenUser]:
        subject = payload.get("sub")
        email = payload.get("email")
        if not subject or not email:
            return None
        try:
            user_id = UUID(subject)
        except ValueError:
            return None
        return TokenUser(id=user_id, email=email, role=payload.get("role"))

    def create_token(self, user: TokenUser) -> str:
        """Create an HS256 token for a user. Used by tests and internal callers."""
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role or "authenticated",
            "aud": "authenticated",
            "exp": datetime.utcnow() + timedelta(minutes=self._expire_minutes),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
