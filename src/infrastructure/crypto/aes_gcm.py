"""AES-256-GCM message cipher.

Each message gets a fresh random 96-bit nonce. The GCM tag is split off the
ciphertext so the stored bundle carries (iv, ciphertext, tag) explicitly:

    {"iv": "<24 hex>", "ciphertext": "<hex>", "tag": "<32 hex>"}
"""

import base64
import binascii
import os

import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from core.config import settings
from core.exceptions import DecryptionError
from domain.entities.message import EncryptedBundle

logger = structlog.get_logger()

KEY_BYTES = 32
IV_BYTES = 12
TAG_BYTES = 16


def parse_key(raw: str) -> bytes:
    """Decode a configured key given as 64 hex chars or urlsafe base64.

    Raises:
        ValueError: If the value does not decode to exactly 32 bytes.
    """
    raw = raw.strip()
    candidates = []
    try:
        candidates.append(bytes.fromhex(raw))
    except ValueError:
        pass
    try:
        candidates.append(base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)))
    except (binascii.Error, ValueError):
        pass

    for key in candidates:
        if len(key) == KEY_BYTES:
            return key
    raise ValueError("ENCRYPTION_KEY must decode to 32 bytes (hex or urlsafe base64)")


class AESGCMCipher:
    """Authenticated encryption for message payloads.

    The key is fixed at construction and never mutated, so one instance can
    be shared by all requests.
    """

    def __init__(self, key: bytes, associated_data: str = settings.encryption_aad) -> None:
        if len(key) != KEY_BYTES:
            raise ValueError(f"AES-256-GCM requires a {KEY_BYTES}-byte key")
        self._aead = AESGCM(key)
        self._aad = associated_data.encode("utf-8")

    @classmethod
    def from_settings(
        cls,
        encryption_key: str = settings.encryption_key,
        is_production: bool = settings.is_production,
    ) -> "AESGCMCipher":
        """Build the process-wide cipher from configuration.

        Production refuses to start without a key. Elsewhere a random key is
        generated and messages will not survive a restart.
        """
        if encryption_key:
            try:
                return cls(parse_key(encryption_key))
            except ValueError as exc:
                raise RuntimeError(str(exc)) from exc

        if is_production:
            raise RuntimeError("ENCRYPTION_KEY must be set in production")

        logger.warning(
            "encryption_key_missing",
            detail="ENCRYPTION_KEY not set; using a random key, stored messages will be unreadable after restart",
        )
        return cls(AESGCM.generate_key(bit_length=KEY_BYTES * 8))

    def encrypt(self, plaintext: str) -> EncryptedBundle:
        iv = os.urandom(IV_BYTES)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), self._aad)
        return EncryptedBundle(
            iv=iv.hex(),
            ciphertext=sealed[:-TAG_BYTES].hex(),
            tag=sealed[-TAG_BYTES:].hex(),
        )

    def decrypt(self, bundle: EncryptedBundle) -> str:
        try:
            iv = bytes.fromhex(bundle.iv)
            ciphertext = bytes.fromhex(bundle.ciphertext)
            tag = bytes.fromhex(bundle.tag)
        except (TypeError, ValueError) as exc:
            raise DecryptionError("Malformed encrypted payload") from exc

        if len(iv) != IV_BYTES or len(tag) != TAG_BYTES:
            raise DecryptionError("Malformed encrypted payload")

        try:
            plaintext = self._aead.decrypt(iv, ciphertext + tag, self._aad)
            return plaintext.decode("utf-8")
        except InvalidTag as exc:
            raise DecryptionError() from exc
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decrypted payload is not valid UTF-8") from exc
