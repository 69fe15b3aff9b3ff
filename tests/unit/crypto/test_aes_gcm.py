"""Unit tests for the AES-256-GCM message cipher."""

import base64
import os
from dataclasses import replace

import pytest

from core.exceptions import DecryptionError
from domain.entities.message import EncryptedBundle
from infrastructure.crypto.aes_gcm import IV_BYTES, TAG_BYTES, AESGCMCipher, parse_key

KEY = bytes(range(32))


def _flip_first_bit(hex_value: str) -> str:
    raw = bytearray(bytes.fromhex(hex_value))
    raw[0] ^= 0x01
    return raw.hex()


@pytest.fixture
def cipher() -> AESGCMCipher:
    return AESGCMCipher(KEY, associated_data="test-aad")


class TestRoundTrip:
    @pytest.mark.parametrize(
        "plaintext",
        ["hello", "", "Bergamot & vétiver 🌿 香水", "x" * 1000],
    )
    def test_decrypt_returns_original(self, cipher: AESGCMCipher, plaintext: str) -> None:
        assert cipher.decrypt(cipher.encrypt(plaintext)) == plaintext

    def test_bundle_is_hex_with_expected_lengths(self, cipher: AESGCMCipher) -> None:
        bundle = cipher.encrypt("hello")

        assert len(bytes.fromhex(bundle.iv)) == IV_BYTES
        assert len(bytes.fromhex(bundle.tag)) == TAG_BYTES
        assert len(bytes.fromhex(bundle.ciphertext)) == len("hello")

    def test_fresh_iv_per_message(self, cipher: AESGCMCipher) -> None:
        first, second = cipher.encrypt("same"), cipher.encrypt("same")

        assert first.iv != second.iv
        assert first.ciphertext != second.ciphertext


class TestTamperDetection:
    def test_flipped_ciphertext_bit_fails(self, cipher: AESGCMCipher) -> None:
        bundle = cipher.encrypt("meet at the perfume bar")
        tampered = replace(bundle, ciphertext=_flip_first_bit(bundle.ciphertext))

        with pytest.raises(DecryptionError):
            cipher.decrypt(tampered)

    def test_flipped_tag_bit_fails(self, cipher: AESGCMCipher) -> None:
        bundle = cipher.encrypt("meet at the perfume bar")
        tampered = replace(bundle, tag=_flip_first_bit(bundle.tag))

        with pytest.raises(DecryptionError):
            cipher.decrypt(tampered)

    def test_flipped_iv_bit_fails(self, cipher: AESGCMCipher) -> None:
        bundle = cipher.encrypt("meet at the perfume bar")
        tampered = replace(bundle, iv=_flip_first_bit(bundle.iv))

        with pytest.raises(DecryptionError):
            cipher.decrypt(tampered)

    def test_wrong_key_fails(self, cipher: AESGCMCipher) -> None:
        bundle = cipher.encrypt("secret")
        other = AESGCMCipher(os.urandom(32), associated_data="test-aad")

        with pytest.raises(DecryptionError):
            other.decrypt(bundle)

    def test_different_associated_data_fails(self, cipher: AESGCMCipher) -> None:
        bundle = cipher.encrypt("secret")
        other = AESGCMCipher(KEY, associated_data="another-app")

        with pytest.raises(DecryptionError):
            other.decrypt(bundle)

    @pytest.mark.parametrize(
        "bundle",
        [
            EncryptedBundle(iv="zz", ciphertext="00", tag="00" * TAG_BYTES),
            EncryptedBundle(iv="00" * 8, ciphertext="00", tag="00" * TAG_BYTES),
            EncryptedBundle(iv="00" * IV_BYTES, ciphertext="00", tag="00" * 4),
            EncryptedBundle(iv="00" * IV_BYTES, ciphertext="not-hex", tag="00" * TAG_BYTES),
        ],
    )
    def test_malformed_bundle_fails(self, cipher: AESGCMCipher, bundle: EncryptedBundle) -> None:
        with pytest.raises(DecryptionError) as exc_info:
            cipher.decrypt(bundle)

        assert exc_info.value.status_code == 422


class TestKeyHandling:
    def test_parse_hex_key(self) -> None:
        assert parse_key(KEY.hex()) == KEY

    def test_parse_base64_key(self) -> None:
        assert parse_key(base64.urlsafe_b64encode(KEY).decode()) == KEY

    def test_parse_short_key_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_key("abcd")

    def test_constructor_rejects_short_key(self) -> None:
        with pytest.raises(ValueError):
            AESGCMCipher(b"short")

    def test_from_settings_uses_configured_key(self) -> None:
        configured = AESGCMCipher.from_settings(encryption_key=KEY.hex(), is_production=True)
        reference = AESGCMCipher(KEY)

        assert reference.decrypt(configured.encrypt("hi")) == "hi"

    def test_from_settings_malformed_key_fails_startup(self) -> None:
        with pytest.raises(RuntimeError):
            AESGCMCipher.from_settings(encryption_key="not-a-key", is_production=False)

    def test_from_settings_missing_key_in_production_fails(self) -> None:
        with pytest.raises(RuntimeError):
            AESGCMCipher.from_settings(encryption_key="", is_production=True)

    def test_from_settings_missing_key_outside_production_uses_random_key(self) -> None:
        first = AESGCMCipher.from_settings(encryption_key="", is_production=False)
        second = AESGCMCipher.from_settings(encryption_key="", is_production=False)

        assert first.decrypt(first.encrypt("hi")) == "hi"
        with pytest.raises(DecryptionError):
            second.decrypt(first.encrypt("hi"))
