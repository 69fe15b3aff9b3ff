"""Message cipher protocol."""

from typing import Protocol

from domain.entities.message import EncryptedBundle


class IMessageCipher(Protocol):
    """Protocol for authenticated message encryption."""

    def encrypt(self, plaintext: str) -> EncryptedBundle:
        """
        Encrypt a message body.

        Args:
            plaintext: The text to protect

        Returns:
            A bundle that must be stored as a whole
        """
        ...

    def decrypt(self, bundle: EncryptedBundle) -> str:
        """
        Authenticate and decrypt a bundle produced by ``encrypt``.

        Raises:
            DecryptionError: If the bundle was tampered with, is malformed,
                or was sealed with a different key
        """
        ...
