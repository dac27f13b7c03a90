"""
Provider Key Encryption

Users paste their own AI provider keys; we store them encrypted with a
server-side symmetric key (Fernet: AES-128-CBC + HMAC-SHA256) and only
decrypt inside the dispatcher for the duration of one call.
"""

from typing import Mapping, Optional

from cryptography.fernet import Fernet, InvalidToken

from budgetpages.config import get_settings


class EncryptionError(Exception):
    """Base exception for key encryption errors."""
    pass


class DecryptionError(EncryptionError):
    """Token is corrupt or was encrypted with a different key."""
    pass


class KeyCipher:
    """Symmetric encrypt/decrypt of short secrets."""

    def __init__(self, key: Optional[str] = None):
        if key is None:
            key = get_settings().security.encryption_key
        self._fernet = Fernet(key.encode() if isinstance(key, str) else key)

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            raise EncryptionError("Refusing to encrypt an empty value")
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        if not token:
            raise DecryptionError("Nothing to decrypt")
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise DecryptionError("Stored key could not be decrypted") from e

    def encrypt_keys(self, keys: Mapping[str, object]) -> dict[str, str]:
        """Encrypt every non-empty string value; drop the rest."""
        return {
            provider: self.encrypt(value)
            for provider, value in keys.items()
            if value and isinstance(value, str)
        }


def generate_key() -> str:
    """New random key for SECURITY_ENCRYPTION_KEY."""
    return Fernet.generate_key().decode("ascii")


def encrypt(value: str) -> str:
    return KeyCipher().encrypt(value)


def decrypt(value: str) -> str:
    return KeyCipher().decrypt(value)
