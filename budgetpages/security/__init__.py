"""Key encryption package."""

from budgetpages.security.encryption import (
    DecryptionError,
    EncryptionError,
    KeyCipher,
    decrypt,
    encrypt,
    generate_key,
)

__all__ = [
    "DecryptionError",
    "EncryptionError",
    "KeyCipher",
    "decrypt",
    "encrypt",
    "generate_key",
]
