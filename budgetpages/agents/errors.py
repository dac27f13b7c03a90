"""
Dispatcher Errors

Every failure the AI dispatcher can raise carries an ``ErrorKind``, so
callers branch on the kind instead of matching provider error text.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MISSING_KEY = "missing_key"
    DECRYPTION_FAILED = "decryption_failed"
    MALFORMED_RESPONSE = "malformed_response"
    RATE_LIMITED = "rate_limited"
    PROVIDER_ERROR = "provider_error"
    UNSUPPORTED_PROVIDER = "unsupported_provider"

    @property
    def is_key_problem(self) -> bool:
        return self in (ErrorKind.MISSING_KEY, ErrorKind.DECRYPTION_FAILED)


class AIGenerationError(Exception):
    """Base exception for summary generation failures."""

    kind = ErrorKind.PROVIDER_ERROR

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class MissingKeyError(AIGenerationError):
    """User has no key on file for the provider."""

    kind = ErrorKind.MISSING_KEY


class DecryptionFailedError(AIGenerationError):
    """Stored key could not be decrypted."""

    kind = ErrorKind.DECRYPTION_FAILED


class MalformedResponseError(AIGenerationError):
    """Provider replied without a usable JSON object."""

    kind = ErrorKind.MALFORMED_RESPONSE


class UnsupportedProviderError(AIGenerationError):
    """Provider name is not one we can dispatch to."""

    kind = ErrorKind.UNSUPPORTED_PROVIDER


class ProviderError(AIGenerationError):
    """The provider call itself failed (HTTP error, empty reply, quota)."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        rate_limited: bool = False,
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        self.kind = ErrorKind.RATE_LIMITED if rate_limited else ErrorKind.PROVIDER_ERROR
        super().__init__(message, provider)
