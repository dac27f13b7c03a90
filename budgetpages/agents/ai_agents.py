"""
Summary Agent

Given a user and a prompt built from their numbers, ask exactly one AI
provider for a {summary, insights, recommendations} reply.

CRITICAL BOUNDARIES:
- The agent NEVER computes budget figures. Callers do the arithmetic
  and hand over a finished prompt.
- The agent NEVER falls back by itself. Every failure is raised as a
  typed AIGenerationError and the caller decides what the user sees.
- A missing key fails BEFORE any network call.
- Decrypted keys live only for the duration of one call and are never
  logged.
"""

from typing import Optional

from budgetpages.agents.errors import (
    DecryptionFailedError,
    MissingKeyError,
    UnsupportedProviderError,
)
from budgetpages.agents.providers import ProviderAdapter, default_adapters
from budgetpages.log import get_logger
from budgetpages.models import AIProvider, AIResponse, DEFAULT_PROVIDER, User
from budgetpages.security import DecryptionError, KeyCipher


SYSTEM_PROMPT = """You are a financial advisor AI assistant. Analyze spending data and provide:
1. A brief summary of spending patterns
2. Key insights (as a list)
3. Actionable recommendations to save money (as a list)

Respond in JSON format:
{
  "summary": "Brief summary here",
  "insights": ["insight 1", "insight 2"],
  "recommendations": ["recommendation 1", "recommendation 2"]
}"""


logger = get_logger(__name__)


def resolve_provider(user: User, override: Optional[str] = None) -> str:
    """Explicit override, then the user's preference, then OpenAI."""
    return override or user.settings.preferred_ai_provider or DEFAULT_PROVIDER.value


class SummaryAgent:
    """
    Dispatches one summary request to one provider.

    Stateless apart from its collaborators; safe to share across requests.
    """

    def __init__(
        self,
        adapters: Optional[dict[AIProvider, ProviderAdapter]] = None,
        cipher: Optional[KeyCipher] = None,
    ):
        self._adapters = adapters if adapters is not None else default_adapters()
        self._cipher = cipher

    def _get_cipher(self) -> KeyCipher:
        if self._cipher is None:
            self._cipher = KeyCipher()
        return self._cipher

    async def generate(
        self,
        user: User,
        prompt: str,
        provider: Optional[str] = None,
    ) -> AIResponse:
        """
        Generate a structured summary for ``prompt``.

        Raises:
            UnsupportedProviderError: provider name is unknown
            MissingKeyError: user has no key for the provider
            DecryptionFailedError: the stored key does not decrypt
            ProviderError: the provider call failed (kind tells rate limit apart)
            MalformedResponseError: the reply had no JSON object
        """
        selected = resolve_provider(user, provider)

        try:
            adapter = self._adapters[AIProvider(selected)]
        except (ValueError, KeyError):
            raise UnsupportedProviderError(
                f"Unsupported AI provider: {selected}",
                provider=selected,
            )

        encrypted_key = user.ai_keys.get(selected)
        if not encrypted_key:
            raise MissingKeyError(
                f"No API key found for provider: {selected}",
                provider=selected,
            )

        try:
            api_key = self._get_cipher().decrypt(encrypted_key)
        except DecryptionError as e:
            raise DecryptionFailedError(
                f"Failed to decrypt API key for provider: {selected}",
                provider=selected,
            ) from e
        if not api_key:
            raise DecryptionFailedError(
                f"Failed to decrypt API key for provider: {selected}",
                provider=selected,
            )

        logger.info("ai_generation_started", provider=selected, user_id=user.id)
        text = await adapter.submit(api_key, SYSTEM_PROMPT, prompt)
        response = adapter.parse(text)
        logger.info(
            "ai_generation_completed",
            provider=selected,
            user_id=user.id,
            insights=len(response.insights),
            recommendations=len(response.recommendations),
        )
        return response
