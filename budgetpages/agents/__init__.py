"""AI Agents package."""

from budgetpages.agents.ai_agents import (
    SYSTEM_PROMPT,
    SummaryAgent,
    resolve_provider,
)
from budgetpages.agents.errors import (
    AIGenerationError,
    DecryptionFailedError,
    ErrorKind,
    MalformedResponseError,
    MissingKeyError,
    ProviderError,
    UnsupportedProviderError,
)
from budgetpages.agents.providers import (
    ADAPTER_CLASSES,
    AnthropicAdapter,
    GoogleAdapter,
    HuggingFaceAdapter,
    OpenAIAdapter,
    OpenRouterAdapter,
    ProviderAdapter,
    default_adapters,
    extract_json,
)

__all__ = [
    "SYSTEM_PROMPT",
    "SummaryAgent",
    "resolve_provider",
    # Errors
    "AIGenerationError",
    "DecryptionFailedError",
    "ErrorKind",
    "MalformedResponseError",
    "MissingKeyError",
    "ProviderError",
    "UnsupportedProviderError",
    # Adapters
    "ADAPTER_CLASSES",
    "AnthropicAdapter",
    "GoogleAdapter",
    "HuggingFaceAdapter",
    "OpenAIAdapter",
    "OpenRouterAdapter",
    "ProviderAdapter",
    "default_adapters",
    "extract_json",
]
