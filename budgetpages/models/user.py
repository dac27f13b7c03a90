"""
User Models

The user is the root aggregate: it owns folders, pages and summaries,
and carries the settings snapshot that every budget calculation reads.

CRITICAL: ``ai_keys`` holds ENCRYPTED provider keys only. Plaintext keys
exist transiently inside the dispatcher and are never stored or served.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from budgetpages.models.base import DocumentModel


class AIProvider(str, Enum):
    """Supported AI text-generation providers."""
    OPENAI = "openai"
    GOOGLE = "google"
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"
    HUGGINGFACE = "huggingface"


DEFAULT_PROVIDER = AIProvider.OPENAI


class FixedExpense(DocumentModel):
    """A recurring monthly cost subtracted from the budget up front."""

    title: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(default=0.0)
    description: Optional[str] = None
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class UserSettings(DocumentModel):
    """
    Budget settings.

    Passed by value into the calculator; nothing downstream mutates it.
    """

    monthly_budget: float = Field(default=0.0)
    fixed_expenses: list[FixedExpense] = Field(default_factory=list)
    preferred_ai_provider: Optional[str] = Field(
        default=DEFAULT_PROVIDER.value,
        alias="preferredAIProvider",
    )
    currency: Optional[str] = Field(default="₹")


class EmailSettings(DocumentModel):
    """Opt-in flags for outbound mail."""

    weekly_reports_enabled: bool = False


class User(DocumentModel):
    """A signed-in user."""

    id: Optional[str] = Field(default=None, alias="_id")
    name: str = ""
    email: str
    image: Optional[str] = None
    ai_keys: dict[str, str] = Field(default_factory=dict, alias="aiKeys")
    settings: UserSettings = Field(default_factory=UserSettings)
    email_settings: EmailSettings = Field(default_factory=EmailSettings)
    onboarding_completed: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator('ai_keys', mode='before')
    @classmethod
    def drop_empty_keys(cls, v):
        """Absent and empty keys both mean 'not configured'."""
        if not v:
            return {}
        return {k: val for k, val in dict(v).items() if val}

    def has_key(self, provider: str) -> bool:
        return bool(self.ai_keys.get(provider))

    def key_status(self) -> dict[str, bool]:
        """Which providers have a key on file (no secrets)."""
        return {p.value: self.has_key(p.value) for p in AIProvider}

    def public_document(self) -> dict:
        """User as served to the client: everything but the keys."""
        doc = self.to_document()
        doc.pop("aiKeys", None)
        return doc
