"""
AI Summary Models

One stored summary per (user, date, type). ``date`` is a YYYY-MM-DD
key: today for daily summaries, the most recent Sunday for weekly ones.

DESIGN DECISION: Fallback summaries carry ``degraded=True`` so clients
can tell "AI unavailable, here are the numbers" apart from a real AI
answer without sniffing the text.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from budgetpages.models.base import DocumentModel


class SummaryType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class AIResponse(DocumentModel):
    """Normalized reply from any provider."""

    summary: str = ""
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)

    @field_validator('summary', mode='before')
    @classmethod
    def coerce_summary(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator('insights', 'recommendations', mode='before')
    @classmethod
    def coerce_list(cls, v):
        """Providers sometimes answer with null or a single string."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if not isinstance(v, (list, tuple)):
            raise ValueError(f"expected a list of strings, got {type(v).__name__}")
        return [item if isinstance(item, str) else str(item) for item in v]


class AISummary(DocumentModel):
    """A generated (or fallback) spending summary."""

    id: Optional[str] = Field(default=None, alias="_id")
    user_id: str
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    type: SummaryType
    summary: str
    total_spent: float = 0.0
    insights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    degraded: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def key(self) -> tuple[str, str, str]:
        return self.user_id, self.date, self.type.value


class CronReport(DocumentModel):
    """Aggregate outcome of one weekly-email run."""

    total: int = 0
    success: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)
