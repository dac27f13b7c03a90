"""
Shared model configuration.

Documents are stored and served with camelCase keys (``monthlyBudget``,
``totalSpent``) and a Mongo-style ``_id``; Python code uses snake_case.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Base for every persisted or served model."""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )

    def to_document(self) -> dict:
        """Wire/database form: camelCase keys, JSON-safe values."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
