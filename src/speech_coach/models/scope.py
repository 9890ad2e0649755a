"""Scope gate verdict model."""

from enum import StrEnum

from pydantic import BaseModel, Field

SCOPE_CONFIDENCE_THRESHOLD = 0.7


class ScopeLabel(StrEnum):
    ALLOWED = "allowed"
    DISALLOWED = "disallowed"
    UNCERTAIN = "uncertain"


class ScopeVerdict(BaseModel):
    """Outcome of classifying a user message as in or out of scope."""

    label: ScopeLabel
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str = ""

    @property
    def rejected(self) -> bool:
        """Whether the turn must be refused before any generation."""
        if self.label == ScopeLabel.DISALLOWED:
            return True
        return (
            self.label == ScopeLabel.UNCERTAIN
            and self.confidence < SCOPE_CONFIDENCE_THRESHOLD
        )
