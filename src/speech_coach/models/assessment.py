"""Severity assessment models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

HISTORY_LIMIT = 50


class Severity(StrEnum):
    """Three-level clinical proxy derived from the audio classifier."""

    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

    @property
    def rank(self) -> int:
        return SEVERITY_RANKS[self.value]


SEVERITY_RANKS: dict[str, int] = {
    "mild": 1,
    "moderate": 2,
    "severe": 3,
}


def severity_rank(severity: str | None) -> int:
    """Rank a stored severity value; unknown values rank as moderate."""
    return SEVERITY_RANKS.get(str(severity or "").lower(), 2)


def as_severity(severity: str | None) -> Severity:
    """Known levels as they are; anything else is treated as moderate."""
    rank = severity_rank(severity)
    return next(s for s in Severity if s.rank == rank)


class ClassifierOutput(BaseModel):
    """Raw response of the audio severity classifier."""

    ensemble_pred: int = Field(ge=0, le=1)
    ensemble_prob: float = Field(ge=0.0, le=1.0)
    model_probs: dict[str, float] = Field(default_factory=dict)
    timestamp: str | None = None


class SeverityEntry(BaseModel):
    """A single severity snapshot.

    Stored levels outside the known set are kept as plain strings so older
    or hand-edited records still load; see ``severity_rank``.
    """

    severity: Severity | str = Field(union_mode="left_to_right")
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=datetime.now)
    sub_scores: dict[str, float] = Field(default_factory=dict)


class AssessmentRecord(BaseModel):
    """Per-user baseline/current/history triple."""

    current: SeverityEntry | None = None
    baseline: SeverityEntry | None = None
    history: list[SeverityEntry] = Field(default_factory=list)
    last_updated: datetime | None = None

    @property
    def has_baseline(self) -> bool:
        return self.baseline is not None


class ImprovementReport(BaseModel):
    """Improvement verdict of a new entry against the stored baseline."""

    improved: bool = False
    message: str = ""
