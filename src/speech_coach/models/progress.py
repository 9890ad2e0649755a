"""Aggregate progress counters for a user."""

from datetime import datetime

import structlog
from pydantic import BaseModel, Field, model_validator

logger = structlog.get_logger()

MILESTONE_SESSION_COUNT = 5
MILESTONE_SESSIONS_ACHIEVEMENT = "Completed 5 practice sessions"


class Milestone(BaseModel):
    date: datetime = Field(default_factory=datetime.now)
    achievement: str


class ProgressMetrics(BaseModel):
    """Session counts, success counts and milestone events."""

    total_sessions: int = Field(default=0, ge=0)
    successful_attempts: int = Field(default=0, ge=0)
    challenging_words: list[str] = Field(default_factory=list)
    improved_sounds: list[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=datetime.now)
    milestones: list[Milestone] = Field(default_factory=list)

    @model_validator(mode="after")
    def _attempts_within_sessions(self) -> "ProgressMetrics":
        # successful_attempts never exceeds total_sessions
        if self.successful_attempts > self.total_sessions:
            logger.warning(
                "successful_attempts_clamped",
                successful_attempts=self.successful_attempts,
                total_sessions=self.total_sessions,
            )
            self.successful_attempts = self.total_sessions
        return self

    @property
    def success_rate(self) -> int:
        """Percentage of successful attempts, 0 before the first session."""
        if self.total_sessions <= 0:
            return 0
        return round(100 * self.successful_attempts / self.total_sessions)

    def has_milestone(self, achievement: str) -> bool:
        return any(m.achievement == achievement for m in self.milestones)
