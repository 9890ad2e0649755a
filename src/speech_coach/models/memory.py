"""User memory model carried across conversations."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from speech_coach.models.assessment import Severity

PRACTICE_HISTORY_LIMIT = 20


class DifficultyLevel(StrEnum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class PracticeEntry(BaseModel):
    """One word drill offered to the user."""

    date: datetime = Field(default_factory=datetime.now)
    words: list[str] = Field(default_factory=list)
    success: bool = False


class UserMemory(BaseModel):
    primary_issue: str | None = None
    specific_sounds: list[str] = Field(default_factory=list)
    difficulty_level: DifficultyLevel = DifficultyLevel.BEGINNER
    practice_history: list[PracticeEntry] = Field(default_factory=list)
    last_words: list[str] = Field(default_factory=list)
    last_exercise: str | None = None
    severity_level: Severity | str | None = Field(default=None, union_mode="left_to_right")
    severity_confidence: float | None = None
