"""Per-turn progress bookkeeping."""

from datetime import datetime
from enum import StrEnum

import structlog
from pydantic import BaseModel, Field

from speech_coach.models.memory import PRACTICE_HISTORY_LIMIT, PracticeEntry, UserMemory
from speech_coach.models.progress import (
    MILESTONE_SESSION_COUNT,
    MILESTONE_SESSIONS_ACHIEVEMENT,
    Milestone,
    ProgressMetrics,
)

logger = structlog.get_logger()

WORD_DRILL_EXERCISE = "word_drill"


class MilestoneState(StrEnum):
    BELOW_MILESTONE = "below_milestone"
    MILESTONE_RECORDED = "milestone_recorded"


def milestone_state(progress: ProgressMetrics) -> MilestoneState:
    if progress.has_milestone(MILESTONE_SESSIONS_ACHIEVEMENT):
        return MilestoneState.MILESTONE_RECORDED
    return MilestoneState.BELOW_MILESTONE


class ProgressUpdate(BaseModel):
    """Fields touched by one accumulation step."""

    memory_fields: set[str] = Field(default_factory=set)
    progress_fields: set[str] = Field(default_factory=set)
    milestone: Milestone | None = None

    @property
    def changed(self) -> bool:
        return bool(self.memory_fields or self.progress_fields)


class ProgressAccumulator:
    """Applies a turn's extracted practice words to memory and progress.

    A turn counts as a session only when it produced a practice list;
    other turns leave both documents untouched.
    """

    def apply(
        self,
        memory: UserMemory,
        progress: ProgressMetrics,
        practice_words: list[str],
        now: datetime | None = None,
    ) -> ProgressUpdate:
        update = ProgressUpdate()
        if not practice_words:
            return update

        now = now or datetime.now()
        words = list(practice_words)

        memory.practice_history.append(PracticeEntry(date=now, words=words, success=False))
        if len(memory.practice_history) > PRACTICE_HISTORY_LIMIT:
            memory.practice_history = memory.practice_history[-PRACTICE_HISTORY_LIMIT:]
        memory.last_words = words
        memory.last_exercise = WORD_DRILL_EXERCISE
        update.memory_fields |= {"practice_history", "last_words", "last_exercise"}

        progress.total_sessions += 1
        progress.last_updated = now
        update.progress_fields |= {"total_sessions", "last_updated"}

        if (
            progress.total_sessions == MILESTONE_SESSION_COUNT
            and milestone_state(progress) == MilestoneState.BELOW_MILESTONE
        ):
            milestone = Milestone(date=now, achievement=MILESTONE_SESSIONS_ACHIEVEMENT)
            progress.milestones.append(milestone)
            update.progress_fields.add("milestones")
            update.milestone = milestone
            logger.info("milestone_recorded", achievement=milestone.achievement)

        logger.info(
            "progress_updated",
            total_sessions=progress.total_sessions,
            word_count=len(words),
        )
        return update
