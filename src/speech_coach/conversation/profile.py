"""Session profile assembled from a user's stored documents."""

import re

import structlog
from pydantic import BaseModel, Field

from speech_coach.models.assessment import AssessmentRecord, ImprovementReport
from speech_coach.models.memory import UserMemory
from speech_coach.models.progress import ProgressMetrics

logger = structlog.get_logger()

PROBLEM_KEYWORDS = (
    "problem",
    "trouble",
    "difficulty",
    "can't say",
    "struggle",
    "hard to",
)

# Short s/r/l/t/h clusters ("r", "th", "str") or an explicit "s-sound".
SOUND_PATTERN = re.compile(r"\b([srlth]+)\b|\b([srlth])-sound\b", re.IGNORECASE)


class SessionProfile(BaseModel):
    """Everything the composer needs to personalize one turn."""

    memory: UserMemory = Field(default_factory=UserMemory)
    progress: ProgressMetrics = Field(default_factory=ProgressMetrics)
    assessment: AssessmentRecord | None = None
    improvement: ImprovementReport | None = None


def describes_problem(text: str) -> bool:
    lower = text.lower().replace("’", "'")
    return any(kw in lower for kw in PROBLEM_KEYWORDS)


def extract_sounds(text: str) -> list[str]:
    """Distinct lowercase sound tokens in first-seen order."""
    sounds: dict[str, None] = {}
    for match in SOUND_PATTERN.finditer(text):
        token = (match.group(1) or match.group(2)).lower()
        sounds.setdefault(token, None)
    return list(sounds)


def infer_primary_issue(memory: UserMemory, text: str) -> bool:
    """Fill primary_issue/specific_sounds from a self-reported difficulty.

    Runs only while primary_issue is unset, so an issue once recorded is
    never overwritten by this heuristic.

    Returns:
        True if memory was changed.
    """
    if memory.primary_issue or not describes_problem(text):
        return False
    sounds = extract_sounds(text)
    if not sounds:
        return False
    memory.specific_sounds = sounds
    memory.primary_issue = f"Difficulty with {', '.join(sounds)} sounds"
    logger.info("primary_issue_detected", sounds=sounds)
    return True
