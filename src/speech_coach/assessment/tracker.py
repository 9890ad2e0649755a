"""Longitudinal severity tracking against a fixed baseline."""

from datetime import datetime
from enum import StrEnum

import structlog

from speech_coach.assessment.severity import check_improvement, map_severity
from speech_coach.models.assessment import (
    HISTORY_LIMIT,
    AssessmentRecord,
    ClassifierOutput,
    ImprovementReport,
    SeverityEntry,
)

logger = structlog.get_logger()


class TrackerState(StrEnum):
    UNINITIALIZED = "uninitialized"
    HAS_BASELINE = "has_baseline"


def _parse_timestamp(value: str | None) -> datetime:
    if value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            logger.debug("classifier_timestamp_unparsed", value=value)
    return datetime.now()


def entry_from_output(output: ClassifierOutput) -> SeverityEntry:
    """Build a severity entry from a raw classifier response."""
    return SeverityEntry(
        severity=map_severity(output.ensemble_pred, output.ensemble_prob),
        confidence=output.ensemble_prob,
        timestamp=_parse_timestamp(output.timestamp),
        sub_scores=dict(output.model_probs),
    )


class AssessmentTracker:
    """State machine over one user's AssessmentRecord.

    The only transition that writes the baseline is
    UNINITIALIZED -> HAS_BASELINE; once a baseline exists it is never
    replaced. History keeps the 50 most recent entries.

    Args:
        record: Previously stored record, or None for a new user.
    """

    def __init__(self, record: AssessmentRecord | None = None):
        self._record = record.model_copy(deep=True) if record else AssessmentRecord()
        self._baseline_written = False

    @property
    def state(self) -> TrackerState:
        if self._record.baseline is None:
            return TrackerState.UNINITIALIZED
        return TrackerState.HAS_BASELINE

    @property
    def record(self) -> AssessmentRecord:
        return self._record

    @property
    def baseline_written(self) -> bool:
        """Whether the last update created the baseline."""
        return self._baseline_written

    def update(self, output: ClassifierOutput) -> ImprovementReport:
        """Record a classifier output and report improvement.

        The verdict compares the new entry with the baseline as it stood
        before this update, so the very first entry never reports improvement.
        """
        entry = entry_from_output(output)
        report = check_improvement(self._record.baseline, entry)

        self._baseline_written = False
        if self.state == TrackerState.UNINITIALIZED:
            self._record.baseline = entry
            self._baseline_written = True

        self._record.current = entry
        self._record.history.append(entry)
        if len(self._record.history) > HISTORY_LIMIT:
            self._record.history = self._record.history[-HISTORY_LIMIT:]
        self._record.last_updated = datetime.now()

        logger.info(
            "assessment_updated",
            severity=str(entry.severity),
            confidence=entry.confidence,
            baseline_set=self._baseline_written,
            history_size=len(self._record.history),
        )
        if report.improved:
            logger.info("improvement_detected", message=report.message)
        return report

    def changed_fields(self) -> set[str]:
        """Fields to persist after an update; baseline only when just created."""
        fields = {"current", "history", "last_updated"}
        if self._baseline_written:
            fields.add("baseline")
        return fields
