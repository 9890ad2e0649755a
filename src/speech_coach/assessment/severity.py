"""Severity mapping and improvement detection for classifier outputs."""

from speech_coach.models.assessment import (
    ImprovementReport,
    Severity,
    SeverityEntry,
    severity_rank,
)

SEVERE_PROBABILITY = 0.8
MODERATE_PROBABILITY = 0.6

# Drop in dysarthria-positive confidence relative to baseline
MAJOR_IMPROVEMENT_DELTA = 0.10
MARGINAL_IMPROVEMENT_DELTA = 0.05


def map_severity(ensemble_pred: int, ensemble_prob: float) -> Severity:
    """Map an ensemble prediction to a severity level.

    A negative prediction is always mild. Positive predictions are graded by
    probability with fixed cut-offs and no hysteresis.
    """
    if ensemble_pred == 0:
        return Severity.MILD
    if ensemble_prob >= SEVERE_PROBABILITY:
        return Severity.SEVERE
    if ensemble_prob >= MODERATE_PROBABILITY:
        return Severity.MODERATE
    return Severity.MILD


def check_improvement(
    baseline: SeverityEntry | None, current: SeverityEntry
) -> ImprovementReport:
    """Compare a new entry against the baseline.

    A better severity rank wins outright. Otherwise a lower classifier
    confidence counts as clearer speech once it drops by more than 5 points.
    """
    if baseline is None:
        return ImprovementReport()

    baseline_rank = severity_rank(baseline.severity)
    current_rank = severity_rank(current.severity)
    if current_rank < baseline_rank:
        return ImprovementReport(
            improved=True,
            message=(
                f"Your severity improved from {baseline.severity} to "
                f"{current.severity}! Great progress!"
            ),
        )

    delta = baseline.confidence - current.confidence
    if delta > MAJOR_IMPROVEMENT_DELTA:
        return ImprovementReport(
            improved=True,
            message=(
                f"Your speech clarity improved by {delta * 100:.0f}%! "
                "Keep up the excellent work!"
            ),
        )
    if delta > MARGINAL_IMPROVEMENT_DELTA:
        return ImprovementReport(
            improved=True,
            message="Small improvement detected! You're making steady progress.",
        )
    return ImprovementReport()
