"""Smoke tests for Pydantic models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from speech_coach.models.assessment import (
    AssessmentRecord,
    ClassifierOutput,
    Severity,
    SeverityEntry,
    as_severity,
    severity_rank,
)
from speech_coach.models.memory import DifficultyLevel, PracticeEntry, UserMemory
from speech_coach.models.progress import Milestone, ProgressMetrics


class TestUserMemory:
    def test_default_values(self):
        memory = UserMemory()
        assert memory.primary_issue is None
        assert memory.specific_sounds == []
        assert memory.difficulty_level == DifficultyLevel.BEGINNER
        assert memory.practice_history == []
        assert memory.severity_level is None

    def test_model_dump_json(self):
        memory = UserMemory(
            practice_history=[PracticeEntry(date=datetime(2026, 3, 1, 9, 30), words=["sun"])],
            severity_level=Severity.MILD,
        )
        data = memory.model_dump(mode="json")
        assert data["practice_history"][0]["date"] == "2026-03-01T09:30:00"
        assert data["practice_history"][0]["success"] is False
        assert data["severity_level"] == "mild"
        assert data["difficulty_level"] == "beginner"

    def test_invalid_difficulty(self):
        with pytest.raises(ValidationError):
            UserMemory(difficulty_level="expert")


class TestSeverity:
    def test_ranks(self):
        assert [s.rank for s in Severity] == [1, 2, 3]

    def test_unknown_rank_is_moderate(self):
        assert severity_rank("catastrophic") == 2
        assert severity_rank(None) == 2
        assert severity_rank("SEVERE") == 3


class TestClassifierOutput:
    def test_valid(self):
        output = ClassifierOutput(ensemble_pred=1, ensemble_prob=0.66)
        assert output.model_probs == {}
        assert output.timestamp is None

    @pytest.mark.parametrize("pred, prob", [(2, 0.5), (-1, 0.5), (1, 1.2), (0, -0.1)])
    def test_out_of_range(self, pred, prob):
        with pytest.raises(ValidationError):
            ClassifierOutput(ensemble_pred=pred, ensemble_prob=prob)


class TestAssessmentRecord:
    def test_empty(self):
        record = AssessmentRecord()
        assert not record.has_baseline
        assert record.history == []

    def test_round_trip_json(self):
        entry = SeverityEntry(severity=Severity.MODERATE, confidence=0.7, sub_scores={"rf": 0.7})
        record = AssessmentRecord(current=entry, baseline=entry, history=[entry])
        restored = AssessmentRecord(**record.model_dump(mode="json"))
        assert restored == record
        assert restored.has_baseline


class TestProgressMetrics:
    def test_defaults(self):
        progress = ProgressMetrics()
        assert progress.total_sessions == 0
        assert progress.success_rate == 0
        assert progress.milestones == []

    def test_success_rate_rounds(self):
        assert ProgressMetrics(total_sessions=3, successful_attempts=2).success_rate == 67

    def test_negative_sessions_rejected(self):
        with pytest.raises(ValidationError):
            ProgressMetrics(total_sessions=-1)

    def test_has_milestone(self):
        progress = ProgressMetrics(milestones=[Milestone(achievement="First")])
        assert progress.has_milestone("First")
        assert not progress.has_milestone("Second")


class TestUnknownSeverity:
    def test_unknown_level_loads_as_string(self):
        entry = SeverityEntry(severity="profound", confidence=0.5)
        assert entry.severity == "profound"
        assert severity_rank(entry.severity) == 2
        assert as_severity(entry.severity) == Severity.MODERATE

    def test_known_level_stays_enum(self):
        entry = SeverityEntry(**{"severity": "severe", "confidence": 0.9})
        assert entry.severity is Severity.SEVERE

    def test_memory_severity_level(self):
        assert UserMemory(severity_level="mild").severity_level is Severity.MILD
        assert UserMemory(severity_level="unknown").severity_level == "unknown"
