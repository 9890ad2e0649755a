"""Tests for the scope gate and classifier output parsing."""

from unittest.mock import AsyncMock

import pytest

from speech_coach.clients.scope_classifier import FEW_SHOT_EXAMPLES, build_messages
from speech_coach.conversation.scope_gate import PromptGate, parse_verdict
from speech_coach.models.scope import ScopeLabel, ScopeVerdict


class TestParseVerdict:
    def test_plain_json(self):
        verdict = parse_verdict('{"label": "allowed", "confidence": 0.92, "reason": "speech"}')
        assert verdict.label == ScopeLabel.ALLOWED
        assert verdict.confidence == 0.92
        assert verdict.reason == "speech"

    def test_json_after_preamble_and_trailing_text(self):
        raw = 'Sure:\n{"label": "disallowed", "confidence": 0.9}\nHope that helps'
        verdict = parse_verdict(raw)
        assert verdict.label == ScopeLabel.DISALLOWED
        assert verdict.confidence == 0.9

    def test_unknown_label_is_uncertain(self):
        verdict = parse_verdict('{"label": "maybe", "confidence": 0.4}')
        assert verdict.label == ScopeLabel.UNCERTAIN
        assert verdict.confidence == 0.4

    @pytest.mark.parametrize(
        "raw_conf, label, expected",
        [
            ("null", "allowed", 0.8),
            ("1.7", "disallowed", 0.8),
            ("0", "uncertain", 0.5),
            ('"high"', "allowed", 0.8),
        ],
    )
    def test_invalid_confidence_defaults(self, raw_conf, label, expected):
        verdict = parse_verdict(f'{{"label": "{label}", "confidence": {raw_conf}}}')
        assert verdict.confidence == expected

    def test_reason_truncated(self):
        verdict = parse_verdict('{"label": "allowed", "confidence": 0.9, "reason": "%s"}' % ("x" * 500))
        assert len(verdict.reason) == 200

    def test_heuristic_allowed(self):
        verdict = parse_verdict("Label: allowed")
        assert verdict.label == ScopeLabel.ALLOWED
        assert verdict.confidence == 0.6

    def test_heuristic_disallowed(self):
        verdict = parse_verdict("Label: disallowed")
        assert verdict.label == ScopeLabel.DISALLOWED
        assert verdict.confidence == 0.6

    def test_heuristic_out_of_scope_phrase(self):
        verdict = parse_verdict("This is not about dysarthria at all")
        assert verdict.label == ScopeLabel.DISALLOWED

    def test_heuristic_unparseable(self):
        verdict = parse_verdict("I cannot decide {broken")
        assert verdict.label == ScopeLabel.UNCERTAIN
        assert verdict.confidence == 0.3


class TestGateDecision:
    def test_uncertain_below_threshold_rejected(self):
        assert ScopeVerdict(label="uncertain", confidence=0.5).rejected is True

    def test_uncertain_above_threshold_proceeds(self):
        assert ScopeVerdict(label="uncertain", confidence=0.75).rejected is False

    def test_disallowed_always_rejected(self):
        assert ScopeVerdict(label="disallowed", confidence=0.99).rejected is True

    def test_allowed_low_confidence_proceeds(self):
        assert ScopeVerdict(label="allowed", confidence=0.1).rejected is False


class TestPromptGate:
    async def test_classify_uses_oracle(self):
        classifier = AsyncMock()
        classifier.classify.return_value = '{"label": "allowed", "confidence": 0.95}'
        gate = PromptGate(classifier)

        verdict = await gate.check("Give me /s/ words")

        classifier.classify.assert_awaited_once_with("Give me /s/ words")
        assert verdict.label == ScopeLabel.ALLOWED
        assert not verdict.rejected

    async def test_oracle_error_fails_toward_rejection(self):
        classifier = AsyncMock()
        classifier.classify.side_effect = RuntimeError("boom")
        gate = PromptGate(classifier)

        verdict = await gate.check("anything")

        assert verdict.label == ScopeLabel.UNCERTAIN
        assert verdict.confidence == 0.0
        assert verdict.reason == "internal classifier error"
        assert verdict.rejected


def test_classifier_messages_include_few_shot():
    messages = build_messages("What is dysarthria?")
    assert messages[0]["role"] == "system"
    assert "JSON" in messages[0]["content"]
    assert len(messages) == 2 + 2 * len(FEW_SHOT_EXAMPLES)
    assert messages[-1]["content"] == 'Classify this prompt: "What is dysarthria?"'
    labels = {ex["label"] for ex in FEW_SHOT_EXAMPLES}
    assert labels == {"allowed", "disallowed"}
