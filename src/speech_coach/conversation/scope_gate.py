"""Topical scope gate run before any generation."""

import json
from typing import Any, Protocol

import structlog

from speech_coach.models.scope import ScopeLabel, ScopeVerdict

logger = structlog.get_logger()

HEURISTIC_CONFIDENCE = 0.6
UNPARSED_CONFIDENCE = 0.3
MAX_REASON_LENGTH = 200

OUT_OF_SCOPE_PHRASES = (
    "not about dysarthria",
    "out of scope",
    "not related to speech",
)

OUT_OF_SCOPE_MESSAGE = "Out of scope. Ask about dysarthria practice/explanations."


class ScopeClassifier(Protocol):
    async def classify(self, prompt: str) -> str: ...


def _default_confidence(label: ScopeLabel) -> float:
    return 0.5 if label == ScopeLabel.UNCERTAIN else 0.8


def _from_json(parsed: Any) -> ScopeVerdict:
    if not isinstance(parsed, dict):
        raise ValueError("classifier output is not a JSON object")
    label_raw = str(parsed.get("label") or "").lower()
    try:
        label = ScopeLabel(label_raw)
    except ValueError:
        label = ScopeLabel.UNCERTAIN

    raw_conf = parsed.get("confidence", parsed.get("score"))
    try:
        confidence = float(raw_conf)
    except (TypeError, ValueError):
        confidence = 0.0
    if not 0.0 < confidence <= 1.0:
        confidence = _default_confidence(label)

    reason = str(parsed.get("reason") or "")[:MAX_REASON_LENGTH]
    return ScopeVerdict(label=label, confidence=confidence, reason=reason)


def _from_heuristic(raw: str) -> ScopeVerdict:
    lower = raw.lower()
    # "disallowed" contains "allowed", so the narrower label goes first.
    if "disallowed" in lower or any(p in lower for p in OUT_OF_SCOPE_PHRASES):
        return ScopeVerdict(
            label=ScopeLabel.DISALLOWED,
            confidence=HEURISTIC_CONFIDENCE,
            reason="heuristic fallback (contains disallowed wording)",
        )
    if "allowed" in lower:
        return ScopeVerdict(
            label=ScopeLabel.ALLOWED,
            confidence=HEURISTIC_CONFIDENCE,
            reason="heuristic fallback (contains allowed wording)",
        )
    return ScopeVerdict(
        label=ScopeLabel.UNCERTAIN,
        confidence=UNPARSED_CONFIDENCE,
        reason="Could not parse classifier output",
    )


def parse_verdict(raw: str) -> ScopeVerdict:
    """Parse raw classifier text into a verdict; never raises.

    JSON is decoded from the first ``{`` onward; trailing prose is ignored.
    Anything unparseable falls back to a lexical scan for the label words.
    """
    raw = (raw or "").strip()
    start = raw.find("{")
    candidate = raw[start:] if start >= 0 else raw
    try:
        parsed, _ = json.JSONDecoder().raw_decode(candidate)
        return _from_json(parsed)
    except ValueError:
        return _from_heuristic(raw)


class PromptGate:
    """Classifies incoming text as allowed, disallowed or uncertain.

    Args:
        classifier: Scope classification oracle returning raw text.
    """

    def __init__(self, classifier: ScopeClassifier):
        self.classifier = classifier

    async def classify(self, text: str) -> ScopeVerdict:
        try:
            raw = await self.classifier.classify(text)
        except Exception:
            logger.exception("scope_classifier_failed")
            return ScopeVerdict(
                label=ScopeLabel.UNCERTAIN,
                confidence=0.0,
                reason="internal classifier error",
            )
        verdict = parse_verdict(raw)
        logger.info(
            "scope_classified",
            label=verdict.label.value,
            confidence=verdict.confidence,
        )
        return verdict

    async def check(self, text: str) -> ScopeVerdict:
        """Classify and log a rejection; callers inspect ``verdict.rejected``."""
        verdict = await self.classify(text)
        if verdict.rejected:
            logger.info("scope_gate_rejected", label=verdict.label.value, reason=verdict.reason)
        return verdict
