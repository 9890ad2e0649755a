"""Per-turn orchestration connecting the gate, oracles and stored state."""

import asyncio
import functools

import structlog
from pydantic import BaseModel, Field

from speech_coach.analysis.practice_words import extract_practice_words
from speech_coach.assessment.tracker import AssessmentTracker
from speech_coach.clients.generative import GENERATION_FALLBACK, GenerativeClient
from speech_coach.clients.scope_classifier import ScopeClassifierClient
from speech_coach.clients.severity_classifier import SeverityClassifierClient
from speech_coach.clients.transcription import TranscriptionClient
from speech_coach.config import Settings, get_settings
from speech_coach.conversation.composer import PromptComposer, get_prompt_composer
from speech_coach.conversation.profile import SessionProfile, infer_primary_issue
from speech_coach.conversation.scope_gate import OUT_OF_SCOPE_MESSAGE, PromptGate
from speech_coach.errors import OracleUnavailableError, StoreError
from speech_coach.models.assessment import (
    AssessmentRecord,
    ClassifierOutput,
    ImprovementReport,
)
from speech_coach.models.scope import ScopeVerdict
from speech_coach.progress.accumulator import ProgressAccumulator
from speech_coach.storage.documents import (
    DocumentKind,
    DocumentStore,
    JsonDocumentStore,
    validate_user_id,
)
from speech_coach.storage.profiles import (
    ensure_profile,
    load_assessment,
    load_memory,
    load_progress,
    save_fields,
)

logger = structlog.get_logger()

NO_TRANSCRIPT_REPLY = (
    "I heard a sound but couldn't recognize a word. Please try saying a target "
    "word (for example: 'sip', 'sun', 'see') so I can evaluate your pronunciation."
)
AUDIO_OUT_OF_SCOPE_REPLY = (
    "Your question is outside the assistant's scope. Try asking about dysarthria "
    "pronunciation or speech practice."
)


class TurnResult(BaseModel):
    answer: str
    practice_words: list[str] = Field(default_factory=list)
    verdict: ScopeVerdict | None = None
    rejected: bool = False
    memory_updated: bool = False


class AudioTurnResult(TurnResult):
    transcript: str = ""
    classifier_result: ClassifierOutput | None = None
    improvement: ImprovementReport | None = None


class BaselineResult(BaseModel):
    classifier_result: ClassifierOutput
    improvement: ImprovementReport
    record: AssessmentRecord


class TurnProcessor:
    """Handles one user turn against durable per-user documents.

    Snapshot reads feed the prompt; the writes that follow a reply re-read
    memory and progress inside ``store.transaction`` so concurrent turns for
    the same user never lose an increment. No lock is held across oracle calls.

    Args:
        store: Per-user document store.
        gate: Scope gate run before any generation.
        generator: Generative text oracle.
        transcriber: Speech-to-text oracle.
        severity_classifier: Audio severity classifier oracle.
    """

    def __init__(
        self,
        store: DocumentStore,
        gate: PromptGate,
        generator: GenerativeClient,
        transcriber: TranscriptionClient,
        severity_classifier: SeverityClassifierClient,
        composer: PromptComposer | None = None,
        accumulator: ProgressAccumulator | None = None,
    ):
        self.store = store
        self.gate = gate
        self.generator = generator
        self.transcriber = transcriber
        self.severity_classifier = severity_classifier
        self.composer = composer or get_prompt_composer()
        self.accumulator = accumulator or ProgressAccumulator()

    @classmethod
    def from_settings(cls, settings: Settings) -> "TurnProcessor":
        return cls(
            store=JsonDocumentStore(settings.users_dir),
            gate=PromptGate(
                ScopeClassifierClient(
                    api_key=settings.openai_api_key,
                    model=settings.scope_classifier_model,
                )
            ),
            generator=GenerativeClient(
                api_key=settings.openai_api_key,
                model=settings.generation_model,
            ),
            transcriber=TranscriptionClient(
                api_key=settings.openai_api_key,
                model=settings.transcription_model,
            ),
            severity_classifier=SeverityClassifierClient(
                url=settings.severity_classifier_url,
                timeout=settings.severity_classifier_timeout_seconds,
            ),
        )

    async def text_turn(
        self, user_id: str, prompt: str, chat_id: str, model: str | None = None
    ) -> TurnResult:
        """Gate, personalize, generate and record a typed message."""
        validate_user_id(user_id)
        log = logger.bind(user_id=user_id, chat_id=chat_id)

        verdict = await self.gate.check(prompt)
        if verdict.rejected:
            return TurnResult(answer=OUT_OF_SCOPE_MESSAGE, verdict=verdict, rejected=True)

        answer, words, memory_updated = await self._respond(user_id, prompt, model)
        log.info("text_turn_complete", practice_words=len(words))
        return TurnResult(
            answer=answer,
            practice_words=words,
            verdict=verdict,
            memory_updated=memory_updated,
        )

    async def audio_turn(
        self, user_id: str, audio: bytes, chat_id: str, model: str | None = None
    ) -> AudioTurnResult:
        """Assess and transcribe a recording, then answer the transcript.

        The severity classifier runs alongside transcription; its failure
        only means no assessment data for this turn.
        """
        validate_user_id(user_id)
        log = logger.bind(user_id=user_id, chat_id=chat_id)

        (classifier_result, improvement), transcript = await asyncio.gather(
            self._assess(user_id, audio),
            self.transcriber.transcribe(audio),
        )

        if not transcript:
            log.info("audio_turn_no_transcript")
            return AudioTurnResult(
                answer=NO_TRANSCRIPT_REPLY,
                classifier_result=classifier_result,
                improvement=improvement,
            )

        verdict = await self.gate.check(transcript)
        if verdict.rejected:
            return AudioTurnResult(
                answer=AUDIO_OUT_OF_SCOPE_REPLY,
                verdict=verdict,
                rejected=True,
                transcript=transcript,
                classifier_result=classifier_result,
                improvement=improvement,
            )

        answer, words, memory_updated = await self._respond(
            user_id, transcript, model, improvement=improvement
        )
        log.info(
            "audio_turn_complete",
            practice_words=len(words),
            assessed=classifier_result is not None,
        )
        return AudioTurnResult(
            answer=answer,
            practice_words=words,
            verdict=verdict,
            memory_updated=memory_updated,
            transcript=transcript,
            classifier_result=classifier_result,
            improvement=improvement,
        )

    async def baseline_assessment(self, user_id: str, audio: bytes) -> BaselineResult:
        """Initial assessment: classify a recording without conversation.

        Raises:
            OracleUnavailableError: The classifier gave no result.
        """
        validate_user_id(user_id)
        output = await self.severity_classifier.infer(audio, user_id)
        if output is None:
            raise OracleUnavailableError("Severity classifier unavailable")

        improvement, record = self.record_assessment(user_id, output)
        with self.store.transaction(user_id):
            memory = load_memory(self.store, user_id)
            memory.severity_level = record.current.severity
            memory.severity_confidence = record.current.confidence
            save_fields(
                self.store,
                user_id,
                DocumentKind.MEMORY,
                memory,
                {"severity_level", "severity_confidence"},
            )
        return BaselineResult(classifier_result=output, improvement=improvement, record=record)

    def record_assessment(
        self, user_id: str, output: ClassifierOutput
    ) -> tuple[ImprovementReport, AssessmentRecord]:
        """Run the tracker against the stored record and persist the result."""
        with self.store.transaction(user_id):
            tracker = AssessmentTracker(load_assessment(self.store, user_id))
            report = tracker.update(output)
            save_fields(
                self.store,
                user_id,
                DocumentKind.ASSESSMENT,
                tracker.record,
                tracker.changed_fields(),
            )
        return report, tracker.record

    async def _assess(
        self, user_id: str, audio: bytes
    ) -> tuple[ClassifierOutput | None, ImprovementReport | None]:
        output = await self.severity_classifier.infer(audio, user_id)
        if output is None:
            logger.info("assessment_skipped", user_id=user_id)
            return None, None
        try:
            report, _ = self.record_assessment(user_id, output)
        except StoreError as e:
            logger.error("assessment_record_failed", user_id=user_id, error=str(e))
            return None, None
        return output, report

    def _snapshot_assessment(self, user_id: str) -> AssessmentRecord | None:
        try:
            return load_assessment(self.store, user_id)
        except StoreError as e:
            logger.error("assessment_read_failed", user_id=user_id, error=str(e))
            return None

    async def _respond(
        self,
        user_id: str,
        text: str,
        model: str | None,
        improvement: ImprovementReport | None = None,
    ) -> tuple[str, list[str], bool]:
        memory, progress = ensure_profile(self.store, user_id)
        assessment = self._snapshot_assessment(user_id)
        infer_primary_issue(memory, text)

        profile = SessionProfile(
            memory=memory,
            progress=progress,
            assessment=assessment,
            improvement=improvement,
        )
        composed = self.composer.compose(profile, text)
        reply = await self.generator.generate(composed.prompt, model)
        if reply is None:
            logger.warning("generation_degraded", user_id=user_id)
            answer, words = GENERATION_FALLBACK, []
        else:
            answer, words = reply, extract_practice_words(reply)

        memory_updated = self._persist_turn(user_id, text, words)
        return answer, words, memory_updated

    def _persist_turn(self, user_id: str, text: str, words: list[str]) -> bool:
        with self.store.transaction(user_id):
            memory = load_memory(self.store, user_id)
            progress = load_progress(self.store, user_id)

            memory_fields: set[str] = set()
            if infer_primary_issue(memory, text):
                memory_fields |= {"primary_issue", "specific_sounds"}
            update = self.accumulator.apply(memory, progress, words)
            memory_fields |= update.memory_fields

            if memory_fields:
                save_fields(self.store, user_id, DocumentKind.MEMORY, memory, memory_fields)
            if update.progress_fields:
                save_fields(
                    self.store,
                    user_id,
                    DocumentKind.PROGRESS,
                    progress,
                    update.progress_fields,
                )
        return bool(memory_fields)

    async def aclose(self) -> None:
        await self.severity_classifier.aclose()


@functools.lru_cache
def get_turn_processor() -> TurnProcessor:
    """Get the process-wide turn processor."""
    return TurnProcessor.from_settings(get_settings())
