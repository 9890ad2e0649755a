"""Personalized prompt composition from a session profile."""

from pydantic import BaseModel, Field

from speech_coach.conversation.profile import SessionProfile
from speech_coach.conversation.prompts import (
    ADVANCE_DIRECTIVE,
    ASSESSMENT_TEMPLATE,
    CELEBRATION_DIRECTIVE,
    PROFILE_TEMPLATE,
    PROGRESS_TEMPLATE,
    SEVERITY_DIRECTIVES,
    SIMPLIFY_DIRECTIVE,
    build_full_prompt,
    build_system_prompt,
)
from speech_coach.models.assessment import as_severity

SIMPLIFY_BELOW_RATE = 60
ADVANCE_ABOVE_RATE = 80
CHALLENGING_WORDS_SHOWN = 5


class ComposedPrompt(BaseModel):
    context: str
    directives: list[str] = Field(default_factory=list)
    prompt: str


def _join(values: list[str], empty: str) -> str:
    return ", ".join(values) if values else empty


class PromptComposer:
    """Merges memory, progress and assessment into a prompt for generation."""

    def build_context(self, profile: SessionProfile) -> str:
        memory = profile.memory
        progress = profile.progress
        blocks = [
            PROFILE_TEMPLATE.format(
                primary_issue=memory.primary_issue or "Not yet identified",
                difficulty_level=memory.difficulty_level.value,
                specific_sounds=_join(memory.specific_sounds, "none identified"),
                last_words=_join(memory.last_words, "none"),
                last_exercise=memory.last_exercise or "none",
            ),
            PROGRESS_TEMPLATE.format(
                total_sessions=progress.total_sessions,
                success_rate=progress.success_rate,
                challenging_words=_join(
                    progress.challenging_words[:CHALLENGING_WORDS_SHOWN], "none"
                ),
                improved_sounds=_join(progress.improved_sounds, "building baseline"),
            ),
        ]

        assessment = profile.assessment
        if assessment is not None and assessment.current is not None:
            block = ASSESSMENT_TEMPLATE.format(
                current_severity=str(assessment.current.severity),
                confidence=assessment.current.confidence * 100,
                baseline_severity=(
                    str(assessment.baseline.severity) if assessment.baseline else "unknown"
                ),
            )
            if profile.improvement is not None and profile.improvement.improved:
                block += f"\n- RECENT IMPROVEMENT: {profile.improvement.message}"
            blocks.append(block)

        return "\n\n".join(blocks)

    def build_directives(self, profile: SessionProfile) -> list[str]:
        directives = []

        rate = profile.progress.success_rate
        if rate < SIMPLIFY_BELOW_RATE:
            directives.append(SIMPLIFY_DIRECTIVE)
        elif rate > ADVANCE_ABOVE_RATE:
            directives.append(ADVANCE_DIRECTIVE)

        assessment = profile.assessment
        if assessment is not None and assessment.current is not None:
            severity = as_severity(assessment.current.severity)
            directives.append(SEVERITY_DIRECTIVES[severity.value])

        if profile.improvement is not None and profile.improvement.improved:
            directives.append(CELEBRATION_DIRECTIVE.format(message=profile.improvement.message))

        return directives

    def compose(self, profile: SessionProfile, user_text: str) -> ComposedPrompt:
        """Build the full prompt for one turn.

        Args:
            profile: Current memory, progress and optional assessment.
            user_text: The user's message or transcript.

        Returns:
            ComposedPrompt with the context block, directives and final text.
        """
        context = self.build_context(profile)
        directives = self.build_directives(profile)
        system_prompt = build_system_prompt(context, directives)
        return ComposedPrompt(
            context=context,
            directives=directives,
            prompt=build_full_prompt(system_prompt, user_text),
        )


_composer = PromptComposer()


def get_prompt_composer() -> PromptComposer:
    return _composer
