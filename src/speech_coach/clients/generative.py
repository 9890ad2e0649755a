"""Generative text oracle producing therapy replies."""

import structlog
from openai import AsyncOpenAI

logger = structlog.get_logger()

GENERATION_FALLBACK = "Sorry, I could not generate a response."


class GenerativeClient:
    """Single-shot text generation.

    Failures are reported as None; callers answer with GENERATION_FALLBACK
    and treat the turn as degraded.

    Args:
        api_key: OpenAI API key.
        model: Default model; callers may override per request.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def generate(self, prompt: str, model: str | None = None) -> str | None:
        """Generate a reply for the composed prompt.

        Returns:
            Model text, or None on any failure or empty reply.
        """
        try:
            response = await self.client.chat.completions.create(
                model=model or self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.7,
            )
            text = response.choices[0].message.content
            if not text:
                logger.warning("generation_empty")
                return None
            return text
        except Exception:
            logger.exception("generation_failed", model=model or self.model)
            return None
