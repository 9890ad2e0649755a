"""Speech-to-text for recorded practice attempts."""

import structlog
from openai import AsyncOpenAI

logger = structlog.get_logger()


class TranscriptionClient:
    """Best-effort transcription; an empty string means nothing recognisable.

    Args:
        api_key: OpenAI API key.
        model: Transcription model.
    """

    def __init__(self, api_key: str, model: str = "whisper-1"):
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def transcribe(self, audio: bytes, filename: str = "audio.wav") -> str:
        if not audio:
            return ""
        try:
            result = await self.client.audio.transcriptions.create(
                model=self.model,
                file=(filename, audio),
            )
        except Exception:
            logger.exception("transcription_failed")
            return ""
        transcript = (result.text or "").strip()
        logger.info("transcription_complete", text=transcript[:80])
        return transcript
