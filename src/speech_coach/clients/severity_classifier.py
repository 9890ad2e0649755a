"""HTTP client for the audio severity classifier service."""

import httpx
import structlog
from pydantic import ValidationError

from speech_coach.models.assessment import ClassifierOutput

logger = structlog.get_logger()


class SeverityClassifierClient:
    """Posts WAV audio to the classifier and parses its ensemble output.

    Failures are never raised: the caller gets None and carries on without
    assessment data for the turn.

    Args:
        url: Inference endpoint, e.g. ``http://localhost:5000/infer``.
        timeout: Request timeout in seconds.
    """

    def __init__(self, url: str, timeout: float = 30.0):
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout)

    async def infer(self, audio: bytes, user_id: str) -> ClassifierOutput | None:
        try:
            r = await self._client.post(
                self.url,
                files={"audio": ("audio.wav", audio, "audio/wav")},
                data={"session": user_id},
            )
            r.raise_for_status()
            output = ClassifierOutput.model_validate(r.json())
        except httpx.HTTPStatusError as e:
            logger.error("severity_classifier_failed", status=e.response.status_code)
            return None
        except (httpx.RequestError, ValueError, ValidationError) as e:
            logger.error("severity_classifier_failed", error=str(e))
            return None

        logger.info(
            "severity_classifier_result",
            ensemble_pred=output.ensemble_pred,
            ensemble_prob=output.ensemble_prob,
        )
        return output

    async def aclose(self) -> None:
        await self._client.aclose()
