"""REST API routes for conversation turns, profiles and assessments."""

import structlog
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from speech_coach.api.turns import TurnProcessor, get_turn_processor
from speech_coach.errors import InvalidUserIdError, OracleUnavailableError, StoreError
from speech_coach.models.memory import DifficultyLevel
from speech_coach.storage.documents import DocumentKind
from speech_coach.storage.profiles import ensure_profile, load_assessment

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class AskRequest(BaseModel):
    prompt: str | None = None
    chat_id: str | None = None
    session: str | None = None
    model: str | None = None


class MemoryUpdateRequest(BaseModel):
    primary_issue: str | None = None
    specific_sounds: list[str] | None = None
    difficulty_level: DifficultyLevel | None = None


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": message, **extra}, status_code=status_code
    )


def _store_failure(e: StoreError) -> JSONResponse:
    logger.error("store_failure", error=str(e))
    return _error(500, str(e))


@router.post("/ask")
async def ask(
    body: AskRequest, processor: TurnProcessor = Depends(get_turn_processor)
):
    """Answer a typed question."""
    if not body.prompt or not body.chat_id or not body.session:
        return _error(400, "Missing prompt/chat_id/session")

    try:
        result = await processor.text_turn(
            body.session, body.prompt, body.chat_id, body.model
        )
    except InvalidUserIdError as e:
        return _error(400, str(e))
    except StoreError as e:
        return _store_failure(e)

    verdict = result.verdict.model_dump(mode="json") if result.verdict else None
    if result.rejected:
        return _error(400, result.answer, classifier=verdict)
    return {
        "success": True,
        "answer": result.answer,
        "classifier": verdict,
        "practice_list": result.practice_words,
        "memory_updated": result.memory_updated,
    }


@router.post("/audio-evaluate")
async def audio_evaluate(
    audio: UploadFile | None = File(None),
    chat_id: str = Form(""),
    session: str = Form(""),
    model: str | None = Form(None),
    processor: TurnProcessor = Depends(get_turn_processor),
):
    """Assess and answer a recorded practice attempt."""
    if audio is None:
        return _error(400, "No audio uploaded")
    if not chat_id or not session:
        return _error(400, "Missing chat_id or session")

    data = await audio.read()
    if not data:
        return _error(400, "No audio uploaded")

    try:
        result = await processor.audio_turn(session, data, chat_id, model)
    except InvalidUserIdError as e:
        return _error(400, str(e))
    except StoreError as e:
        return _store_failure(e)

    payload = {
        "success": not result.rejected,
        "transcript": result.transcript,
        "response": result.answer,
        "classifier": result.verdict.model_dump(mode="json") if result.verdict else None,
        "classifier_result": (
            result.classifier_result.model_dump(mode="json")
            if result.classifier_result
            else None
        ),
        "improvement_detected": (
            result.improvement.model_dump(mode="json") if result.improvement else None
        ),
        "practice_list": result.practice_words,
    }
    if result.rejected:
        payload["error"] = "Out of scope."
    return payload


@router.post("/users/{user_id}/assessment")
async def create_assessment(
    user_id: str,
    audio: UploadFile | None = File(None),
    processor: TurnProcessor = Depends(get_turn_processor),
):
    """Record a standalone severity assessment (initial assessment flow)."""
    if audio is None:
        return _error(400, "No audio uploaded")
    data = await audio.read()
    if not data:
        return _error(400, "No audio uploaded")

    try:
        result = await processor.baseline_assessment(user_id, data)
    except InvalidUserIdError as e:
        return _error(400, str(e))
    except OracleUnavailableError as e:
        return _error(502, str(e))
    except StoreError as e:
        return _store_failure(e)

    return {"success": True, **result.model_dump(mode="json")}


@router.get("/users/{user_id}/assessment")
async def get_assessment(
    user_id: str, processor: TurnProcessor = Depends(get_turn_processor)
):
    """Return the stored assessment record."""
    try:
        record = load_assessment(processor.store, user_id)
    except InvalidUserIdError as e:
        return _error(400, str(e))
    except StoreError as e:
        return _store_failure(e)
    if record is None:
        return _error(404, "No assessment recorded")
    return record.model_dump(mode="json")


@router.get("/users/{user_id}/profile")
async def get_profile(
    user_id: str, processor: TurnProcessor = Depends(get_turn_processor)
):
    """Return memory and progress, creating defaults on first access."""
    try:
        memory, progress = ensure_profile(processor.store, user_id)
    except InvalidUserIdError as e:
        return _error(400, str(e))
    except StoreError as e:
        return _store_failure(e)
    return {
        "memory": memory.model_dump(mode="json"),
        "progress": progress.model_dump(mode="json"),
        "success_rate": progress.success_rate,
    }


@router.patch("/users/{user_id}/memory")
async def update_memory(
    user_id: str,
    body: MemoryUpdateRequest,
    processor: TurnProcessor = Depends(get_turn_processor),
):
    """Apply user-edited profile fields."""
    partial = body.model_dump(mode="json", exclude_unset=True)
    if partial.get("difficulty_level") is None:
        partial.pop("difficulty_level", None)
    if "primary_issue" in partial:
        partial["primary_issue"] = (partial["primary_issue"] or "").strip() or None
    if "specific_sounds" in partial:
        partial["specific_sounds"] = [
            s.strip() for s in partial["specific_sounds"] or [] if s.strip()
        ]

    try:
        ensure_profile(processor.store, user_id)
        processor.store.merge_set(user_id, DocumentKind.MEMORY, partial)
        memory, _ = ensure_profile(processor.store, user_id)
    except InvalidUserIdError as e:
        return _error(400, str(e))
    except StoreError as e:
        return _store_failure(e)
    return {"success": True, "memory": memory.model_dump(mode="json")}


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
