"""Typed access to the per-user documents."""

from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from speech_coach.errors import StoreError
from speech_coach.models.assessment import AssessmentRecord
from speech_coach.models.memory import UserMemory
from speech_coach.models.progress import ProgressMetrics
from speech_coach.storage.documents import DocumentKind, DocumentStore

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)


def _parse(model_cls: type[M], data: dict[str, Any], user_id: str, kind: DocumentKind) -> M:
    try:
        return model_cls(**data)
    except ValidationError as e:
        logger.error(
            "document_invalid",
            user_id=user_id,
            kind=str(kind),
            errors=e.error_count(),
        )
        raise StoreError(f"Stored {kind} for {user_id} is invalid") from e


def load_memory(store: DocumentStore, user_id: str) -> UserMemory:
    data = store.get(user_id, DocumentKind.MEMORY)
    if data is None:
        return UserMemory()
    return _parse(UserMemory, data, user_id, DocumentKind.MEMORY)


def load_progress(store: DocumentStore, user_id: str) -> ProgressMetrics:
    data = store.get(user_id, DocumentKind.PROGRESS)
    if data is None:
        return ProgressMetrics()
    return _parse(ProgressMetrics, data, user_id, DocumentKind.PROGRESS)


def load_assessment(store: DocumentStore, user_id: str) -> AssessmentRecord | None:
    data = store.get(user_id, DocumentKind.ASSESSMENT)
    if data is None:
        return None
    return _parse(AssessmentRecord, data, user_id, DocumentKind.ASSESSMENT)


def ensure_profile(store: DocumentStore, user_id: str) -> tuple[UserMemory, ProgressMetrics]:
    """Load memory and progress, writing defaults on first access.

    Raises:
        StoreError: A stored document cannot be read or fails validation.
    """
    memory_data = store.get(user_id, DocumentKind.MEMORY)
    progress_data = store.get(user_id, DocumentKind.PROGRESS)
    memory = _parse(UserMemory, memory_data or {}, user_id, DocumentKind.MEMORY)
    progress = _parse(ProgressMetrics, progress_data or {}, user_id, DocumentKind.PROGRESS)
    if memory_data is None:
        save_fields(store, user_id, DocumentKind.MEMORY, memory)
    if progress_data is None:
        save_fields(store, user_id, DocumentKind.PROGRESS, progress)
    return memory, progress


def save_fields(
    store: DocumentStore,
    user_id: str,
    kind: DocumentKind,
    model: BaseModel,
    fields: set[str] | None = None,
) -> dict[str, Any]:
    """Merge-write a model, or only the named fields of it.

    Returns:
        The partial document that was written.
    """
    partial = model.model_dump(mode="json", include=fields)
    if fields is not None and not fields:
        partial = {}
    store.merge_set(user_id, kind, partial)
    return partial
