"""Per-user document store (JSON + fcntl.flock + atomic write).

Each user owns three independent documents (memory, progress, assessment).
``merge_set`` is a top-level field upsert: keys absent from the partial
document are left untouched. ``transaction`` serialises read-modify-write
cycles for a single user across all three documents; ``merge_set`` takes the
same lock, so standalone writes from other workers wait for it too.
"""

import fcntl
import json
import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog

from speech_coach.errors import InvalidUserIdError, StoreError

logger = structlog.get_logger()

_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.@+\-]{1,256}$")


class DocumentKind(StrEnum):
    MEMORY = "memory"
    PROGRESS = "progress"
    ASSESSMENT = "assessment"


def validate_user_id(user_id: str) -> str:
    if not user_id or not _USER_ID_PATTERN.match(user_id) or user_id in (".", ".."):
        raise InvalidUserIdError(f"Invalid user id: {user_id!r}")
    return user_id


class DocumentStore(ABC):
    """Key-value document store keyed by (user, kind)."""

    @abstractmethod
    def get(self, user_id: str, kind: DocumentKind) -> dict[str, Any] | None:
        """Return the stored document, or None if it was never written."""

    @abstractmethod
    def merge_set(self, user_id: str, kind: DocumentKind, partial: dict[str, Any]) -> None:
        """Upsert the given top-level fields."""

    @abstractmethod
    def transaction(self, user_id: str):
        """Context manager granting exclusive access to one user's documents."""


class JsonDocumentStore(DocumentStore):
    """Stores documents as ``<root>/<user_id>/<kind>.json``.

    Args:
        root: Directory holding one subdirectory per user.
    """

    LOCK_FILENAME = ".lock"

    def __init__(self, root: Path):
        self.root = Path(root)
        self._thread_locks: dict[str, threading.RLock] = defaultdict(threading.RLock)
        self._thread_locks_guard = threading.Lock()
        # Owned by the thread holding the matching user lock
        self._flock_depth: dict[str, int] = {}

    def _user_dir(self, user_id: str, create: bool = False) -> Path:
        d = self.root / validate_user_id(user_id)
        if create:
            d.mkdir(parents=True, exist_ok=True)
        return d

    def _path(self, user_id: str, kind: DocumentKind, create: bool = False) -> Path:
        return self._user_dir(user_id, create) / f"{DocumentKind(kind).value}.json"

    def get(self, user_id: str, kind: DocumentKind) -> dict[str, Any] | None:
        path = self._path(user_id, kind)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                data = json.load(f)
                fcntl.flock(f, fcntl.LOCK_UN)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("document_read_failed", user_id=user_id, kind=str(kind), error=str(e))
            raise StoreError(f"Could not read {kind} for {user_id}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Corrupt {kind} document for {user_id}")
        return data

    def merge_set(self, user_id: str, kind: DocumentKind, partial: dict[str, Any]) -> None:
        if not partial:
            return
        with self._exclusive(user_id):
            path = self._path(user_id, kind, create=True)
            data = self.get(user_id, kind) or {}
            data.update(partial)
            try:
                with tempfile.NamedTemporaryFile(
                    "w", dir=path.parent, delete=False, suffix=".json", encoding="utf-8"
                ) as tmp:
                    json.dump(data, tmp, default=str)
                os.replace(tmp.name, path)
            except OSError as e:
                logger.error("document_write_failed", user_id=user_id, kind=str(kind), error=str(e))
                raise StoreError(f"Could not write {kind} for {user_id}") from e
        logger.debug("document_merged", user_id=user_id, kind=str(kind), fields=sorted(partial))

    def _thread_lock(self, user_id: str) -> threading.RLock:
        with self._thread_locks_guard:
            return self._thread_locks[user_id]

    @contextmanager
    def _exclusive(self, user_id: str) -> Iterator[None]:
        """Per-user lock shared across processes, re-entrant within a thread.

        Nested acquires by the owning thread reuse the outer flock.
        """
        lock_path = self._user_dir(user_id, create=True) / self.LOCK_FILENAME
        with self._thread_lock(user_id):
            depth = self._flock_depth.get(user_id, 0)
            if depth:
                self._flock_depth[user_id] = depth + 1
                try:
                    yield
                finally:
                    self._flock_depth[user_id] = depth
                return
            try:
                lock_file = open(lock_path, "a")
            except OSError as e:
                raise StoreError(f"Could not lock documents for {user_id}") from e
            with lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                self._flock_depth[user_id] = 1
                try:
                    yield
                finally:
                    self._flock_depth[user_id] = 0
                    fcntl.flock(lock_file, fcntl.LOCK_UN)

    @contextmanager
    def transaction(self, user_id: str) -> Iterator[None]:
        with self._exclusive(user_id):
            yield


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store for tests and local experiments."""

    def __init__(self) -> None:
        self._docs: dict[tuple[str, str], dict[str, Any]] = {}
        self._locks: dict[str, threading.RLock] = defaultdict(threading.RLock)
        self._locks_guard = threading.Lock()

    def _lock(self, user_id: str) -> threading.RLock:
        with self._locks_guard:
            return self._locks[validate_user_id(user_id)]

    def get(self, user_id: str, kind: DocumentKind) -> dict[str, Any] | None:
        doc = self._docs.get((validate_user_id(user_id), DocumentKind(kind).value))
        # Round-trip through JSON so callers never alias stored state.
        return json.loads(json.dumps(doc, default=str)) if doc is not None else None

    def merge_set(self, user_id: str, kind: DocumentKind, partial: dict[str, Any]) -> None:
        if not partial:
            return
        key = (validate_user_id(user_id), DocumentKind(kind).value)
        with self._lock(user_id):
            doc = self._docs.setdefault(key, {})
            doc.update(json.loads(json.dumps(partial, default=str)))

    @contextmanager
    def transaction(self, user_id: str) -> Iterator[None]:
        with self._lock(user_id):
            yield
