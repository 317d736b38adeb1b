"""
Ledger Store

The whole account state lives in one ``LedgerDocument``. Backends only know
how to load and store a full snapshot; ``LedgerStore`` adds the lock and the
transaction boundary every mutating operation goes through.
"""

import json
import os
import tempfile
import threading
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Iterator, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .errors import InternalError
from .logging_config import get_logger
from .models import LedgerDocument, Task

logger = get_logger(__name__)


def default_tasks() -> list[Task]:
    return [
        Task(id="t1", title="Follow us on Instagram", desc="Follow the official page and stay for updates", reward=Decimal("5")),
        Task(id="t2", title="Join the Telegram channel", desc="Join and keep notifications on", reward=Decimal("5")),
        Task(id="t3", title="Watch the intro video", desc="Watch the full 2 minute product video", reward=Decimal("3")),
        Task(id="t4", title="Complete your profile", desc="Fill in every field of your profile", reward=Decimal("10")),
    ]


def new_document() -> LedgerDocument:
    return LedgerDocument(tasks=default_tasks())


class InMemoryStorage:
    def __init__(self, document: Optional[LedgerDocument] = None):
        self._document = (document or new_document()).model_copy(deep=True)

    def load(self) -> LedgerDocument:
        return self._document.model_copy(deep=True)

    def store(self, document: LedgerDocument) -> None:
        self._document = document.model_copy(deep=True)


class JsonFileStorage:
    """Keeps the document in a single JSON file, replaced atomically on write."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> LedgerDocument:
        if not self.path.exists():
            return new_document()
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            return LedgerDocument.model_validate(data)
        except (OSError, ValueError, PydanticValidationError) as e:
            logger.error("storage_read_failed", path=str(self.path), error=str(e))
            raise InternalError("Storage unavailable") from e

    def store(self, document: LedgerDocument) -> None:
        payload = document.model_dump(mode="json", by_alias=True)
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".ledger-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error("storage_write_failed", path=str(self.path), error=str(e))
            raise InternalError("Storage unavailable") from e


class LedgerStore:
    """Serializes access to a storage backend.

    ``transaction()`` holds the lock for the full load -> mutate -> store cycle,
    so concurrent mutations cannot overwrite each other. If the block raises,
    the working copy is dropped and nothing is written.
    """

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else InMemoryStorage()
        self._lock = threading.RLock()

    def snapshot(self) -> LedgerDocument:
        with self._lock:
            return self._load()

    @contextmanager
    def transaction(self) -> Iterator[LedgerDocument]:
        with self._lock:
            document = self._load()
            yield document
            self._store(document)

    def _load(self) -> LedgerDocument:
        try:
            return self.backend.load()
        except InternalError:
            raise
        except Exception as e:
            logger.error("storage_read_failed", error=str(e))
            raise InternalError("Storage unavailable") from e

    def _store(self, document: LedgerDocument) -> None:
        try:
            self.backend.store(document)
        except InternalError:
            raise
        except Exception as e:
            logger.error("storage_write_failed", error=str(e))
            raise InternalError("Storage unavailable") from e
