"""
Persistence backends for logigramme documents.

A backend stores a whole document per process id; there are no partial
updates. Failures are raised as PersistenceError and handled by the
editor controller, which keeps its in-memory state.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class PersistenceError(Exception):
    """Raised when a document cannot be stored or read back."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class PersistenceService(Protocol):
    def load(self, process_id: str) -> Optional[dict[str, Any]]:
        """Return the stored document, or None when there is none yet."""
        ...

    def save(self, process_id: str, document: dict[str, Any]) -> None:
        ...


class InMemoryPersistence:
    """Dict-backed store; ``fail_saves`` simulates an unreachable backend."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.fail_saves = False
        self.save_count = 0

    def load(self, process_id: str) -> Optional[dict[str, Any]]:
        doc = self.documents.get(process_id)
        return copy.deepcopy(doc) if doc is not None else None

    def save(self, process_id: str, document: dict[str, Any]) -> None:
        if self.fail_saves:
            raise PersistenceError(f"backend unavailable, '{process_id}' not saved")
        self.documents[process_id] = copy.deepcopy(document)
        self.save_count += 1


class JsonFilePersistence:
    """One ``<process_id>.json`` file per process under *data_dir*."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, process_id: str) -> Path:
        if not _SAFE_ID.match(process_id):
            raise PersistenceError(f"invalid process id '{process_id}'")
        return self.data_dir / f"{process_id}.json"

    def load(self, process_id: str) -> Optional[dict[str, Any]]:
        path = self.path_for(process_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"cannot read '{path}': {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"'{path}' does not contain a document object")
        return data

    def save(self, process_id: str, document: dict[str, Any]) -> None:
        path = self.path_for(process_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
            tmp.replace(path)
        except OSError as exc:
            raise PersistenceError(f"cannot write '{path}': {exc}") from exc
        logger.debug("Saved document '%s' to %s", process_id, path)
