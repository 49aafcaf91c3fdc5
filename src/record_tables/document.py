"""Persisted record store documents (one JSON file per table)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from record_tables.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class RecordDocument:
    """Reads and rewrites the ``{"data": ..., "indices": ...}`` file of a table.

    The whole document is rewritten on every save. There is no locking;
    the document belongs to the single store instance that loaded it.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    @property
    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> tuple[dict[str, Any], dict[str, Any]]:
        """Load the document, returning its raw ``data`` and ``indices`` maps.

        A missing file yields two empty maps.

        Raises:
            PersistenceFailure: If the file cannot be read or is not a document.
        """
        if not self.path.exists():
            return {}, {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                root = json.load(f)
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(self.path, "Could not load data") from exc

        if not isinstance(root, dict):
            raise PersistenceFailure(self.path, "Document root is not an object")

        data = root.get("data") or {}
        indices = root.get("indices") or {}
        if not isinstance(data, dict) or not isinstance(indices, dict):
            raise PersistenceFailure(self.path, "Malformed document")

        logger.info("Loaded %d records from %s", len(data), self.path)
        return data, indices

    def save(self, data: dict[str, Any], indices: dict[str, Any]) -> None:
        """Rewrite the whole document.

        Raises:
            PersistenceFailure: If the file cannot be written.
        """
        document = {"data": data, "indices": indices}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceFailure(self.path, "Could not save data") from exc
