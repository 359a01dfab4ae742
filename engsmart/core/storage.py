"""Key-value persistence for whole JSON collections.

Each collection is an ordered list of JSON objects that is always read and
written as a unit. Callers read-modify-write the full list; there is no
locking between processes, so two writers sharing a data directory race and
the last ``put`` wins.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any

from engsmart.core.errors import DeserializationError

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class KeyValueStore:
    """Interface implemented by the storage backends."""

    def put(self, collection: str, items: list[Record]) -> None:
        raise NotImplementedError

    def get_all(self, collection: str) -> list[Record]:
        raise NotImplementedError


class InMemoryStore(KeyValueStore):
    """Process-local store used by tests and throwaway sessions."""

    def __init__(self) -> None:
        self._collections: dict[str, list[Record]] = {}

    def put(self, collection: str, items: list[Record]) -> None:
        self._collections[collection] = copy.deepcopy(list(items))

    def get_all(self, collection: str) -> list[Record]:
        return copy.deepcopy(self._collections.get(collection, []))


class JsonFileStore(KeyValueStore):
    """Stores each collection as ``<collection>.json`` inside a data directory."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def put(self, collection: str, items: list[Record]) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        target = self._path_for(collection)
        document = json.dumps(list(items), ensure_ascii=False, indent=2)
        # Write beside the target and swap so readers never see a half-written file.
        fd, tmp_name = tempfile.mkstemp(dir=self._data_dir, prefix=f".{collection}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(document)
            os.replace(tmp_name, target)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_all(self, collection: str) -> list[Record]:
        path = self._path_for(collection)
        if not path.exists():
            return []
        text = path.read_text(encoding="utf-8")
        if not text.strip():
            return []
        return decode_collection(collection, text)

    def _path_for(self, collection: str) -> Path:
        return self._data_dir / f"{collection}.json"


def decode_collection(collection: str, text: str) -> list[Record]:
    """Parse a serialized collection, rejecting anything but a list of objects."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("Collection %s contains invalid JSON: %s", collection, exc)
        raise DeserializationError(f"Collection '{collection}' is not valid JSON.") from exc
    if not isinstance(data, list):
        raise DeserializationError(f"Collection '{collection}' must be a JSON array.")
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            raise DeserializationError(
                f"Collection '{collection}' entry {position} is not a JSON object."
            )
    return data
