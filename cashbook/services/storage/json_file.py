"""
JSON File Storage

The desktop counterpart of the browser store the application grew up in:
every collection lives under its own namespaced key, and here a key is a
file `<data_dir>/<namespace>-<collection>.json` holding a JSON array.

Writes go to a temporary file that is then renamed over the target, so a
crash mid-write never leaves a half-written collection behind.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from cashbook.config import get_settings
from cashbook.services.storage.interface import CollectionBackend, StorageError


logger = structlog.get_logger(__name__)


class JsonFileBackend(CollectionBackend):
    """One JSON file per collection."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        namespace: Optional[str] = None,
    ):
        if data_dir is None or namespace is None:
            settings = get_settings().storage
            data_dir = data_dir if data_dir is not None else settings.data_dir
            namespace = namespace if namespace is not None else settings.key_namespace
        self._data_dir = Path(data_dir)
        self._namespace = namespace

    def path_for(self, name: str) -> Path:
        return self._data_dir / f"{self._namespace}-{name}.json"

    def load(self, name: str) -> list[dict]:
        path = self.path_for(name)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            # An unreadable key reads as an empty collection
            logger.warning("collection_unreadable", collection=name, path=str(path), error=str(e))
            return []
        if not isinstance(data, list):
            logger.warning("collection_malformed", collection=name, path=str(path))
            return []
        return data

    def replace(self, name: str, records: list[dict]) -> None:
        path = self.path_for(name)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._data_dir, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(records, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except OSError as e:
            raise StorageError(f"Failed to write collection {name}: {e}")

    def drop(self, name: str) -> None:
        try:
            self.path_for(name).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to drop collection {name}: {e}")
