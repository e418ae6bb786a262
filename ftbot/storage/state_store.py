"""
JSON-backed key-value state store.

Loaded once at process start and flushed to disk on every mutation, so
the watcher can resume from the last processed block after a restart.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class StateStore:
    """Flat key-value store persisted as a single JSON object."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        self._data: dict[str, Any] = {}

    def load(self) -> "StateStore":
        """Read the JSON file if it exists. A missing file is an empty store."""
        if not self.path.exists():
            self._data = {}
            return self

        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"State file {self.path} must contain a JSON object")

        self._data = data
        logger.debug("Loaded %d state keys from %s", len(data), self.path)
        return self

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any):
        self._data[key] = value
        self.flush()

    def flush(self):
        """Atomically write the store to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except Exception:
            os.unlink(tmp_path)
            raise
