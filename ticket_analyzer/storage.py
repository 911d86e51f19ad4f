"""Opaque string-keyed storage used for all persisted analyzer state.

The analyzer keeps no server-side state. Configuration, the ticket set, the
two prompt templates and the topic summary are each stored as a single string
value under a fixed key. Anything providing ``get``/``set``/``remove`` with
these semantics can back the analyzer; two implementations are provided:

- ``MemoryStorage``: a dictionary, for tests and throwaway sessions.
- ``FileStorage``: one file per key inside a directory, the default for the CLI
  and the MCP dashboard server.
"""

import os
from pathlib import Path
from typing import Dict, Optional, Protocol

STORAGE_KEYS = {
    "config": "config",
    "tickets": "tickets",
    "classification_prompt": "classification_prompt",
    "aggregation_prompt": "aggregation_prompt",
    "topic_summary": "topic_summary",
}

DEFAULT_HOME = Path(os.getenv("TICKET_ANALYZER_HOME", "~/.ticket-analyzer")).expanduser()


class KeyValueStorage(Protocol):
    """Minimal get/set/remove contract the analyzer persists through."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """In-process storage backed by a dictionary."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self):
        return list(self._values.keys())


class FileStorage:
    """Directory-backed storage writing each key to ``<directory>/<key>.txt``.

    Writes go through a temporary file followed by a rename so a crash in the
    middle of persisting never leaves a truncated value behind.

    Attributes:
        directory: Directory holding one file per stored key.
    """

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory else DEFAULT_HOME
        self.directory.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> "FileStorage":
        """Create storage in ``TICKET_ANALYZER_HOME`` as set at call time."""
        home = os.getenv("TICKET_ANALYZER_HOME")
        return cls(Path(home).expanduser() if home else None)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.txt"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
