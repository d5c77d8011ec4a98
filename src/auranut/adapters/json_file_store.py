"""Local JSON file key/value store."""

import json
from dataclasses import dataclass
from pathlib import Path

from auranut.services.state_store import KeyValueStore


@dataclass
class JsonFileKeyValueStore(KeyValueStore):
    """Stores each key as ``<key>.json`` inside a directory."""

    directory: Path
    prefix: str = "auranut_"

    @classmethod
    def create(
        cls, directory: str | Path, prefix: str = "auranut_"
    ) -> "JsonFileKeyValueStore":
        """Create a store, making the directory if needed."""
        path = Path(directory)
        path.mkdir(parents=True, exist_ok=True)
        return cls(directory=path, prefix=prefix)

    def get(self, key: str) -> object | None:
        """Return the decoded value for a key, or None when absent or corrupt."""
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return None

    def set(self, key: str, value: object) -> None:
        """Write a value atomically by replacing a temporary file."""
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(value), encoding="utf-8")
        tmp_path.replace(path)

    def clear(self) -> None:
        """Delete every file owned by this application's key prefix."""
        owned = _safe_name(self.prefix)
        for pattern in (f"{owned}*.json", f"{owned}*.json.tmp"):
            for path in self.directory.glob(pattern):
                path.unlink(missing_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{_safe_name(key)}.json"


def _safe_name(key: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in key)
