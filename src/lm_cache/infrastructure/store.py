"""Key-value blob stores backing the offline cache.

The cache only needs get/set/delete of strings. InMemoryStore is for tests
and short-lived sessions; JsonFileStore keeps every key in one JSON file.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryStore:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """All keys in one JSON object on disk.

    Writes go to a temp file in the same directory followed by os.replace,
    so a reader sees either the old file or the new one, never a torn write.

    Raises:
        ValueError: the file exists but is not a JSON object.
        OSError: the file cannot be read or written.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        if not raw.strip():
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"{self._path} does not hold a JSON object")
        return data

    def _dump(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        try:
            data = self._load()
        except ValueError:
            # Unreadable file: the new value replaces it
            data = {}
        data[key] = value
        self._dump(data)

    def delete(self, key: str) -> None:
        try:
            data = self._load()
        except ValueError:
            self._dump({})
            return
        if key in data:
            del data[key]
            self._dump(data)
