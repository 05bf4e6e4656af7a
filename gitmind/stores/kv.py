"""Key-value persistence port and its implementations."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Protocol

from ..logging import get_logger

_STATE_VERSION = 1


class KeyValueStore(Protocol):
    """String values stored under string keys."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store, used by tests and ephemeral sessions."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStore:
    """Stores every key in one JSON document, rewritten on each change."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._values: Dict[str, str] = {}
        self.logger = get_logger("stores")
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self._persist()

    def delete(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._persist()

    def _load(self) -> None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warning("Ignoring unreadable state file %s: %s", self._path, exc)
            return
        if not isinstance(data, dict) or data.get("version") != _STATE_VERSION:
            return
        values = data.get("values")
        if not isinstance(values, dict):
            return
        self._values = {
            key: value
            for key, value in values.items()
            if isinstance(key, str) and isinstance(value, str)
        }

    def _persist(self) -> None:
        payload = {"version": _STATE_VERSION, "values": self._values}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore"]
