"""Recent-project history and GitHub token persistence."""

from __future__ import annotations

import json
import time
from dataclasses import asdict
from typing import Callable, List, Optional

from ..logging import get_logger
from ..models import ProjectLog, Repository
from .kv import KeyValueStore

HISTORY_KEY = "gitmind.history"
TOKEN_KEY = "gitmind.github_token"
DEFAULT_HISTORY_LIMIT = 10


def _now_ms() -> int:
    return int(time.time() * 1000)


class HistoryStore:
    """Most-recent-first list of imported repositories, one entry per identity.

    The list is read once at construction and written back on every change.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._store = store
        self._limit = max(1, limit)
        self._clock = clock
        self.logger = get_logger("history")
        self._entries: List[ProjectLog] = self._load()

    @property
    def entries(self) -> List[ProjectLog]:
        return list(self._entries)

    def record(self, repo: Repository) -> ProjectLog:
        """Move ``repo`` to the front of the history with a fresh timestamp."""
        entry = ProjectLog(
            id=repo.full_name,
            name=repo.name,
            owner=repo.owner,
            category=repo.language or "Unknown",
            timestamp=self._clock(),
            avatar=repo.avatar_url,
        )
        remaining = [item for item in self._entries if item.id != entry.id]
        self._entries = [entry, *remaining][: self._limit]
        self._persist()
        return entry

    def remove(self, full_name: str) -> None:
        self._entries = [item for item in self._entries if item.id != full_name]
        self._persist()

    def clear(self) -> None:
        self._entries = []
        self._store.delete(HISTORY_KEY)

    def _load(self) -> List[ProjectLog]:
        raw = self._store.get(HISTORY_KEY)
        if not raw:
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            self.logger.warning("Discarding unreadable project history")
            return []
        if not isinstance(payload, list):
            return []
        entries: List[ProjectLog] = []
        seen: set[str] = set()
        for item in payload:
            entry = _log_from_dict(item)
            if entry is None or entry.id in seen:
                continue
            seen.add(entry.id)
            entries.append(entry)
        return entries[: self._limit]

    def _persist(self) -> None:
        self._store.set(HISTORY_KEY, json.dumps([asdict(item) for item in self._entries]))


class TokenStore:
    """Plaintext GitHub token kept under a single key."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def get(self) -> Optional[str]:
        return self._store.get(TOKEN_KEY) or None

    def set(self, token: str | None) -> None:
        if token:
            self._store.set(TOKEN_KEY, token)
        else:
            self._store.delete(TOKEN_KEY)


def _log_from_dict(payload: object) -> Optional[ProjectLog]:
    if not isinstance(payload, dict):
        return None
    entry_id = payload.get("id")
    name = payload.get("name")
    owner = payload.get("owner")
    timestamp = payload.get("timestamp")
    if not isinstance(entry_id, str) or not isinstance(name, str) or not isinstance(owner, str):
        return None
    if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
        return None
    avatar = payload.get("avatar")
    return ProjectLog(
        id=entry_id,
        name=name,
        owner=owner,
        category=str(payload.get("category") or "Unknown"),
        timestamp=int(timestamp),
        avatar=avatar if isinstance(avatar, str) else None,
    )


__all__ = ["DEFAULT_HISTORY_LIMIT", "HISTORY_KEY", "HistoryStore", "TOKEN_KEY", "TokenStore"]
