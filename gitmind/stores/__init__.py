"""Persistence for project history and credentials."""

from .history import HistoryStore, TokenStore
from .kv import JsonFileStore, KeyValueStore, MemoryStore

__all__ = ["HistoryStore", "JsonFileStore", "KeyValueStore", "MemoryStore", "TokenStore"]
