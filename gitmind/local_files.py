"""Load files from local disk as inline-content entries."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Iterator, List

from .logging import get_logger
from .models import FileEntry

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
    ".gitmind",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

MAX_FILE_BYTES = 1024 * 1024

logger = get_logger("local_files")


def load_local_files(paths: Iterable[str | Path]) -> List[FileEntry]:
    """Return entries for ``paths``; directories are walked recursively.

    Paths inside a walked directory are reported relative to it. Files that
    are not UTF-8 text or exceed ``MAX_FILE_BYTES`` are skipped.
    """
    entries: List[FileEntry] = []
    for raw in paths:
        path = Path(raw).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Path not found: {raw}")
        if path.is_dir():
            root = path.resolve()
            for file_path in _iter_files(root):
                entry = _read_entry(file_path, file_path.relative_to(root).as_posix())
                if entry is not None:
                    entries.append(entry)
        else:
            entry = _read_entry(path, path.name)
            if entry is not None:
                entries.append(entry)
    return entries


def _iter_files(root: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in _EXCLUDED_DIRS)
        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            yield Path(dirpath) / filename


def _read_entry(path: Path, rel_path: str) -> FileEntry | None:
    size = path.stat().st_size
    if size > MAX_FILE_BYTES:
        logger.debug("Skipping %s (%d bytes)", rel_path, size)
        return None
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.debug("Skipping non-text file %s", rel_path)
        return None
    return FileEntry(
        name=path.name,
        path=rel_path,
        type="file",
        content=content,
        size=size,
    )


__all__ = ["MAX_FILE_BYTES", "load_local_files"]
