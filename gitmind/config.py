"""Configuration loading for gitmind (.gitmind.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".gitmind.yml"


@dataclass
class GitHubConfig:
    """GitHub API endpoints and request settings."""

    api_url: str = "https://api.github.com"
    raw_url: str = "https://raw.githubusercontent.com"
    request_timeout: Optional[float] = 30.0


@dataclass
class DriveConfig:
    """Google Drive endpoints."""

    api_url: str = "https://www.googleapis.com/drive/v3"
    upload_url: str = "https://www.googleapis.com/upload/drive/v3"
    request_timeout: Optional[float] = 60.0


@dataclass
class LLMConfig:
    """Model settings for the analyze/ask/convert tasks."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class HistoryConfig:
    """Where recent projects and the GitHub token are persisted."""

    limit: int = 10
    state_file: Optional[Path] = None


@dataclass
class GitMindConfig:
    """Represents the settings defined in .gitmind.yml."""

    root: Path
    github: GitHubConfig = field(default_factory=GitHubConfig)
    drive: DriveConfig = field(default_factory=DriveConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    log_file: Optional[Path] = None


def load_config(config_path: Path | None = None) -> GitMindConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path or Path.cwd())
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    github_data = _as_dict(data.get("github"))
    github = GitHubConfig()
    if github_data:
        github.api_url = _as_str(github_data.get("api_url")) or github.api_url
        github.raw_url = _as_str(github_data.get("raw_url")) or github.raw_url
        timeout = _as_float(github_data.get("request_timeout"))
        if timeout is not None:
            github.request_timeout = timeout

    drive_data = _as_dict(data.get("drive"))
    drive = DriveConfig()
    if drive_data:
        drive.api_url = _as_str(drive_data.get("api_url")) or drive.api_url
        drive.upload_url = _as_str(drive_data.get("upload_url")) or drive.upload_url
        timeout = _as_float(drive_data.get("request_timeout"))
        if timeout is not None:
            drive.request_timeout = timeout

    llm_data = _as_dict(data.get("llm"))
    llm = LLMConfig(
        model=_as_str(llm_data.get("model")),
        base_url=_as_str(llm_data.get("base_url")),
        api_key=_as_str(llm_data.get("api_key")),
        temperature=_as_float(llm_data.get("temperature")),
        max_tokens=_as_int(llm_data.get("max_tokens")),
        request_timeout=_as_float(llm_data.get("request_timeout")),
    )

    history_data = _as_dict(data.get("history"))
    history = HistoryConfig()
    if history_data:
        limit = _as_int(history_data.get("limit"))
        if limit is not None:
            if limit < 1:
                raise ConfigError("history.limit must be a positive integer")
            history.limit = limit
        state_file = _as_str(history_data.get("state_file"))
        if state_file:
            history.state_file = root / Path(state_file).expanduser()
    env_state = os.getenv("GITMIND_STATE_FILE")
    if env_state:
        history.state_file = Path(env_state).expanduser()
    if history.state_file is None:
        history.state_file = root / ".gitmind" / "state.json"

    log_file_str = _as_str(data.get("log_file"))
    log_file = root / log_file_str if log_file_str else None

    return GitMindConfig(
        root=root,
        github=github,
        drive=drive,
        llm=llm,
        history=history,
        log_file=log_file,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
    return loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


__all__ = [
    "CONFIG_FILENAME",
    "DriveConfig",
    "GitHubConfig",
    "GitMindConfig",
    "HistoryConfig",
    "LLMConfig",
    "load_config",
]
