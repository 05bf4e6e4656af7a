"""Core data models shared across gitmind components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class AppStatus(str, Enum):
    """Lifecycle phases of the application controller."""

    IDLE = "IDLE"
    LOADING_REPO = "LOADING_REPO"
    ANALYZING = "ANALYZING"
    READY = "READY"
    ERROR = "ERROR"
    CLONING = "CLONING"
    CONVERTING = "CONVERTING"
    UPLOADING = "UPLOADING"
    COMMITTING = "COMMITTING"


@dataclass(frozen=True)
class RepoRef:
    """Owner/name pair identifying a GitHub repository."""

    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass
class Repository:
    """Repository metadata as returned by ``GET /repos/{owner}/{repo}``."""

    owner: str
    name: str
    full_name: str
    description: Optional[str] = None
    stargazers_count: int = 0
    language: Optional[str] = None
    default_branch: str = "main"
    avatar_url: Optional[str] = None
    html_url: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Repository":
        owner = payload.get("owner") or {}
        login = owner.get("login") if isinstance(owner, dict) else None
        name = str(payload.get("name") or "")
        return cls(
            owner=str(login or ""),
            name=name,
            full_name=str(payload.get("full_name") or f"{login}/{name}"),
            description=payload.get("description"),
            stargazers_count=int(payload.get("stargazers_count") or 0),
            language=payload.get("language"),
            default_branch=str(payload.get("default_branch") or "main"),
            avatar_url=owner.get("avatar_url") if isinstance(owner, dict) else None,
            html_url=payload.get("html_url"),
        )


@dataclass
class FileEntry:
    """A path-addressed node in a repository, Drive pick, or local upload."""

    name: str
    path: str
    type: str
    sha: Optional[str] = None
    download_url: Optional[str] = None
    content: Optional[str] = None
    size: Optional[int] = None
    data: Optional[bytes] = field(default=None, repr=False)

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "FileEntry":
        path = str(payload.get("path") or "")
        raw_type = payload.get("type")
        return cls(
            name=str(payload.get("name") or path.rsplit("/", 1)[-1]),
            path=path,
            type="dir" if raw_type == "dir" else "file",
            sha=payload.get("sha"),
            download_url=payload.get("download_url") or None,
            size=payload.get("size"),
        )


@dataclass
class TreeItem:
    """Entry of a recursive tree listing."""

    path: str
    type: str
    sha: str
    size: Optional[int] = None


@dataclass
class AnalysisResult:
    """Model-produced overview of a repository."""

    summary: str
    technologies: List[str] = field(default_factory=list)
    architecture: str = ""
    suggestions: List[str] = field(default_factory=list)


@dataclass
class FileAnswer:
    """Answer to a question about a file, with an optional replacement body."""

    answer: str
    proposed_content: Optional[str] = None


@dataclass
class GeneratedFile:
    path: str
    content: str


@dataclass
class ApiEndpoint:
    method: str
    route: str
    php_controller: str


@dataclass
class ConversionResult:
    """React + PHP scaffold proposed by the model."""

    php_structure: str
    api_endpoints: List[ApiEndpoint] = field(default_factory=list)
    react_updates: str = ""
    setup_guide: str = ""
    generated_files: List[GeneratedFile] = field(default_factory=list)


@dataclass
class CommitResult:
    """Outcome of a contents API write."""

    path: str
    sha: Optional[str]
    commit_sha: Optional[str]
    html_url: Optional[str] = None


@dataclass
class ProjectLog:
    """History entry for a previously imported repository."""

    id: str
    name: str
    owner: str
    category: str
    timestamp: int
    avatar: Optional[str] = None


@dataclass
class DriveFile:
    id: str
    name: str
    mime_type: Optional[str] = None


@dataclass
class CloneReport:
    """Summary of a bulk upload into Google Drive."""

    folder_id: str
    folders_created: int = 0
    files_uploaded: int = 0
    skipped: List[str] = field(default_factory=list)


__all__ = [
    "AnalysisResult",
    "ApiEndpoint",
    "AppStatus",
    "CloneReport",
    "CommitResult",
    "ConversionResult",
    "DriveFile",
    "FileAnswer",
    "FileEntry",
    "GeneratedFile",
    "ProjectLog",
    "RepoRef",
    "Repository",
    "TreeItem",
]
