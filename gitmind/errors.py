"""Error taxonomy shared by the gitmind clients and controller.

Every error carries a ``user_message`` suitable for showing to the person
driving the UI. Clients raise these; the controller converts them into state
and re-raises where the caller needs to know.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .models import CommitResult


class GitMindError(RuntimeError):
    """Base class for all gitmind failures."""

    kind = "error"

    @property
    def user_message(self) -> str:
        return str(self)


class ConfigError(GitMindError):
    """Raised when .gitmind.yml cannot be parsed."""

    kind = "config"


class ParseError(GitMindError):
    """Raised when a repository identifier cannot be understood."""

    kind = "parse"

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(
            f"Could not understand {identifier!r}. Use the format github.com/owner/repo."
        )


class GitHubError(GitMindError):
    """A GitHub API call returned an unexpected status."""

    kind = "github"

    def __init__(self, message: str, *, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class NotFound(GitHubError):
    kind = "not_found"


class RateLimited(GitHubError):
    kind = "rate_limited"


class Forbidden(GitHubError):
    kind = "forbidden"


class ConflictError(GitHubError):
    """The supplied blob sha no longer matches the file on the server."""

    kind = "conflict"


class NetworkError(GitMindError):
    """The transport failed before any HTTP status was received."""

    kind = "network"


class DownloadError(GitMindError):
    """Raw file content could not be downloaded."""

    kind = "download"


class PartialFailure(GitMindError):
    """A move created the new file but could not delete the old one.

    The file now exists at both ``old_path`` and ``new_path``.
    """

    kind = "partial_failure"

    def __init__(
        self,
        *,
        old_path: str,
        new_path: str,
        created: Optional["CommitResult"],
        cause: BaseException,
    ) -> None:
        self.old_path = old_path
        self.new_path = new_path
        self.created = created
        self.cause = cause
        super().__init__(
            f"Moved {old_path} to {new_path}, but deleting {old_path} failed: {cause}. "
            f"The file now exists at both paths."
        )


class AIError(GitMindError):
    """The model call failed or returned an unusable payload."""

    kind = "ai"


class DriveError(GitMindError):
    """Google Drive rejected a request; the message is the provider's."""

    kind = "drive"

    def __init__(self, message: str, *, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class AuthError(GitMindError):
    """No access token could be obtained."""

    kind = "auth"


class InvalidStateError(GitMindError):
    """An operation was started from a status that does not allow it."""

    kind = "invalid_state"


__all__ = [
    "AIError",
    "AuthError",
    "ConfigError",
    "ConflictError",
    "DownloadError",
    "DriveError",
    "Forbidden",
    "GitHubError",
    "GitMindError",
    "InvalidStateError",
    "NetworkError",
    "NotFound",
    "ParseError",
    "PartialFailure",
    "RateLimited",
]
