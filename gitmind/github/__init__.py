"""GitHub REST API access."""

from .client import GitHubClient
from .urls import parse_repo_identifier

__all__ = ["GitHubClient", "parse_repo_identifier"]
