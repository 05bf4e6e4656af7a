"""GitHub REST client covering repository metadata, contents and trees."""

from __future__ import annotations

import base64
import json
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..errors import (
    ConflictError,
    DownloadError,
    Forbidden,
    GitHubError,
    NetworkError,
    NotFound,
    PartialFailure,
    RateLimited,
)
from ..http import HttpRequest, HttpResponse, Transport, json_body, urllib_transport
from ..logging import get_logger
from ..models import CommitResult, FileEntry, Repository, TreeItem
from .urls import parse_repo_identifier

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_RAW_URL = "https://raw.githubusercontent.com"


class GitHubClient:
    """Wraps the contents, trees and repository endpoints of the GitHub API."""

    def __init__(
        self,
        token: str | None = None,
        *,
        api_url: str = DEFAULT_API_URL,
        raw_url: str = DEFAULT_RAW_URL,
        request_timeout: Optional[float] = 30.0,
        transport: Transport | None = None,
    ) -> None:
        self.token = token or None
        self.api_url = api_url.rstrip("/")
        self.raw_url = raw_url.rstrip("/")
        self.request_timeout = request_timeout
        self._transport = transport or urllib_transport
        self.logger = get_logger("github")

    # ------------------------------------------------------------------
    # Reads

    def fetch_repo_info(self, identifier: str) -> Repository:
        """Resolve ``identifier`` and return the repository's metadata."""
        ref = parse_repo_identifier(identifier)
        self.logger.debug("Fetching repository metadata for %s", ref.full_name)
        response = self._request("GET", self._repo_url(ref.owner, ref.repo))
        if response.status == 404:
            raise NotFound(
                f'Repository "{ref.full_name}" was not found. Check the name and make sure '
                "the project is public.",
                status=404,
            )
        self._raise_for_status(response, what=f"repository {ref.full_name}")
        return Repository.from_api(self._json(response))

    def fetch_directory(self, owner: str, repo: str, path: str = "") -> List[FileEntry]:
        """List the immediate children of ``path``; a missing path yields ``[]``."""
        url = f"{self._repo_url(owner, repo)}/contents/{_quote_path(path)}"
        response = self._request("GET", url)
        if response.status == 404:
            self.logger.debug("Path %r not found in %s/%s", path, owner, repo)
            return []
        self._raise_for_status(response, what=f"contents of {owner}/{repo}/{path}")
        payload = self._json(response)
        if isinstance(payload, dict):
            return [FileEntry.from_api(payload)]
        if not isinstance(payload, list):
            return []
        return [FileEntry.from_api(item) for item in payload if isinstance(item, dict)]

    def fetch_file(self, owner: str, repo: str, path: str) -> FileEntry:
        """Return metadata, the current sha and the blob of a single file.

        ``data`` carries the exact bytes; ``content`` is only set when they
        decode as UTF-8.
        """
        url = f"{self._repo_url(owner, repo)}/contents/{_quote_path(path)}"
        response = self._request("GET", url)
        if response.status == 404:
            raise NotFound(f"{path} does not exist in {owner}/{repo}.", status=404)
        self._raise_for_status(response, what=f"{owner}/{repo}/{path}")
        payload = self._json(response)
        if not isinstance(payload, dict):
            raise GitHubError(f"{path} is a directory, not a file.", status=response.status)
        entry = FileEntry.from_api(payload)
        if payload.get("encoding") == "base64" and payload.get("content"):
            entry.data = base64.b64decode(str(payload["content"]))
            entry.content = _utf8_or_none(entry.data)
        return entry

    def fetch_full_tree(self, owner: str, repo: str, branch: str) -> List[TreeItem]:
        """Return every blob and tree of ``branch`` in a single recursive listing."""
        url = f"{self._repo_url(owner, repo)}/git/trees/{quote(branch, safe='')}?recursive=1"
        response = self._request("GET", url)
        if response.status == 404:
            raise NotFound(f"Branch {branch} was not found in {owner}/{repo}.", status=404)
        self._raise_for_status(response, what=f"tree of {owner}/{repo}@{branch}")
        payload = self._json(response)
        if not isinstance(payload, dict):
            return []
        if payload.get("truncated"):
            self.logger.warning(
                "Tree for %s/%s@%s was truncated by GitHub; some files will be missing",
                owner,
                repo,
                branch,
            )
        items: List[TreeItem] = []
        for raw in payload.get("tree") or []:
            if not isinstance(raw, dict) or raw.get("type") not in {"blob", "tree"}:
                continue
            items.append(
                TreeItem(
                    path=str(raw.get("path") or ""),
                    type=str(raw["type"]),
                    sha=str(raw.get("sha") or ""),
                    size=raw.get("size"),
                )
            )
        return items

    def fetch_raw(self, url: str) -> str:
        """Download file text from a pre-resolved ``download_url``."""
        return self.fetch_raw_bytes(url).decode("utf-8", errors="replace")

    def fetch_raw_bytes(self, url: str) -> bytes:
        """Download the exact bytes behind ``download_url``."""
        try:
            response = self._transport(
                HttpRequest(
                    method="GET",
                    url=url,
                    headers=self._headers(raw=True),
                    timeout=self.request_timeout,
                )
            )
        except NetworkError as exc:
            raise DownloadError(f"Could not download {url}: {exc}") from exc
        if not response.ok:
            raise DownloadError(
                f"Could not download {url} (status {response.status}). The link may have expired."
            )
        return response.body

    def raw_file_url(self, owner: str, repo: str, branch: str, path: str) -> str:
        return f"{self.raw_url}/{quote(owner)}/{quote(repo)}/{quote(branch)}/{_quote_path(path)}"

    # ------------------------------------------------------------------
    # Writes

    def update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str | bytes,
        *,
        message: str,
        sha: str | None = None,
        branch: str | None = None,
    ) -> CommitResult:
        """Create ``path`` or overwrite it when ``sha`` names its current blob.

        ``bytes`` are committed as-is; ``str`` is encoded as UTF-8 first.
        """
        self._require_token("update files")
        raw = content if isinstance(content, bytes) else content.encode("utf-8")
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(raw).decode("ascii"),
        }
        if sha:
            body["sha"] = sha
        if branch:
            body["branch"] = branch
        url = f"{self._repo_url(owner, repo)}/contents/{_quote_path(path)}"
        self.logger.info("Writing %s to %s/%s", path, owner, repo)
        response = self._request("PUT", url, body=body)
        self._raise_for_write(response, path)
        payload = self._json(response) or {}
        content_info = payload.get("content") if isinstance(payload, dict) else None
        commit_info = payload.get("commit") if isinstance(payload, dict) else None
        return CommitResult(
            path=path,
            sha=content_info.get("sha") if isinstance(content_info, dict) else None,
            commit_sha=commit_info.get("sha") if isinstance(commit_info, dict) else None,
            html_url=content_info.get("html_url") if isinstance(content_info, dict) else None,
        )

    def delete_file(
        self,
        owner: str,
        repo: str,
        path: str,
        sha: str,
        *,
        message: str,
        branch: str | None = None,
    ) -> CommitResult:
        """Delete ``path``; rejected with ConflictError when ``sha`` is stale."""
        self._require_token("delete files")
        body: Dict[str, Any] = {"message": message, "sha": sha}
        if branch:
            body["branch"] = branch
        url = f"{self._repo_url(owner, repo)}/contents/{_quote_path(path)}"
        self.logger.info("Deleting %s from %s/%s", path, owner, repo)
        response = self._request("DELETE", url, body=body)
        if response.status == 404:
            raise NotFound(f"{path} does not exist in {owner}/{repo}.", status=404)
        self._raise_for_write(response, path)
        payload = self._json(response) or {}
        commit_info = payload.get("commit") if isinstance(payload, dict) else None
        return CommitResult(
            path=path,
            sha=None,
            commit_sha=commit_info.get("sha") if isinstance(commit_info, dict) else None,
        )

    def move_file(
        self,
        owner: str,
        repo: str,
        old_path: str,
        new_path: str,
        sha: str,
        content: str | bytes,
        *,
        message: str,
        branch: str | None = None,
    ) -> CommitResult:
        """Move a file by creating ``new_path`` and then deleting ``old_path``.

        A failed create propagates unchanged and leaves the repository as it
        was. A failed delete after a successful create raises
        :class:`PartialFailure`: the file then exists at both paths.
        """
        created = self.update_file(
            owner, repo, new_path, content, message=message, branch=branch
        )
        try:
            self.delete_file(owner, repo, old_path, sha, message=message, branch=branch)
        except (GitHubError, NetworkError) as exc:
            self.logger.error(
                "Created %s but failed to delete %s in %s/%s: %s",
                new_path,
                old_path,
                owner,
                repo,
                exc,
            )
            raise PartialFailure(
                old_path=old_path, new_path=new_path, created=created, cause=exc
            ) from exc
        return created

    # ------------------------------------------------------------------
    # Helpers

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{self.api_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    def _headers(self, *, raw: bool = False) -> Dict[str, str]:
        headers = {"User-Agent": "gitmind"}
        if not raw:
            headers["Accept"] = "application/vnd.github+json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self, method: str, url: str, *, body: Dict[str, Any] | None = None
    ) -> HttpResponse:
        headers = self._headers()
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = json_body(body)
        try:
            return self._transport(
                HttpRequest(
                    method=method,
                    url=url,
                    headers=headers,
                    body=data,
                    timeout=self.request_timeout,
                )
            )
        except NetworkError as exc:
            raise NetworkError(
                "Connection error. Check your internet connection or whether GitHub is down."
            ) from exc

    def _require_token(self, action: str) -> None:
        if not self.token:
            raise Forbidden(f"A GitHub token is required to {action}.")

    @staticmethod
    def _json(response: HttpResponse) -> Any:
        try:
            return response.json()
        except (ValueError, UnicodeDecodeError) as exc:
            raise GitHubError(
                "GitHub returned a response that is not valid JSON.", status=response.status
            ) from exc

    @staticmethod
    def _raise_for_status(response: HttpResponse, *, what: str) -> None:
        if response.ok:
            return
        if response.status == 403:
            if response.header("X-RateLimit-Remaining") == "0":
                raise RateLimited(
                    "GitHub API rate limit reached (60 requests/hour without a token). "
                    "Try again in a few minutes or add a token.",
                    status=403,
                )
            raise Forbidden(
                f"GitHub denied access to {what}. The repository may be private.",
                status=403,
            )
        if response.status == 404:
            raise NotFound(f"GitHub could not find {what}.", status=404)
        raise GitHubError(
            f"GitHub error (status {response.status}) while loading {what}. Try again.",
            status=response.status,
        )

    @classmethod
    def _raise_for_write(cls, response: HttpResponse, path: str) -> None:
        if response.ok:
            return
        detail = _error_message(response)
        if response.status == 409 or (response.status == 422 and "sha" in detail.lower()):
            raise ConflictError(
                f"{path} changed on GitHub since it was loaded ({detail or 'sha mismatch'}). "
                "Reload the file and try again.",
                status=response.status,
            )
        cls._raise_for_status(response, what=path)


def _quote_path(path: str) -> str:
    return "/".join(quote(part, safe="") for part in path.strip("/").split("/") if part)


def _utf8_or_none(data: bytes) -> Optional[str]:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def _error_message(response: HttpResponse) -> str:
    try:
        payload = json.loads(response.text() or "null")
    except ValueError:
        return response.text().strip()
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return ""


__all__ = ["DEFAULT_API_URL", "DEFAULT_RAW_URL", "GitHubClient"]
