"""Normalise free-form repository identifiers into owner/repo pairs."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from ..errors import ParseError
from ..models import RepoRef

_SIMPLE_PATTERN = re.compile(r"^([A-Za-z0-9\-._]+)/([A-Za-z0-9\-._]+)$")
_WWW_PREFIX = re.compile(r"^www\.")


def parse_repo_identifier(value: str) -> RepoRef:
    """Return the repository named by ``value``.

    Accepts ``owner/repo``, ``github.com/owner/repo``, full URLs with deep
    paths such as ``/tree/main/src``, and ``.git`` suffixes. Raises
    :class:`ParseError` for anything else.
    """
    text = (value or "").strip()
    if not text:
        raise ParseError(value or "")

    ref = _parse_as_url(text)
    if ref is not None:
        return ref

    match = _SIMPLE_PATTERN.match(text)
    if match:
        return RepoRef(owner=match.group(1), repo=_strip_git_suffix(match.group(2)))

    raise ParseError(text)


def _parse_as_url(text: str) -> RepoRef | None:
    candidate = text
    if "://" not in text:
        candidate = "https://" + _WWW_PREFIX.sub("", text)
    try:
        parsed = urlparse(candidate)
        host = parsed.hostname or ""
    except ValueError:
        return None
    if "github.com" not in host.lower():
        return None
    segments = [segment for segment in parsed.path.split("/") if segment]
    if len(segments) < 2:
        return None
    repo = _strip_git_suffix(segments[1])
    if not repo:
        return None
    return RepoRef(owner=segments[0], repo=repo)


def _strip_git_suffix(name: str) -> str:
    return name[:-4] if name.endswith(".git") else name


__all__ = ["parse_repo_identifier"]
