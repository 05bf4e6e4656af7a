"""Minimal HTTP transport shared by the GitHub, Drive and model clients."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from .errors import NetworkError

DEFAULT_TIMEOUT = 30.0


@dataclass
class HttpRequest:
    """Outgoing request handed to a transport."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    timeout: Optional[float] = None


@dataclass
class HttpResponse:
    """Response returned by a transport; non-2xx statuses are not raised."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        if not self.body:
            return None
        return json.loads(self.body.decode("utf-8"))


Transport = Callable[[HttpRequest], HttpResponse]


def urllib_transport(request: HttpRequest) -> HttpResponse:
    """Send ``request`` with urllib, mapping transport failures to NetworkError."""
    http_request = Request(
        request.url,
        data=request.body,
        headers=request.headers,
        method=request.method,
    )
    timeout = request.timeout or DEFAULT_TIMEOUT
    try:
        with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
            return HttpResponse(
                status=response.status,
                headers=dict(response.headers.items()),
                body=response.read(),
            )
    except HTTPError as exc:
        body = exc.read() if hasattr(exc, "read") else b""
        headers = dict(exc.headers.items()) if exc.headers is not None else {}
        return HttpResponse(status=exc.code, headers=headers, body=body or b"")
    except URLError as exc:
        raise NetworkError(f"Connection failed for {request.url}: {exc.reason}") from exc
    except (TimeoutError, OSError) as exc:
        raise NetworkError(f"Connection failed for {request.url}: {exc}") from exc


def json_body(payload: Mapping[str, Any]) -> bytes:
    return json.dumps(payload).encode("utf-8")


def with_query(url: str, params: Mapping[str, Any]) -> str:
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


__all__ = [
    "DEFAULT_TIMEOUT",
    "HttpRequest",
    "HttpResponse",
    "Transport",
    "json_body",
    "urllib_transport",
    "with_query",
]
