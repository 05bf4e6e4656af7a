"""Authentication port for Google Drive access tokens."""

from __future__ import annotations

import os
from typing import Protocol, Sequence

from .errors import AuthError


class Authenticator(Protocol):
    """Returns an OAuth access token for the requested scopes or raises AuthError."""

    def acquire_token(self, scopes: Sequence[str]) -> str: ...


class StaticTokenAuthenticator:
    """Hands back a token the user pasted in."""

    def __init__(self, token: str | None) -> None:
        self._token = token

    def acquire_token(self, scopes: Sequence[str]) -> str:
        if not self._token:
            raise AuthError("Connect Google Drive first: no access token was provided.")
        return self._token


class EnvironmentAuthenticator:
    """Reads the access token from the environment on each request."""

    def __init__(self, variable: str = "GOOGLE_DRIVE_TOKEN") -> None:
        self.variable = variable

    def acquire_token(self, scopes: Sequence[str]) -> str:
        token = os.getenv(self.variable)
        if not token:
            raise AuthError(
                f"Google Drive is not connected. Set {self.variable} to an access token "
                f"with scopes: {', '.join(scopes)}."
            )
        return token


__all__ = ["Authenticator", "EnvironmentAuthenticator", "StaticTokenAuthenticator"]
