"""Authentication strategies for SCM provider requests."""

from __future__ import annotations

import base64
import os
from abc import ABC, abstractmethod


class AuthenticationError(Exception):
    """Raised when provider credentials are missing or rejected."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        """Initialize authentication error.

        Args:
            message: Error description.
            status_code: HTTP status code if from API response.
        """
        super().__init__(message)
        self.status_code = status_code


def get_token_from_env(var_name: str = "GITHUB_TOKEN") -> str:
    """Get an access token from the environment.

    Args:
        var_name: Environment variable holding the token.

    Returns:
        The token with surrounding whitespace removed.

    Raises:
        AuthenticationError: If the variable is not set.
    """
    token = os.environ.get(var_name, "").strip()
    if not token:
        raise AuthenticationError(
            f"{var_name} environment variable is not set. "
            "Please set it to a valid personal access token."
        )
    return token


def mask_token(token: str) -> str:
    """Mask a token for safe logging.

    Args:
        token: Token to mask.

    Returns:
        Masked token showing first 4 and last 4 characters.
    """
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"


class AuthenticationStrategy(ABC):
    """Supplies the authentication headers attached to every request."""

    @abstractmethod
    def headers(self) -> dict[str, str]:
        """Return authentication headers."""
        ...


class TokenAuthentication(AuthenticationStrategy):
    """Personal access token authentication."""

    def __init__(self, token: str) -> None:
        if not token:
            raise AuthenticationError("Access token must not be empty")
        self._token = token

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"token {self._token}"}

    def __repr__(self) -> str:
        return f"TokenAuthentication(token={mask_token(self._token)!r})"


class BasicAuthentication(AuthenticationStrategy):
    """Username and password (or app password) authentication."""

    def __init__(self, username: str, password: str) -> None:
        self._username = username
        self._password = password

    def headers(self) -> dict[str, str]:
        raw = f"{self._username}:{self._password}".encode()
        return {"Authorization": f"Basic {base64.b64encode(raw).decode('ascii')}"}

    def __repr__(self) -> str:
        return f"BasicAuthentication(username={self._username!r})"


class NoAuthentication(AuthenticationStrategy):
    """Anonymous access, for public repositories."""

    def headers(self) -> dict[str, str]:
        return {}

    def __repr__(self) -> str:
        return "NoAuthentication()"
