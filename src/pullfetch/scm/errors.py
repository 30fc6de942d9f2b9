"""Exceptions raised by the pull-request fetch engine.

Every failure aborts the whole repository fetch. The original exception is
always chained as ``__cause__`` so the failing remote call can be diagnosed.
"""

from __future__ import annotations


class PullFetchError(Exception):
    """Base class for fetch engine errors."""


class ConnectivityError(PullFetchError):
    """Raised when the repository reachability check fails."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        """Initialize connectivity error.

        Args:
            message: Error description.
            url: The API URL that could not be reached.
        """
        super().__init__(message)
        self.url = url


class FetchError(PullFetchError):
    """Raised when a paginated or single-entity GET fails."""

    def __init__(
        self,
        operation: str,
        *,
        url: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        """Initialize fetch error.

        Args:
            operation: Name of the operation that failed (e.g. ``fetch_paged``).
            url: The URL that was being requested.
            cause: The underlying exception.
        """
        detail = f": {cause}" if cause is not None else ""
        target = f" ({url})" if url else ""
        super().__init__(f"Failed to {operation}{target}{detail}")
        self.operation = operation
        self.url = url
        self.cause = cause


class ResolutionError(PullFetchError):
    """Raised when a pull request author is missing from the actor cache."""

    def __init__(self, login: str | None, *, pull_request_id: str | None = None) -> None:
        """Initialize resolution error.

        Args:
            login: Login of the author that could not be resolved.
            pull_request_id: Pull request that references the author.
        """
        where = f" for pull request {pull_request_id}" if pull_request_id else ""
        super().__init__(f"Author '{login}' could not be resolved{where}")
        self.login = login
        self.pull_request_id = pull_request_id
