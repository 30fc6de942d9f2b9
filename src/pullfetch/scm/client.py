"""Async REST transport with rate limiting and retry.

This module provides the RestClient class which handles:
- Authentication headers supplied by an AuthenticationStrategy
- Rate limit checking with proactive pausing (pause when remaining < 100)
- Jitter on rate limit pauses (sleep until reset + random 0-10s jitter)
- 403/429 rate limit response handling with retry
- Exponential backoff for transient failures (5xx, network errors)

Retries live here and only here; the fetch engine above never retries.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar

import httpx

from pullfetch import __version__
from pullfetch.logging import log_rate_limit
from pullfetch.scm.auth import AuthenticationError, NoAuthentication

if TYPE_CHECKING:
    from pullfetch.scm.auth import AuthenticationStrategy

logger = logging.getLogger(__name__)


class RateLimitError(Exception):
    """Raised when the provider API rate limit is exceeded."""

    def __init__(
        self,
        message: str,
        *,
        reset_at: datetime | None = None,
        remaining: int = 0,
        limit: int = 5000,
        is_secondary: bool = False,
        retry_after: int | None = None,
    ) -> None:
        """Initialize rate limit error.

        Args:
            message: Error description.
            reset_at: When the rate limit resets.
            remaining: Remaining requests.
            limit: Total rate limit.
            is_secondary: Whether this is a secondary (abuse) rate limit.
            retry_after: Server-suggested delay in seconds.
        """
        super().__init__(message)
        self.reset_at = reset_at
        self.remaining = remaining
        self.limit = limit
        self.is_secondary = is_secondary
        self.retry_after = retry_after


class TransientError(Exception):
    """Raised for transient errors that should be retried.

    This includes 5xx server errors and network connectivity errors.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class ApiError(Exception):
    """Raised for non-retryable provider API errors."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: Any = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Error description.
            status_code: HTTP status code.
            response_body: Response JSON body if available.
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


@dataclass(frozen=True)
class RestResponse:
    """A decoded (status, headers, body) triple."""

    status: int
    headers: httpx.Headers
    body: Any


@dataclass
class RateLimitInfo:
    """Provider API rate limit information."""

    limit: int
    remaining: int
    reset_at: datetime
    used: int

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> RateLimitInfo | None:
        """Parse rate limit info from response headers.

        Args:
            headers: HTTP response headers.

        Returns:
            RateLimitInfo instance, or None if the provider sent no
            rate limit headers.
        """
        if "X-RateLimit-Remaining" not in headers:
            return None

        limit = int(headers.get("X-RateLimit-Limit", 5000))
        remaining = int(headers.get("X-RateLimit-Remaining", 0))
        reset_timestamp = int(headers.get("X-RateLimit-Reset", 0))
        used = int(headers.get("X-RateLimit-Used", 0))

        return cls(
            limit=limit,
            remaining=remaining,
            reset_at=datetime.fromtimestamp(reset_timestamp, tz=UTC),
            used=used,
        )

    @property
    def seconds_until_reset(self) -> float:
        """Get seconds until rate limit resets."""
        delta = (self.reset_at - datetime.now(UTC)).total_seconds()
        return max(0, delta)


def extract_error_message(body: Any) -> str:
    """Extract the provider error message from an error response body.

    Handles ``{"message": "..."}`` and ``{"errors": [{"message": "..."}]}``.
    """
    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict) and first.get("message"):
                return str(first["message"])
    if isinstance(body, str) and body:
        return body
    return "Unknown error"


class RestClient:
    """Async REST client for SCM provider APIs.

    Features:
    - Proactive rate limit checking (pause when remaining < 100)
    - Jitter on rate limit pauses (sleep until reset + random 0-10s)
    - Rate limit response handling with automatic retry
    - Exponential backoff for transient failures (5xx, network errors)

    The client supports both context manager and standalone usage. An
    ``httpx.AsyncClient`` may be injected (tests use ``httpx.MockTransport``);
    an injected client is never closed by this class.
    """

    # Threshold to pause before hitting rate limit
    RATE_LIMIT_THRESHOLD = 100

    # Jitter range for rate limit pause (0-10 seconds)
    RATE_LIMIT_JITTER_MIN = 0
    RATE_LIMIT_JITTER_MAX = 10

    # Secondary rate limit backoff (abuse detection)
    SECONDARY_BACKOFF_MULTIPLIERS: ClassVar[list[int]] = [1, 2, 4, 8]  # minutes

    def __init__(
        self,
        auth: AuthenticationStrategy | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        user_agent: str = f"pullfetch/{__version__}",
        timeout: float = 30.0,
        max_retries: int = 4,
        initial_backoff_seconds: float = 60,
        max_backoff_seconds: float = 480,
    ) -> None:
        """Initialize REST client.

        Args:
            auth: Authentication strategy (anonymous if None).
            client: Optional pre-built httpx client.
            user_agent: User-Agent header value.
            timeout: Per-request timeout in seconds.
            max_retries: Attempts per request before giving up.
            initial_backoff_seconds: First backoff delay for transient errors.
            max_backoff_seconds: Upper bound for backoff delays.
        """
        self._auth = auth or NoAuthentication()
        self._client = client
        self._owns_client = client is None
        self._user_agent = user_agent
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._initial_backoff = initial_backoff_seconds
        self._max_backoff = max_backoff_seconds
        self._rate_limit: RateLimitInfo | None = None
        self._secondary_rate_limit_retries = 0

    @property
    def headers(self) -> dict[str, str]:
        """Get default request headers."""
        return {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": self._user_agent,
            **self._auth.headers(),
        }

    @property
    def rate_limit(self) -> RateLimitInfo | None:
        """Get the most recently observed rate limit information."""
        return self._rate_limit

    async def __aenter__(self) -> RestClient:
        await self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure we have an active client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._client

    async def _check_rate_limit(self) -> None:
        """Pause until reset (plus jitter) when the remaining quota is low."""
        if self._rate_limit is None:
            return

        if self._rate_limit.remaining < self.RATE_LIMIT_THRESHOLD:
            jitter = random.uniform(
                self.RATE_LIMIT_JITTER_MIN,
                self.RATE_LIMIT_JITTER_MAX,
            )
            wait_time = self._rate_limit.seconds_until_reset + jitter
            log_rate_limit(
                remaining=self._rate_limit.remaining,
                limit=self._rate_limit.limit,
                reset_at=self._rate_limit.reset_at.isoformat(),
                pausing=True,
            )
            await asyncio.sleep(wait_time)
            # Quota is unknown until the next response arrives
            self._rate_limit = None

    def _handle_response(self, response: httpx.Response) -> RestResponse:
        """Handle API response and update rate limit info.

        Args:
            response: HTTP response.

        Returns:
            Decoded response.

        Raises:
            RateLimitError: If rate limit exceeded.
            TransientError: For 5xx errors that should be retried.
            AuthenticationError: For 401 responses.
            ApiError: For other API errors.
        """
        rate_limit = RateLimitInfo.from_headers(response.headers)
        if rate_limit is not None:
            self._rate_limit = rate_limit

        if 200 <= response.status_code < 300:
            body = response.json() if response.content else None
            return RestResponse(response.status_code, response.headers, body)

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = response.text
        message = extract_error_message(body)
        retry_after = int(response.headers.get("Retry-After", 0)) or None

        if response.status_code in (403, 429):
            lowered = message.lower()
            if "secondary rate limit" in lowered or "abuse" in lowered:
                raise RateLimitError(
                    f"Secondary rate limit: {message}",
                    reset_at=rate_limit.reset_at if rate_limit else None,
                    is_secondary=True,
                    retry_after=retry_after,
                )
            if "rate limit" in lowered or (rate_limit and rate_limit.remaining == 0):
                raise RateLimitError(
                    f"API rate limit exceeded: {message}",
                    reset_at=rate_limit.reset_at if rate_limit else None,
                    remaining=rate_limit.remaining if rate_limit else 0,
                    limit=rate_limit.limit if rate_limit else 0,
                    retry_after=retry_after,
                )

        if response.status_code == 401:
            raise AuthenticationError(
                f"Authentication failed: {message}",
                status_code=401,
            )

        if response.status_code >= 500:
            raise TransientError(
                f"Server error: {response.status_code}",
                status_code=response.status_code,
                retry_after=retry_after,
            )

        raise ApiError(
            f"API error: {response.status_code} - {message}",
            status_code=response.status_code,
            response_body=body,
        )

    def _backoff(self, attempt: int) -> float:
        return min(self._initial_backoff * (2**attempt), self._max_backoff)

    async def get(self, url: str) -> RestResponse:
        """Issue a GET request with automatic retry for transient errors.

        Args:
            url: Absolute URL.

        Returns:
            Decoded response.

        Raises:
            ApiError: For non-recoverable errors or exhausted retries.
            RateLimitError: If rate limit exceeded after retries.
            AuthenticationError: If credentials are rejected.
        """
        client = await self._ensure_client()
        last_error: Exception | None = None

        for attempt in range(self._max_retries):
            try:
                await self._check_rate_limit()
                logger.debug("GET %s", url)
                response = await client.get(url, headers=self.headers)
                result = self._handle_response(response)
                self._secondary_rate_limit_retries = 0
                return result

            except RateLimitError as e:
                last_error = e
                if e.is_secondary:
                    if self._secondary_rate_limit_retries >= len(
                        self.SECONDARY_BACKOFF_MULTIPLIERS
                    ):
                        raise
                    backoff_minutes = self.SECONDARY_BACKOFF_MULTIPLIERS[
                        self._secondary_rate_limit_retries
                    ]
                    self._secondary_rate_limit_retries += 1
                    wait_time = e.retry_after or backoff_minutes * 60
                    logger.warning(
                        "Secondary rate limit hit (attempt %d/%d), waiting %d seconds",
                        self._secondary_rate_limit_retries,
                        len(self.SECONDARY_BACKOFF_MULTIPLIERS),
                        wait_time,
                    )
                    await asyncio.sleep(wait_time)
                    continue

                if e.reset_at is None and e.retry_after is None:
                    raise
                jitter = random.uniform(
                    self.RATE_LIMIT_JITTER_MIN,
                    self.RATE_LIMIT_JITTER_MAX,
                )
                if e.retry_after is not None:
                    wait_time = float(e.retry_after)
                else:
                    wait_time = max(
                        0, (e.reset_at - datetime.now(UTC)).total_seconds() + jitter
                    )
                logger.warning("Rate limit exceeded, waiting %.0f seconds", wait_time)
                await asyncio.sleep(wait_time)

            except TransientError as e:
                last_error = e
                backoff = e.retry_after or self._backoff(attempt)
                logger.warning(
                    "Transient error (attempt %d/%d): %s. Retrying in %d seconds",
                    attempt + 1,
                    self._max_retries,
                    e,
                    backoff,
                )
                await asyncio.sleep(backoff)

            except httpx.RequestError as e:
                last_error = e
                backoff = self._backoff(attempt)
                logger.warning(
                    "Network error (attempt %d/%d): %s. Retrying in %d seconds",
                    attempt + 1,
                    self._max_retries,
                    e,
                    backoff,
                )
                await asyncio.sleep(backoff)

        if isinstance(last_error, RateLimitError | ApiError):
            raise last_error
        raise ApiError(
            f"Request failed after {self._max_retries} retries: {last_error}",
        ) from last_error

    def __repr__(self) -> str:
        return f"RestClient(auth={self._auth!r})"
