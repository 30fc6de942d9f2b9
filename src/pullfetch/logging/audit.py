"""Structured logging configuration and fetch progress events.

This module provides:
- structlog configuration for JSON or console logging to stderr
- Secret redaction for tokens and Authorization headers
- Structured log events for page fetches, fetch summaries and rate limits
"""

from __future__ import annotations

import logging
import re
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    from structlog.typing import EventDict, WrappedLogger

# Patterns for secret redaction
SECRET_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # GitHub tokens (ghp_, gho_, ghu_, ghs_, ghr_ prefixes)
    (re.compile(r"(gh[pousr]_[A-Za-z0-9_]{36,})"), "[REDACTED_GITHUB_TOKEN]"),
    # Fine-grained personal access tokens
    (re.compile(r"(github_pat_[A-Za-z0-9_]{22,})"), "[REDACTED_GITHUB_TOKEN]"),
    (re.compile(r"(token[=:]\s*['\"]?)([A-Za-z0-9_-]{20,})"), r"\1[REDACTED]"),
    (re.compile(r"(Bearer\s+)([A-Za-z0-9._-]+)", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(Basic\s+)([A-Za-z0-9+/=]+)"), r"\1[REDACTED]"),
    (re.compile(r"(authorization[=:]\s*['\"]?)([^\s'\"]+)", re.IGNORECASE), r"\1[REDACTED]"),
]


def redact_secrets(value: Any) -> Any:
    """Redact sensitive values from a string, dict, or list.

    Args:
        value: Value to redact. Can be str, dict, list, or other.

    Returns:
        Value with sensitive data redacted
    """
    if isinstance(value, str):
        result = value
        for pattern, replacement in SECRET_PATTERNS:
            result = pattern.sub(replacement, result)
        return result

    if isinstance(value, dict):
        return {k: redact_secrets(v) for k, v in value.items()}

    if isinstance(value, list):
        return [redact_secrets(item) for item in value]

    return value


def _redact_processor(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """structlog processor that redacts secrets from log events."""
    return redact_secrets(event_dict)


def configure_logging(
    verbose: bool = False,
    json_output: bool = True,
) -> None:
    """Configure structured logging for the application.

    Sets up structlog with JSON formatting to stderr, including:
    - Timestamp in ISO format
    - Log level
    - Secret redaction
    - Exception formatting

    Args:
        verbose: If True, enable DEBUG level. Otherwise INFO.
        json_output: If True, output JSON. Otherwise use console format.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )

    processors: list[Callable[..., Any]] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _redact_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger.

    Args:
        name: Optional logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return structlog.get_logger(name)


def log_page_fetched(
    url: str,
    received: int,
    accumulated: int,
    state: str,
) -> None:
    """Log one page of a paginated fetch.

    Args:
        url: Page URL that was requested
        received: Number of entities on the page
        accumulated: Entities kept after sorting and trimming
        state: Paging state after this page (e.g. 'more_pages')
    """
    log = get_logger("pullfetch.paging")
    log.debug(
        "page_fetched",
        url=url,
        received=received,
        accumulated=accumulated,
        state=state,
    )


def log_fetch_summary(
    repo_url: str,
    fetched: int,
    matched: int,
    authors: int,
    commits: int,
    duration_ms: float,
) -> None:
    """Log completion of a repository fetch.

    Args:
        repo_url: Repository that was fetched
        fetched: Pull requests received within bounds
        matched: Pull requests matching the branch filters
        authors: Distinct authors resolved
        commits: Total commits attached to the output
        duration_ms: Fetch duration in milliseconds
    """
    log = get_logger("pullfetch.fetch")
    log.info(
        "fetch_complete",
        repo_url=repo_url,
        pull_requests_fetched=fetched,
        pull_requests_matched=matched,
        authors_resolved=authors,
        commits=commits,
        duration_ms=round(duration_ms, 2),
    )


def log_rate_limit(
    remaining: int,
    limit: int,
    reset_at: str,
    pausing: bool = False,
) -> None:
    """Log rate limit status.

    Args:
        remaining: Remaining API calls
        limit: Total API call limit
        reset_at: ISO timestamp when limit resets
        pausing: Whether we're pausing due to low quota
    """
    log = get_logger("pullfetch.ratelimit")

    if pausing:
        log.warning(
            "rate_limit_pause",
            remaining=remaining,
            limit=limit,
            reset_at=reset_at,
            message=f"Pausing until {reset_at} (remaining: {remaining}/{limit})",
        )
    else:
        log.debug(
            "rate_limit_check",
            remaining=remaining,
            limit=limit,
            reset_at=reset_at,
        )
