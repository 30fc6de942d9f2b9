"""Logging module for pullfetch.

This module provides structured JSON logging with:
- structlog configuration for consistent log formatting
- Secret redaction for access tokens and Authorization headers
- Structured log events for paging progress and fetch summaries

Usage:
    from pullfetch.logging import configure_logging, log_fetch_summary

    configure_logging(verbose=True)
"""

from pullfetch.logging.audit import (
    configure_logging,
    get_logger,
    log_fetch_summary,
    log_page_fetched,
    log_rate_limit,
    redact_secrets,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "log_fetch_summary",
    "log_page_fetched",
    "log_rate_limit",
    "redact_secrets",
]
