"""Entry points that wire configuration, transport and provider handler."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pullfetch.config.schema import ProviderConfig
from pullfetch.scm.auth import (
    AuthenticationStrategy,
    BasicAuthentication,
    NoAuthentication,
    TokenAuthentication,
)
from pullfetch.scm.client import RestClient
from pullfetch.scm.providers import get_fetch_handler

if TYPE_CHECKING:
    import httpx

    from pullfetch.config.schema import FetchParameters
    from pullfetch.scm.normalized import NormalizedPullRequest

logger = logging.getLogger(__name__)


def build_auth(provider: ProviderConfig) -> AuthenticationStrategy:
    """Build the authentication strategy for a provider configuration."""
    if provider.token:
        return TokenAuthentication(provider.token)
    if provider.username and provider.password:
        return BasicAuthentication(provider.username, provider.password)
    logger.warning("No credentials configured, using anonymous access")
    return NoAuthentication()


async def fetch_pull_requests(
    parameters: FetchParameters,
    provider: ProviderConfig | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> list[NormalizedPullRequest]:
    """Fetch normalized pull requests of one repository.

    Args:
        parameters: Repository URL, bounds and branch filters.
        provider: Provider type and credentials (defaults: auto, anonymous).
        http_client: Optional pre-built httpx client.

    Returns:
        Normalized pull requests.
    """
    provider = provider or ProviderConfig()
    async with RestClient(
        build_auth(provider),
        client=http_client,
        timeout=provider.timeout,
        max_retries=provider.max_retries,
    ) as client:
        handler = get_fetch_handler(
            provider.type,
            client,
            repo_url=parameters.repo_url,
            base_url=provider.base_url,
        )
        return await handler.fetch_pull_requests(parameters)


def fetch_pull_requests_sync(
    parameters: FetchParameters,
    provider: ProviderConfig | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> list[NormalizedPullRequest]:
    """Blocking variant of :func:`fetch_pull_requests`."""
    return asyncio.run(fetch_pull_requests(parameters, provider, http_client=http_client))
