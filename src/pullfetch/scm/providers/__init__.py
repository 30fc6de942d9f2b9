"""Provider fetch handlers and the handler factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pullfetch.config.schema import ProviderType
from pullfetch.scm.providers.base import PullRequestFetchHandler
from pullfetch.scm.providers.github import (
    GITHUB_CLOUD_HOST,
    GitHubCloudFetchHandler,
    GitHubServerFetchHandler,
    parse_repo_url,
)

if TYPE_CHECKING:
    from pullfetch.scm.client import RestClient

_HANDLERS: dict[ProviderType, type[PullRequestFetchHandler]] = {
    ProviderType.GITHUB_CLOUD: GitHubCloudFetchHandler,
    ProviderType.GITHUB_SERVER: GitHubServerFetchHandler,
}


def detect_provider_type(repo_url: str) -> ProviderType:
    """Pick the provider from the repository host.

    github.com (and its www/api aliases) is GitHub cloud; any other host
    is treated as a GitHub Enterprise Server.
    """
    host = parse_repo_url(repo_url).host
    if host == GITHUB_CLOUD_HOST or host.endswith(f".{GITHUB_CLOUD_HOST}"):
        return ProviderType.GITHUB_CLOUD
    return ProviderType.GITHUB_SERVER


def get_fetch_handler(
    provider_type: ProviderType,
    client: RestClient,
    *,
    repo_url: str | None = None,
    base_url: str | None = None,
) -> PullRequestFetchHandler:
    """Create the fetch handler for a provider.

    Args:
        provider_type: Provider, or AUTO to detect it from ``repo_url``.
        client: REST transport the handler will use.
        repo_url: Repository URL, required for AUTO.
        base_url: API root overriding the one derived from the repository host.

    Raises:
        ValueError: If AUTO is requested without a repository URL.
    """
    if provider_type is ProviderType.AUTO:
        if not repo_url:
            msg = "repo_url is required to detect the provider"
            raise ValueError(msg)
        provider_type = detect_provider_type(repo_url)
    return _HANDLERS[provider_type](client, base_url=base_url)


__all__ = [
    "GitHubCloudFetchHandler",
    "GitHubServerFetchHandler",
    "PullRequestFetchHandler",
    "detect_provider_type",
    "get_fetch_handler",
    "parse_repo_url",
]
