"""Provider-independent pull request fetch engine.

A provider handler supplies how to locate collections, how to follow
pagination, and how to map its native entities; the fetch sequence is
shared:

1. ping the repository API;
2. page through pull requests, bounded by count and update time;
3. keep pull requests whose head/base branches match the filters;
4. resolve every distinct author once;
5. page through each kept pull request's commits, newest first;
6. assemble the normalized records.

Any failure aborts the whole fetch; there are no partial results.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, Generic, Protocol, TypeVar

from pullfetch.logging import log_fetch_summary
from pullfetch.scm import branches
from pullfetch.scm.actors import Actor, ActorCache, resolve_actors
from pullfetch.scm.errors import ConnectivityError, FetchError, ResolutionError
from pullfetch.scm.pagination import next_page as link_next_page
from pullfetch.scm.walker import FetchBounds, PagedEntity, fetch_paged

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pullfetch.config.schema import FetchParameters
    from pullfetch.scm.client import RestClient
    from pullfetch.scm.normalized import (
        NormalizedCommit,
        NormalizedPullRequest,
        RepositoryDescriptor,
    )

logger = logging.getLogger(__name__)


class PullRequestEntity(PagedEntity, Protocol):
    """What the engine reads from a provider-native pull request."""

    @property
    def source_branch(self) -> str: ...

    @property
    def target_branch(self) -> str: ...

    @property
    def author_login(self) -> str: ...

    @property
    def author_locator(self) -> str: ...

    @property
    def commits_locator(self) -> str: ...

    @property
    def self_locator(self) -> str | None: ...


P = TypeVar("P", bound=PullRequestEntity)
C = TypeVar("C", bound=PagedEntity)
U = TypeVar("U", bound=Actor)


class PullRequestFetchHandler(ABC, Generic[P, C, U]):
    """Base class of provider fetch handlers.

    Subclasses declare their native entity types and implement the
    locator and mapping hooks.
    """

    pull_request_type: ClassVar[type]
    commit_type: ClassVar[type]
    actor_type: ClassVar[type]

    def __init__(self, client: RestClient, *, base_url: str | None = None) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/") if base_url else None

    @property
    def name(self) -> str:
        return type(self).__name__.removesuffix("FetchHandler")

    # Provider hooks

    @abstractmethod
    def repo_api_path(self, repo_url: str) -> str:
        """Derive the repository API base URL from a clone or web URL."""

    @abstractmethod
    def pull_requests_locator(self, api_path: str) -> str:
        """URL of the first page of the pull request collection."""

    def next_page(self, headers: Mapping[str, str]) -> str | None:
        """Extract the next page locator from response headers."""
        return link_next_page(headers)

    @abstractmethod
    def to_commit(self, commit: C) -> NormalizedCommit:
        """Map a native commit."""

    @abstractmethod
    def to_repository(self, pull_request: P, *, source: bool) -> RepositoryDescriptor:
        """Map the source (head) or target (base) side of a pull request."""

    @abstractmethod
    def to_pull_request(
        self,
        pull_request: P,
        author: U,
        commits: list[NormalizedCommit],
    ) -> NormalizedPullRequest:
        """Map a native pull request with its resolved author and commits."""

    # Engine

    async def ping(self, api_path: str) -> None:
        """Check that the repository API is reachable.

        Raises:
            ConnectivityError: If the request fails for any reason.
        """
        try:
            await self._client.get(api_path)
        except Exception as e:
            msg = f"Repository {api_path} is not reachable: {e}"
            raise ConnectivityError(msg, url=api_path) from e

    async def fetch_pull_requests(
        self,
        parameters: FetchParameters,
    ) -> list[NormalizedPullRequest]:
        """Fetch and normalize pull requests of one repository.

        Args:
            parameters: Repository URL, bounds and branch filters.

        Returns:
            Normalized pull requests in provider order.

        Raises:
            ValueError: If the repository URL is missing or unparseable.
            ConnectivityError: If the repository API is not reachable.
            FetchError: If any remote call fails or the deadline expires.
            ResolutionError: If a pull request author was not resolved.
        """
        if not parameters.repo_url:
            msg = "repo_url is required"
            raise ValueError(msg)

        if parameters.timeout_seconds is None:
            return await self._fetch(parameters)

        try:
            return await asyncio.wait_for(
                self._fetch(parameters),
                timeout=parameters.timeout_seconds,
            )
        except TimeoutError as e:
            raise FetchError(
                "fetch_pull_requests", url=parameters.repo_url, cause=e
            ) from e

    async def _fetch(self, parameters: FetchParameters) -> list[NormalizedPullRequest]:
        started = time.monotonic()
        repo_url = parameters.repo_url or ""

        api_path = self.repo_api_path(repo_url)
        self._progress(parameters, f"{self.name} handler, Base url : {api_path}")
        await self.ping(api_path)

        locator = self.pull_requests_locator(api_path)
        self._progress(parameters, f"Pull requests url : {locator}")
        for line in parameters.describe():
            self._progress(parameters, line)

        pull_requests: list[P] = await fetch_paged(
            self._client,
            locator,
            self.pull_request_type,
            FetchBounds(
                page_size=parameters.page_size,
                max_total=parameters.max_prs_to_fetch,
                min_update_time=parameters.min_update_time,
                sort_required=False,
            ),
            next_page=self.next_page,
        )

        source_patterns = branches.compile_patterns(parameters.source_branch_filter)
        target_patterns = branches.compile_patterns(parameters.target_branch_filter)
        matching = [
            pr
            for pr in pull_requests
            if branches.matches(source_patterns, pr.source_branch)
            and branches.matches(target_patterns, pr.target_branch)
        ]
        self._progress(
            parameters,
            f"Received {len(pull_requests)} pull-requests, "
            f"while {len(matching)} are matching source/target filters",
        )

        actors: ActorCache[U] = await resolve_actors(
            self._client,
            (pr.author_locator for pr in pull_requests),
            self.actor_type,
        )

        commit_bounds = FetchBounds(
            page_size=parameters.max_commits_to_fetch,
            max_total=parameters.max_commits_to_fetch,
            min_update_time=parameters.min_update_time,
            sort_required=True,
        )
        result: list[NormalizedPullRequest] = []
        total_commits = 0
        for pr in matching:
            commits: list[C] = await fetch_paged(
                self._client,
                pr.commits_locator,
                self.commit_type,
                commit_bounds,
                next_page=self.next_page,
            )
            author = actors.get(pr.author_login)
            if author is None:
                raise ResolutionError(pr.author_login)

            try:
                normalized_commits = [self.to_commit(commit) for commit in commits]
                result.append(self.to_pull_request(pr, author, normalized_commits))
            except Exception as e:
                raise FetchError(
                    "normalize_pull_request", url=pr.self_locator, cause=e
                ) from e
            total_commits += len(normalized_commits)

        logger.debug("Actor cache after assembly: %s", actors.stats)
        log_fetch_summary(
            repo_url=repo_url,
            fetched=len(pull_requests),
            matched=len(matching),
            authors=len(actors),
            commits=total_commits,
            duration_ms=(time.monotonic() - started) * 1000,
        )
        return result

    @staticmethod
    def _progress(parameters: FetchParameters, message: str) -> None:
        if parameters.log_consumer is not None:
            parameters.log_consumer(message)
        else:
            logger.info(message)
