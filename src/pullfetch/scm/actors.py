"""Actor cache built once per repository fetch.

Author references are collected from all fetched pull requests, resolved
in one batch, and then looked up by login while pull requests are
assembled. The cache lives only as long as a single fetch.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Protocol, Self, TypeVar

from pullfetch.scm.resolver import fetch_entity

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pullfetch.scm.client import RestClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 5


class Actor(Protocol):
    """A resolved person entity identified by login."""

    @property
    def login(self) -> str: ...

    @classmethod
    def model_validate(cls, obj: Any) -> Self: ...


A = TypeVar("A", bound=Actor)


@dataclass
class ActorCache(Generic[A]):
    """Mapping from login to resolved actor."""

    _actors: dict[str, A] = field(default_factory=dict)
    _hits: int = 0
    _misses: int = 0

    def put(self, actor: A) -> None:
        self._actors[actor.login] = actor

    def get(self, login: str) -> A | None:
        """Get a resolved actor by login, or None on a cache miss."""
        actor = self._actors.get(login)
        if actor is None:
            self._misses += 1
            logger.debug("Actor cache miss: %s", login)
        else:
            self._hits += 1
        return actor

    def __contains__(self, login: object) -> bool:
        return login in self._actors

    def __len__(self) -> int:
        return len(self._actors)

    @property
    def stats(self) -> dict[str, int]:
        """Get cache statistics."""
        return {"size": len(self), "hits": self._hits, "misses": self._misses}


async def resolve_actors(
    client: RestClient,
    urls: Iterable[str],
    actor_type: type[A],
    *,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT,
) -> ActorCache[A]:
    """Resolve each distinct actor URL exactly once.

    At most ``max_concurrent`` requests are in flight. The cache is returned
    only after every resolution has completed. The first failure cancels the
    resolutions still pending and aborts the whole batch.

    Args:
        client: REST transport.
        urls: Actor URLs, possibly with duplicates.
        actor_type: Entity class used to decode actor bodies.
        max_concurrent: Maximum concurrent requests.

    Returns:
        Cache keyed by login.

    Raises:
        FetchError: If any actor cannot be fetched.
    """
    distinct = list(dict.fromkeys(urls))
    semaphore = asyncio.Semaphore(max_concurrent)

    async def fetch_with_limit(url: str) -> A:
        async with semaphore:
            return await fetch_entity(client, url, actor_type)

    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(fetch_with_limit(url)) for url in distinct]
    except ExceptionGroup as eg:
        # Siblings are already cancelled; surface the first failure
        raise eg.exceptions[0]  # noqa: B904

    cache: ActorCache[A] = ActorCache()
    for task in tasks:
        cache.put(task.result())
    logger.debug("Resolved %d distinct actors", len(cache))
    return cache
