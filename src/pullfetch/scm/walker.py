"""Cursor-following paginator over remote entity collections.

The walker issues GET requests in cursor order, decodes each page into
entities, and after every page optionally re-sorts the accumulated
entities newest first before trimming:

- by size: entities beyond ``max_total`` are dropped from the tail;
- by recency: entities whose update time is at or below
  ``min_update_time`` are dropped from the tail, stopping at the first
  newer one.

Either trim ends the walk even when another page is advertised. Tail
trimming by recency assumes the accumulator is sorted newest first; with
``sort_required=False`` that order must come from the provider.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, Self, TypeVar

import httpx

from pullfetch.logging import log_page_fetched
from pullfetch.scm.errors import FetchError
from pullfetch.scm.pagination import next_page as link_next_page

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from pullfetch.scm.client import RestClient

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE_PARAM = "per_page"


class PagedEntity(Protocol):
    """An entity decodable from a page body that exposes its update time."""

    @property
    def updated_time(self) -> int: ...

    @classmethod
    def model_validate(cls, obj: Any) -> Self: ...


E = TypeVar("E", bound=PagedEntity)


class PagingState(str, Enum):
    """Where the walk stands after a page has been processed."""

    MORE_PAGES = "more_pages"
    TRIMMED_BY_CAP = "trimmed_by_cap"
    TRIMMED_BY_CUTOFF = "trimmed_by_cutoff"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class FetchBounds:
    """Limits applied to one paginated fetch.

    Attributes:
        page_size: Entities requested per page.
        max_total: Maximum number of entities returned.
        min_update_time: Exclusive lower bound on update time in epoch
            milliseconds; 0 disables the cutoff.
        sort_required: Re-sort the accumulator newest first after each page.
    """

    page_size: int
    max_total: int
    min_update_time: int = 0
    sort_required: bool = False

    def __post_init__(self) -> None:
        if self.page_size < 1:
            msg = f"page_size must be positive, got {self.page_size}"
            raise ValueError(msg)
        if self.max_total < 0:
            msg = f"max_total must not be negative, got {self.max_total}"
            raise ValueError(msg)


def with_page_size(locator: str, page_size: int, param: str = DEFAULT_PAGE_SIZE_PARAM) -> str:
    """Add the page size query parameter, keeping any existing query."""
    return str(httpx.URL(locator).copy_merge_params({param: page_size}))


def decode_page(body: Any, entity_type: type[E]) -> list[E]:
    """Decode a page body (a JSON array) into entities.

    Raises:
        TypeError: If the body is not a list.
        pydantic.ValidationError: If an item does not fit the entity shape.
    """
    if not isinstance(body, list):
        msg = f"Expected a JSON array page body, got {type(body).__name__}"
        raise TypeError(msg)
    return [entity_type.model_validate(item) for item in body]


def trim(accumulator: list[E], bounds: FetchBounds, state: PagingState) -> PagingState:
    """Sort and trim the accumulator in place.

    Args:
        accumulator: Entities gathered so far.
        bounds: Fetch limits.
        state: State derived from the cursor of the latest page.

    Returns:
        The state after trimming.
    """
    if bounds.sort_required:
        accumulator.sort(key=lambda entity: entity.updated_time, reverse=True)

    if len(accumulator) > bounds.max_total:
        del accumulator[bounds.max_total :]
        state = PagingState.TRIMMED_BY_CAP

    if bounds.min_update_time > 0:
        while accumulator and accumulator[-1].updated_time <= bounds.min_update_time:
            accumulator.pop()
            state = PagingState.TRIMMED_BY_CUTOFF

    return state


async def fetch_paged(
    client: RestClient,
    locator: str,
    entity_type: type[E],
    bounds: FetchBounds,
    *,
    next_page: Callable[[Mapping[str, str]], str | None] = link_next_page,
    page_size_param: str = DEFAULT_PAGE_SIZE_PARAM,
) -> list[E]:
    """Fetch a bounded, optionally re-sorted, remote collection.

    Args:
        client: REST transport.
        locator: URL of the first page.
        entity_type: Entity class used to decode page items.
        bounds: Size and recency limits.
        next_page: Extracts the next page locator from response headers.
        page_size_param: Query parameter carrying the page size.

    Returns:
        Entities in provider order, or newest first when sorting is required.

    Raises:
        FetchError: If any page cannot be fetched or decoded. No partial
            results are returned.
    """
    accumulator: list[E] = []
    url: str | None = with_page_size(locator, bounds.page_size, page_size_param)
    page_url = url
    state = PagingState.MORE_PAGES

    try:
        while state is PagingState.MORE_PAGES and url is not None:
            page_url = url
            response = await client.get(page_url)
            page = decode_page(response.body, entity_type)
            accumulator.extend(page)

            url = next_page(response.headers)
            state = PagingState.MORE_PAGES if url else PagingState.EXHAUSTED
            state = trim(accumulator, bounds, state)

            log_page_fetched(page_url, len(page), len(accumulator), state.value)
    except Exception as e:
        raise FetchError("fetch_paged", url=page_url, cause=e) from e

    logger.debug(
        "Fetched %d %s entities from %s (%s)",
        len(accumulator),
        entity_type.__name__,
        locator,
        state.value,
    )
    return accumulator
