"""Single-entity fetch by URL."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Self, TypeVar

from pullfetch.scm.errors import FetchError

if TYPE_CHECKING:
    from pullfetch.scm.client import RestClient


class DecodableEntity(Protocol):
    @classmethod
    def model_validate(cls, obj: Any) -> Self: ...


T = TypeVar("T", bound=DecodableEntity)


async def fetch_entity(client: RestClient, url: str, entity_type: type[T]) -> T:
    """Fetch one entity and decode it.

    No retry and no caching happen here; callers that look the same
    entity up repeatedly keep their own cache.

    Raises:
        FetchError: If the request or decoding fails.
    """
    try:
        response = await client.get(url)
        if not isinstance(response.body, dict):
            msg = f"Expected a JSON object body, got {type(response.body).__name__}"
            raise TypeError(msg)
        return entity_type.model_validate(response.body)
    except Exception as e:
        raise FetchError("fetch_entity", url=url, cause=e) from e
