"""Link header parsing for cursor-based pagination."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

LINK_HEADER = "Link"


def parse_link_header(link_header: str | None) -> dict[str, str]:
    """Parse a Link header into a mapping of relation name to URL.

    Link header format: ``<url1>; rel="next", <url2>; rel="last"``.
    Segments that do not have exactly two ``;``-separated parts, or whose
    URL is not wrapped in angle brackets, are skipped.

    Args:
        link_header: Raw header value.

    Returns:
        Mapping of ``rel`` value to URL.
    """
    if not link_header:
        return {}

    links: dict[str, str] = {}
    for link in link_header.split(","):
        segments = link.split(";")
        if len(segments) != 2:
            continue

        target = segments[0].strip()
        relation = segments[1].strip()
        if not (target.startswith("<") and target.endswith(">")):
            continue
        if not relation.startswith("rel="):
            continue

        name = relation[len("rel=") :].strip('"')
        links.setdefault(name, target[1:-1])

    return links


def next_page(headers: Mapping[str, str]) -> str | None:
    """Get the next page locator from response headers.

    Args:
        headers: Response headers (case-insensitive mapping for httpx).

    Returns:
        URL of the next page, or None if there is none.
    """
    return parse_link_header(headers.get(LINK_HEADER)).get("next")
