"""
In-memory views over a link collection: ordering, tag listing and filtering.
"""
from typing import Iterable, List, Optional

from remme.models import Link


def sort_links(links: Iterable[Link]) -> List[Link]:
    """Newest first, by creation time."""
    return sorted(links, key=lambda link: link.created_at, reverse=True)


def all_tags(links: Iterable[Link]) -> List[str]:
    """Every tag used in the collection, sorted."""
    tags = set()
    for link in links:
        tags.update(link.tags)
    return sorted(tags)


def matches(link: Link, query: str) -> bool:
    """Case-insensitive substring match over title, url, note and tags."""
    haystack = " ".join([link.title, link.url, link.note, " ".join(link.tags)]).lower()
    return query.lower() in haystack


def filter_links(links: Iterable[Link], search: str = "", tag: Optional[str] = None) -> List[Link]:
    """
    Filter links by tag and free-text search, keeping their order.

    Args:
        links: Links to filter
        search: Text to look for; blank matches everything
        tag: Only keep links carrying this exact tag (None or "all" keeps all)
    """
    query = (search or "").strip().lower()
    result = []
    for link in links:
        if tag and tag != "all" and tag not in link.tags:
            continue
        if query and not matches(link, query):
            continue
        result.append(link)
    return result
