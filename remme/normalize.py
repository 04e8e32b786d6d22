"""
Normalization of raw user input and imported JSON into Link records.

Everything here is pure: the only inputs are the arguments (plus the clock
and uuid generator when ``now`` or an id is not supplied).
"""
import math
import re
import time
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Union
from urllib.parse import urlparse

from remme.models import Link


_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)

# Timestamps are stored in a signed 64-bit column
_MAX_TIMESTAMP = 2 ** 63 - 1


@dataclass
class FormValues:
    """Raw, untrimmed values as typed by the user."""
    url: str = ""
    title: str = ""
    note: str = ""
    tags: str = ""


FormLike = Union[FormValues, Mapping[str, Any]]


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


def normalize_url(raw: Optional[str]) -> str:
    """
    Trim a URL and default its scheme to https.

    Strings already starting with http:// or https:// (any case) are returned
    as-is apart from trimming. Empty input gives an empty string; callers must
    reject that before persisting.
    """
    if not raw:
        return ""
    trimmed = raw.strip()
    if not trimmed:
        return ""
    if _SCHEME_RE.match(trimmed):
        return trimmed
    return f"https://{trimmed}"


def parse_tags(raw: Union[str, Iterable[Any], None]) -> List[str]:
    """
    Turn a comma separated string (or an iterable of values) into tag names.

    Pieces are trimmed, lowercased and dropped when empty. Duplicates collapse
    to their first occurrence.

    Example:
        >>> parse_tags("Design, , Marketing ,design")
        ['design', 'marketing']
    """
    if isinstance(raw, str):
        pieces = raw.split(",")
    elif isinstance(raw, (list, tuple, set, frozenset)):
        pieces = [str(item) for item in raw if item is not None]
    else:
        return []

    tags: List[str] = []
    for piece in pieces:
        tag = piece.strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def format_domain(url: str) -> str:
    """Hostname of a URL without a leading 'www.', or '' when it has none."""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    return re.sub(r"^www\.", "", host)


def _form_value(form: FormLike, name: str) -> Any:
    if isinstance(form, Mapping):
        return form.get(name)
    return getattr(form, name, None)


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _derive_fields(form: FormLike) -> dict:
    url = normalize_url(_text(_form_value(form, "url")))
    if not url:
        raise ValueError("URL is required")
    return {
        "url": url,
        "title": _text(_form_value(form, "title")) or url,
        "note": _text(_form_value(form, "note")),
        "tags": parse_tags(_form_value(form, "tags")),
    }


def build_new_link(form: FormLike, now: Optional[int] = None) -> Link:
    """
    Create a new Link from form input.

    Args:
        form: FormValues or a mapping with url/title/note/tags
        now: Timestamp in epoch milliseconds (defaults to the current time)

    Raises:
        ValueError: If the URL is blank
    """
    now = now_ms() if now is None else now
    return Link(id=new_id(), created_at=now, updated_at=now, **_derive_fields(form))


def build_updated_link(existing: Link, form: FormLike, now: Optional[int] = None) -> Link:
    """Re-derive every mutable field of ``existing`` from form input."""
    now = now_ms() if now is None else now
    return Link(
        id=existing.id,
        created_at=existing.created_at,
        updated_at=now,
        **_derive_fields(form),
    )


def _valid_id(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _valid_timestamp(value: Any) -> bool:
    # bool is an int subclass but never a real timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and -_MAX_TIMESTAMP <= value <= _MAX_TIMESTAMP


def normalize_imported_records(data: Any, now: Optional[int] = None) -> List[Link]:
    """
    Normalize the parsed contents of an import file.

    ``data`` is either a list of link-like objects or an object holding that
    list under ``links``. Elements without a string ``url`` are dropped. A
    supplied id or timestamp is kept when well-formed and regenerated
    otherwise, so a partially damaged file still imports what it can.
    """
    if isinstance(data, Mapping):
        data = data.get("links")
    if not isinstance(data, list):
        return []

    now = now_ms() if now is None else now
    links = []
    for item in data:
        if not isinstance(item, Mapping) or not isinstance(item.get("url"), str):
            continue
        try:
            fields = _derive_fields(item)
        except ValueError:
            continue

        created_at = item.get("createdAt")
        updated_at = item.get("updatedAt")
        links.append(Link(
            id=item["id"] if _valid_id(item.get("id")) else new_id(),
            created_at=int(created_at) if _valid_timestamp(created_at) else now,
            updated_at=int(updated_at) if _valid_timestamp(updated_at) else now,
            **fields,
        ))
    return links
