"""
Export of the link collection to remme's JSON file format.
"""
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from remme.filters import sort_links
from remme.models import Link

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1


def _iso_utc(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_export(links: Iterable[Link], exported_at: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Build the export envelope.

    Links are written newest first, with every field including id and
    timestamps so that an import restores them.
    """
    exported_at = exported_at or datetime.now(timezone.utc)
    return {
        "exportedAt": _iso_utc(exported_at),
        "version": EXPORT_VERSION,
        "links": [link.to_dict() for link in sort_links(links)],
    }


def default_export_filename(day: Optional[date] = None) -> str:
    """File name offered for an export, e.g. remme-links-2024-05-01.json."""
    day = day or datetime.now(timezone.utc).date()
    return f"remme-links-{day.isoformat()}.json"


def export_json(links: Iterable[Link], path: Union[str, Path], pretty: bool = True) -> int:
    """
    Write links to a JSON export file.

    Returns:
        Number of links written
    """
    payload = build_export(links)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2 if pretty else None, ensure_ascii=False)

    logger.info(f"Exported {len(payload['links'])} links to {path}")
    return len(payload["links"])
