"""
Importing links from remme JSON export files.

Imported records are merged by URL: anything whose normalized URL is already
in the collection is skipped, never overwritten.
"""
import json
import logging
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Iterable, List, NamedTuple, Union

from remme.models import Link
from remme.normalize import new_id, normalize_imported_records
from remme.store import RecordStore

logger = logging.getLogger(__name__)


class ImportOutcome(Enum):
    """How an import ended."""
    IMPORTED = "imported"
    NO_VALID_LINKS = "no_valid_links"  # parsed, but nothing with a string url
    ALL_EXIST = "all_exist"  # every valid link is already saved
    PARSE_ERROR = "parse_error"  # not JSON at all


class ImportResult(NamedTuple):
    inserted: int
    outcome: ImportOutcome

    @property
    def message(self) -> str:
        """Human readable summary of the import."""
        if self.outcome is ImportOutcome.IMPORTED:
            return f"Imported {self.inserted} link{'' if self.inserted == 1 else 's'}."
        return {
            ImportOutcome.NO_VALID_LINKS: "No valid links found in that file.",
            ImportOutcome.ALL_EXIST: "All links already exist.",
            ImportOutcome.PARSE_ERROR: "Could not import that file.",
        }[self.outcome]


def select_new_links(incoming: Iterable[Link], existing: Iterable[Link]) -> List[Link]:
    """
    Keep the incoming links whose URL is not in ``existing``.

    URLs are compared as exact strings. A URL repeated within ``incoming``
    is kept only the first time. A kept link whose id is already taken gets
    a fresh id, so an import never overwrites a saved link.
    """
    existing = list(existing)
    seen = {link.url for link in existing}
    used_ids = {link.id for link in existing}
    fresh = []
    for link in incoming:
        if link.url in seen:
            continue
        if link.id in used_ids:
            link = replace(link, id=new_id())
        seen.add(link.url)
        used_ids.add(link.id)
        fresh.append(link)
    return fresh


async def import_links(store: RecordStore, raw: Union[bytes, str], existing: Iterable[Link]) -> ImportResult:
    """
    Import an export file's contents into the store.

    Args:
        store: Destination store
        raw: File contents (UTF-8 bytes or text)
        existing: The collection currently held by the caller

    Returns:
        ImportResult with the number of links written and the outcome.
        Store failures propagate unchanged.
    """
    try:
        text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
        data = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Import file is not valid JSON: {e}")
        return ImportResult(0, ImportOutcome.PARSE_ERROR)

    incoming = normalize_imported_records(data)
    if not incoming:
        logger.info("Import file contains no valid links")
        return ImportResult(0, ImportOutcome.NO_VALID_LINKS)

    fresh = select_new_links(incoming, existing)
    if not fresh:
        logger.info(f"All {len(incoming)} imported links already exist")
        return ImportResult(0, ImportOutcome.ALL_EXIST)

    await store.put_many(fresh)
    logger.info(f"Imported {len(fresh)} of {len(incoming)} links")
    return ImportResult(len(fresh), ImportOutcome.IMPORTED)


async def import_file(store: RecordStore, path: Union[str, Path]) -> ImportResult:
    """Import a JSON file, merging against everything already in the store."""
    raw = Path(path).read_bytes()
    existing = await store.get_all()
    return await import_links(store, raw, existing)
