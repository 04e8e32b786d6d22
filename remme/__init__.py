"""
remme - a local bookmark manager.

Links are saved with an optional title, note and tags in an embedded SQLite
database, reached through SQLAlchemy's asyncio extension.

Example Usage:
    >>> import asyncio
    >>> from remme import RecordStore, FormValues, build_new_link
    >>> async def demo():
    ...     async with RecordStore(path="remme.db") as store:
    ...         await store.add(build_new_link(FormValues(url="example.com", tags="demo")))
    ...         return await store.get_all()
    >>> asyncio.run(demo())
"""

__version__ = "0.1.0"

# Store
from remme.store import RecordStore
from remme.errors import StoreError, OpenError, DuplicateKeyError, TransactionError

# Configuration
from remme.config import RemmeConfig, get_config, init_config

# Models
from remme.models import Link

# Normalization
from remme.normalize import (
    FormValues,
    normalize_url,
    parse_tags,
    build_new_link,
    build_updated_link,
    normalize_imported_records,
)

# Import/Export
from remme.importers import ImportOutcome, ImportResult, import_links, import_file
from remme.exporters import build_export, export_json

__all__ = [
    # Store
    "RecordStore",
    "StoreError",
    "OpenError",
    "DuplicateKeyError",
    "TransactionError",
    # Config
    "RemmeConfig",
    "get_config",
    "init_config",
    # Models
    "Link",
    # Normalization
    "FormValues",
    "normalize_url",
    "parse_tags",
    "build_new_link",
    "build_updated_link",
    "normalize_imported_records",
    # Import/Export
    "ImportOutcome",
    "ImportResult",
    "import_links",
    "import_file",
    "build_export",
    "export_json",
]
