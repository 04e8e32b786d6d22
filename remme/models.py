"""
Data model for remme.

``Link`` is the canonical in-memory record handed between the normalizer,
the store and the import/export code. ``LinkRow`` is its SQLAlchemy mapping
onto the single ``links`` table.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import BigInteger, Index, JSON, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Bumped only together with a schema change; there is no migration path.
SCHEMA_VERSION = 1


@dataclass
class Link:
    """
    A saved bookmark.

    Attributes:
        id: Opaque unique identifier, immutable once assigned
        url: Normalized absolute URL
        title: Display title (the URL when none was given)
        note: Free-text note, may be empty
        tags: Lowercase, trimmed, unique tag names
        created_at: Creation time in epoch milliseconds
        updated_at: Last edit time in epoch milliseconds
    """
    id: str
    url: str
    title: str
    note: str = ""
    tags: List[str] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON shape used by export files."""
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "note": self.note,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class LinkRow(Base):
    """Persisted form of a Link, keyed by its id."""
    __tablename__ = 'links'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    title: Mapped[str] = mapped_column(String(2048), nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default='')
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        Index('ix_links_created_at', 'created_at'),
        Index('ix_links_title', 'title'),
        Index('ix_links_url', 'url'),
    )

    @classmethod
    def from_link(cls, link: Link) -> "LinkRow":
        return cls(
            id=link.id,
            url=link.url,
            title=link.title,
            note=link.note,
            tags=list(link.tags),
            created_at=link.created_at,
            updated_at=link.updated_at,
        )

    def to_link(self) -> Link:
        return Link(
            id=self.id,
            url=self.url,
            title=self.title,
            note=self.note or "",
            tags=list(self.tags or []),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self):
        return f"<LinkRow(id='{self.id}', url='{self.url[:50]}')>"


def link_from_row(row: Optional[LinkRow]) -> Optional[Link]:
    """Convert a row to a Link, passing None through."""
    return row.to_link() if row is not None else None
