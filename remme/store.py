"""
Asynchronous record store for remme.

A thin wrapper over one embedded table of link records, using SQLAlchemy's
asyncio extension. The engine is opened lazily on the first operation and
kept for the lifetime of the store; concurrent first callers wait on the same
open instead of each creating the schema.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Iterable, List, Optional

from sqlalchemy import delete, event, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
from sqlalchemy.pool import NullPool, StaticPool

from remme.config import get_config
from remme.errors import DuplicateKeyError, OpenError, TransactionError
from remme.models import Base, Link, LinkRow, SCHEMA_VERSION, link_from_row

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Key-value persistence of Link records keyed by id.

    Every public method is a coroutine. Failures are raised to the caller as
    StoreError subclasses; nothing is retried here.
    """

    def __init__(self, path: Optional[str] = None, url: Optional[str] = None, echo: Optional[bool] = None):
        """
        Args:
            path: SQLite database file. Uses config default if not provided.
            url: Full async database URL (overrides path).
            echo: SQLAlchemy statement echo; defaults to config.database_echo.

        Examples:
            RecordStore()  # Uses config default
            RecordStore(path="links.db")
            RecordStore(url="sqlite+aiosqlite:///:memory:")
        """
        config = get_config()

        if url:
            self.url = url
            self.path = None
        elif path:
            self.path = Path(path)
            self.url = f"sqlite+aiosqlite:///{self.path}"
        else:
            self.url = config.get_database_url()
            self.path = config.get_database_path() if not config.database_url else None

        self.echo = config.database_echo if echo is None else echo

        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker] = None
        self._open_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self) -> AsyncEngine:
        """
        Open the database once and return the shared engine.

        Raises:
            OpenError: If the database cannot be opened or has a newer schema
        """
        if self._engine is not None:
            return self._engine

        async with self._open_lock:
            if self._engine is None:
                engine = await self._connect()
                self._sessionmaker = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
                self._engine = engine
        return self._engine

    async def close(self) -> None:
        """Dispose of the engine. The next operation opens it again."""
        async with self._open_lock:
            if self._engine is not None:
                await self._engine.dispose()
                logger.debug(f"Closed database {self.url}")
            self._engine = None
            self._sessionmaker = None

    async def __aenter__(self) -> "RecordStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def _is_memory(self) -> bool:
        return self._is_sqlite() and (":memory:" in self.url or self.url.rstrip("/").endswith(":"))

    async def _connect(self) -> AsyncEngine:
        if self.path is not None:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise OpenError(f"Could not open database {self.path}: {exc}") from exc

        if self._is_memory():
            # One shared connection, otherwise every checkout sees an empty database
            engine = create_async_engine(self.url, poolclass=StaticPool, echo=self.echo)
        elif self._is_sqlite():
            engine = create_async_engine(self.url, poolclass=NullPool, echo=self.echo)
        else:
            engine = create_async_engine(self.url, pool_pre_ping=True, echo=self.echo)

        if self._is_sqlite():
            event.listen(engine.sync_engine, "connect", self._configure_sqlite)

        try:
            async with engine.begin() as conn:
                await conn.run_sync(self._create_schema)
        except OpenError:
            await engine.dispose()
            raise
        except (SQLAlchemyError, OSError) as exc:
            await engine.dispose()
            raise OpenError(f"Could not open database {self.url}: {exc}") from exc

        logger.info(f"Opened database {self.url}")
        return engine

    @staticmethod
    def _configure_sqlite(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = NORMAL")
        cursor.close()

    def _create_schema(self, sync_conn) -> None:
        """Create the links table and its indexes if the table is missing."""
        if self._is_sqlite():
            version = sync_conn.exec_driver_sql("PRAGMA user_version").scalar() or 0
            if version > SCHEMA_VERSION:
                raise OpenError(
                    f"Database schema version {version} is newer than supported version {SCHEMA_VERSION}"
                )

        if inspect(sync_conn).has_table(LinkRow.__tablename__):
            return

        logger.info(f"Creating {LinkRow.__tablename__} table (schema version {SCHEMA_VERSION})")
        Base.metadata.create_all(sync_conn)
        if self._is_sqlite():
            sync_conn.exec_driver_sql(f"PRAGMA user_version = {SCHEMA_VERSION}")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Async session with automatic commit/rollback.

        One session is one transaction: it commits when the block exits
        normally and rolls back when it raises.
        """
        await self.open()
        session = self._sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def get_all(self) -> List[Link]:
        """Return every stored link, in no particular order."""
        try:
            async with self.session() as session:
                result = await session.execute(select(LinkRow))
                links = [row.to_link() for row in result.scalars()]
        except SQLAlchemyError as exc:
            raise TransactionError(f"Could not read links: {exc}") from exc
        logger.debug(f"Loaded {len(links)} links")
        return links

    async def get(self, link_id: str) -> Optional[Link]:
        """Return the link stored under ``link_id``, or None."""
        try:
            async with self.session() as session:
                return link_from_row(await session.get(LinkRow, link_id))
        except SQLAlchemyError as exc:
            raise TransactionError(f"Could not read link {link_id}: {exc}") from exc

    async def add(self, link: Link) -> None:
        """
        Insert a new link.

        Raises:
            DuplicateKeyError: If a link with the same id is already stored
        """
        try:
            async with self.session() as session:
                session.add(LinkRow.from_link(link))
        except IntegrityError as exc:
            if await self.get(link.id) is not None:
                raise DuplicateKeyError(link.id) from exc
            raise TransactionError(f"Could not add link {link.id}: {exc}") from exc
        except (SQLAlchemyError, OverflowError) as exc:
            raise TransactionError(f"Could not add link {link.id}: {exc}") from exc
        logger.debug(f"Added link {link.id} ({link.url})")

    async def update(self, link: Link) -> None:
        """Replace the link stored under ``link.id``, inserting it if absent."""
        try:
            async with self.session() as session:
                await session.merge(LinkRow.from_link(link))
        except (SQLAlchemyError, OverflowError) as exc:
            raise TransactionError(f"Could not update link {link.id}: {exc}") from exc
        logger.debug(f"Updated link {link.id}")

    async def delete(self, link_id: str) -> None:
        """Remove the link stored under ``link_id``. Missing ids are ignored."""
        try:
            async with self.session() as session:
                await session.execute(delete(LinkRow).where(LinkRow.id == link_id))
        except SQLAlchemyError as exc:
            raise TransactionError(f"Could not delete link {link_id}: {exc}") from exc
        logger.debug(f"Deleted link {link_id}")

    async def put_many(self, links: Iterable[Link]) -> None:
        """
        Upsert a batch of links in a single transaction.

        Either every link in the batch is committed or none is. When the batch
        repeats an id, the last record for that id wins.
        """
        links = list({link.id: link for link in links}.values())
        if not links:
            return
        try:
            async with self.session() as session:
                for link in links:
                    await session.merge(LinkRow.from_link(link))
        except (SQLAlchemyError, OverflowError) as exc:
            raise TransactionError(f"Batch write of {len(links)} links aborted: {exc}") from exc
        logger.debug(f"Stored batch of {len(links)} links")
