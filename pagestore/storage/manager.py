"""Storage manager for the node database.

This module provides the transactional interface the repository builds on:
one SQLite database holding the ``node`` table (with secondary indexes on
``parent_id`` and ``updated_at``) and the ``meta`` table that tracks the
schema version.

Every logical operation runs inside a single ``transaction()``; either all of
its writes land or none do.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Iterable, Optional

from sqlalchemy import delete, event, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from pagestore.errors import SchemaVersionError, StorageFailureError
from pagestore.storage.migrations import migrate
from pagestore.storage.models import (
    NODE_SCHEMA_VERSION,
    Meta,
    NodeBase,
    NodeRecord,
    NodeType,
)

logger = logging.getLogger(__name__)

# Default paths
DATA_DIR = Path("data")
DEFAULT_DATABASE_NAME = "pagestore.db"

SCHEMA_VERSION_KEY = "schema_version"
MEMORY_PATH = ":memory:"

# Keeps IN (...) lists well under SQLite's bound-parameter limit
DELETE_BATCH_SIZE = 500


class NodeTransaction:
    """Engine primitives bound to one open transaction.

    Records returned here stay attached to the transaction's session, so
    attribute changes followed by ``put`` are written on commit.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, node_id: str) -> Optional[NodeRecord]:
        return await self.session.get(NodeRecord, node_id)

    async def put(self, record: NodeRecord) -> NodeRecord:
        """Insert a new record or write pending changes to an existing one."""
        self.session.add(record)
        await self.session.flush()
        return record

    async def delete_many(self, node_ids: Iterable[str]) -> int:
        ids = list(node_ids)
        deleted = 0
        for start in range(0, len(ids), DELETE_BATCH_SIZE):
            batch = ids[start : start + DELETE_BATCH_SIZE]
            result = await self.session.execute(
                delete(NodeRecord).where(NodeRecord.id.in_(batch))
            )
            deleted += result.rowcount
        return deleted

    async def children_of(
        self, parent_id: str, node_type: Optional[NodeType] = None
    ) -> list[NodeRecord]:
        """Exact-match scan of the parent_id index."""
        query = select(NodeRecord).where(NodeRecord.parent_id == parent_id)
        if node_type is not None:
            query = query.where(NodeRecord.type == node_type.value)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def recent(
        self, limit: int, node_type: Optional[NodeType] = None
    ) -> list[NodeRecord]:
        """Reverse-chronological scan of the updated_at index."""
        query = select(NodeRecord)
        if node_type is not None:
            query = query.where(NodeRecord.type == node_type.value)
        query = query.order_by(NodeRecord.updated_at.desc(), NodeRecord.id.desc())
        result = await self.session.execute(query.limit(limit))
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(NodeRecord)
        )
        return result.scalar_one()

    async def get_meta(self, key: str) -> Optional[str]:
        meta = await self.session.get(Meta, key)
        return meta.value if meta is not None else None

    async def set_meta(self, key: str, value: Optional[str]) -> None:
        meta = await self.session.get(Meta, key)
        if value is None:
            if meta is not None:
                await self.session.delete(meta)
            return
        if meta is None:
            self.session.add(Meta(key=key, value=value))
        else:
            meta.value = value
        await self.session.flush()


class StorageManager:
    """Owner of the node database engine and its schema.

    Usage:
        async with StorageManager(path) as storage:
            async with storage.transaction() as tx:
                record = await tx.get(node_id)

    IMPORTANT:
    - open() must complete before transaction() is used
    - Schema versions are checked (and older databases migrated) on open()
    - A database written by a newer schema version is refused
    """

    def __init__(self, database_path: Path | str | None = None, echo: bool = False):
        """Initialize storage manager.

        Args:
            database_path: Path to the SQLite file, or ":memory:" (defaults to data/pagestore.db)
            echo: Log emitted SQL through SQLAlchemy's logger
        """
        if database_path is None:
            database_path = DATA_DIR / DEFAULT_DATABASE_NAME
        self.database_path = database_path
        self.echo = echo

        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_memory(self) -> bool:
        return str(self.database_path) == MEMORY_PATH

    @property
    def is_open(self) -> bool:
        return self._session_factory is not None

    async def __aenter__(self) -> "StorageManager":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the engine, ensure tables exist and verify the schema version."""
        if self.is_open:
            return

        if self.is_memory:
            # One shared connection, otherwise every checkout sees an empty database
            self.engine = create_async_engine(
                "sqlite+aiosqlite://",
                echo=self.echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            path = Path(self.database_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_async_engine(f"sqlite+aiosqlite:///{path}", echo=self.echo)

        use_wal = not self.is_memory

        # PRAGMAs are per connection, so they must be set on every connect
        @event.listens_for(self.engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            if use_wal:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(NodeBase.metadata.create_all)
        except SQLAlchemyError as exc:
            await self.engine.dispose()
            self.engine = None
            raise StorageFailureError(
                f"Failed to initialize node store at {self.database_path}: {exc}"
            ) from exc

        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        try:
            await self._verify_schema_version()
        except BaseException:
            await self.close()
            raise

        logger.info(f"Opened node store at {self.database_path}")

    async def close(self) -> None:
        """Dispose of the engine and release connections."""
        if self.engine is not None:
            await self.engine.dispose()
        self.engine = None
        self._session_factory = None

    async def _verify_schema_version(self) -> None:
        """Stamp new databases, migrate older ones and refuse newer ones.

        A database with rows but no recorded version predates versioning and
        is treated as v1.

        Raises:
            SchemaVersionError: If the database was written by a newer schema version (a RuntimeError)
        """
        async with self.transaction() as tx:
            stored = await tx.get_meta(SCHEMA_VERSION_KEY)

            if stored is None:
                stored_version = 1 if await tx.count() > 0 else NODE_SCHEMA_VERSION
            else:
                stored_version = int(stored)

            if stored_version > NODE_SCHEMA_VERSION:
                raise SchemaVersionError(
                    f"node store schema version mismatch: "
                    f"database is v{stored_version}, code expects v{NODE_SCHEMA_VERSION}. "
                    f"Upgrade pagestore to open {self.database_path}."
                )

            if stored_version < NODE_SCHEMA_VERSION:
                await migrate(tx.session, stored_version, NODE_SCHEMA_VERSION)

            if stored != str(NODE_SCHEMA_VERSION):
                await tx.set_meta(SCHEMA_VERSION_KEY, str(NODE_SCHEMA_VERSION))

    def _require_open(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise StorageFailureError("Node store is not open. Call `await storage.open()` first.")
        return self._session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[NodeTransaction]:
        """Run a block of reads and writes atomically.

        Commits when the block exits cleanly and rolls back on any exception.
        Database errors surface as StorageFailureError; any other exception
        raised inside the block propagates unchanged after the rollback.
        """
        session_factory = self._require_open()
        try:
            async with session_factory() as session:
                async with session.begin():
                    yield NodeTransaction(session)
        except SQLAlchemyError as exc:
            logger.error(f"Node store transaction failed: {exc}")
            raise StorageFailureError(f"Storage transaction failed: {exc}") from exc

    async def schema_version(self) -> int:
        async with self.transaction() as tx:
            stored = await tx.get_meta(SCHEMA_VERSION_KEY)
        return int(stored) if stored is not None else NODE_SCHEMA_VERSION
