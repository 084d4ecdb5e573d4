"""Forward-only schema migrations for the node store.

Each step upgrades the database from version ``N`` to ``N + 1`` and is keyed
by ``N``. Steps run inside the caller's transaction, so a failure leaves the
database at its previous version.
"""

import logging
from typing import Awaitable, Callable

from sqlalchemy import or_, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from pagestore.storage.models import ROOT_ID, NodeRecord

logger = logging.getLogger(__name__)

MigrationStep = Callable[[AsyncSession], Awaitable[None]]


async def _backfill_root_parent(session: AsyncSession) -> None:
    """v1 -> v2: top-level nodes used to carry a NULL (or empty) parent_id."""
    result = await session.execute(
        update(NodeRecord)
        .where(or_(NodeRecord.parent_id.is_(None), NodeRecord.parent_id == ""))
        .values(parent_id=ROOT_ID)
    )
    logger.info(f"Backfilled parent_id={ROOT_ID!r} on {result.rowcount} node(s)")

    # v1 databases may predate the secondary indexes
    await session.execute(
        text("CREATE INDEX IF NOT EXISTS ix_node_parent_id ON node (parent_id)")
    )
    await session.execute(
        text("CREATE INDEX IF NOT EXISTS ix_node_updated_at ON node (updated_at)")
    )


MIGRATIONS: dict[int, MigrationStep] = {
    1: _backfill_root_parent,
}


async def migrate(session: AsyncSession, from_version: int, to_version: int) -> list[int]:
    """Apply every step between from_version and to_version, in order.

    Returns:
        The list of versions reached, e.g. ``[2]`` for a v1 -> v2 upgrade

    Raises:
        RuntimeError: If a step is missing from MIGRATIONS
    """
    applied = []
    for version in range(from_version, to_version):
        step = MIGRATIONS.get(version)
        if step is None:
            raise RuntimeError(
                f"No migration registered from schema v{version} to v{version + 1}"
            )
        logger.info(f"Migrating node store schema v{version} -> v{version + 1}")
        await step(session)
        applied.append(version + 1)
    return applied
