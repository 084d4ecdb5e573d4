"""Iterative walks over the parent-pointer graph.

Both walks carry a visited set and never recurse, so a corrupted graph (a
cycle written by an older build or by two sessions racing) cannot hang them.
"""

import logging
from collections import deque
from typing import AsyncIterator

from pagestore.data_models.node import normalize_parent_id
from pagestore.storage.manager import NodeTransaction
from pagestore.storage.models import ROOT_ID, NodeRecord

logger = logging.getLogger(__name__)


async def iter_ancestors(
    tx: NodeTransaction, start_id: str, max_steps: int
) -> AsyncIterator[NodeRecord]:
    """Yield the record for ``start_id`` and then each ancestor, bottom-up.

    Stops at the virtual root, at a dangling parent pointer, at a node seen
    before, or after ``max_steps`` records.
    """
    visited: set[str] = set()
    current = normalize_parent_id(start_id)
    steps = 0
    while current != ROOT_ID:
        if steps >= max_steps:
            logger.warning(
                f"Ancestor walk from {start_id} stopped after {max_steps} steps"
            )
            return
        if current in visited:
            logger.warning(f"Parent cycle detected at {current} while walking from {start_id}")
            return
        visited.add(current)

        record = await tx.get(current)
        if record is None:
            return
        yield record
        steps += 1
        current = normalize_parent_id(record.parent_id)


async def collect_descendant_ids(tx: NodeTransaction, node_id: str) -> list[str]:
    """Breadth-first collection of every node below ``node_id``.

    Each level is fetched by exact parent_id match. Files are expanded too:
    they never have children in a healthy store, but expanding them means
    no row can be left pointing at a deleted parent.

    Returns:
        Descendant ids in level order, excluding ``node_id`` itself
    """
    descendants: list[str] = []
    visited = {node_id}
    frontier = deque([node_id])

    while frontier:
        parent_id = frontier.popleft()
        for child in await tx.children_of(parent_id):
            if child.id in visited:
                logger.warning(f"Node {child.id} reached twice below {node_id}")
                continue
            visited.add(child.id)
            descendants.append(child.id)
            frontier.append(child.id)

    return descendants
