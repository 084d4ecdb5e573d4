"""Node repository: the only code path that writes node rows.

Every public operation runs inside exactly one storage transaction, so a
failure partway through (a storage error, a cycle detected after reads) leaves
the table as it was.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from pagestore.data_models.node import Node, normalize_parent_id
from pagestore.errors import CycleError, InvalidOperationError, NotFoundError
from pagestore.repository.naming import copy_name, resolve_conflict_free_name
from pagestore.repository.traversal import collect_descendant_ids, iter_ancestors
from pagestore.storage.manager import NodeTransaction, StorageManager
from pagestore.storage.models import ROOT_ID, NodeRecord, NodeType

logger = logging.getLogger(__name__)

LAST_ACTIVE_FILE_KEY = "last_active_file_id"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _validate_name(name: str) -> None:
    if not name or not name.strip():
        raise InvalidOperationError("Node name must not be empty")


class NodeRepository:
    """CRUD over the flat node table.

    Enforces:
    - conflict-free names among same-type siblings (auto-suffixed, never an error)
    - parents are the virtual root or an existing folder
    - a folder is never moved below itself
    - deleting a folder deletes its whole subtree
    """

    def __init__(
        self,
        storage: StorageManager,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage
        self.clock = clock

    def _timestamp(self) -> str:
        return self.clock().isoformat(timespec="microseconds")

    # Internal helpers (caller owns the transaction)

    async def _require(self, tx: NodeTransaction, node_id: str) -> NodeRecord:
        record = await tx.get(node_id) if node_id != ROOT_ID else None
        if record is None:
            raise NotFoundError(node_id)
        return record

    async def _require_container(self, tx: NodeTransaction, parent_id: str) -> None:
        if parent_id == ROOT_ID:
            return
        parent = await tx.get(parent_id)
        if parent is None:
            raise NotFoundError(parent_id, f"Parent folder not found: {parent_id}")
        if parent.type != NodeType.FOLDER.value:
            raise InvalidOperationError(
                f"Parent {parent_id} is a file, not a folder", node_id=parent_id
            )

    async def _sibling_names(
        self,
        tx: NodeTransaction,
        parent_id: str,
        node_type: NodeType,
        exclude_id: Optional[str] = None,
    ) -> set[str]:
        siblings = await tx.children_of(parent_id, node_type)
        return {sibling.name for sibling in siblings if sibling.id != exclude_id}

    async def _insert(
        self,
        tx: NodeTransaction,
        name: str,
        node_type: NodeType,
        parent_id: str,
        content: str,
    ) -> NodeRecord:
        taken = await self._sibling_names(tx, parent_id, node_type)
        now = self._timestamp()
        if node_type == NodeType.FILE:
            stored_content = content
        else:
            stored_content = ""
        record = NodeRecord(
            id=str(uuid.uuid4()),
            name=resolve_conflict_free_name(name, taken),
            type=node_type.value,
            parent_id=parent_id,
            content=stored_content,
            created_at=now,
            updated_at=now,
        )
        return await tx.put(record)

    # Reads

    async def get_node(self, node_id: str) -> Optional[Node]:
        if not node_id or node_id == ROOT_ID:
            return None
        async with self.storage.transaction() as tx:
            record = await tx.get(node_id)
            return Node.from_record(record) if record is not None else None

    async def list_children(self, parent_id: Optional[str]) -> list[Node]:
        """Unordered children of a folder (or of the root)."""
        parent_id = normalize_parent_id(parent_id)
        async with self.storage.transaction() as tx:
            return [Node.from_record(record) for record in await tx.children_of(parent_id)]

    async def list_ancestors(self, node_id: str, max_steps: int) -> list[Node]:
        """The node itself followed by its ancestors, bottom-up, at most max_steps long."""
        async with self.storage.transaction() as tx:
            return [
                Node.from_record(record)
                async for record in iter_ancestors(tx, node_id, max_steps)
            ]

    async def list_descendant_ids(self, node_id: str) -> list[str]:
        async with self.storage.transaction() as tx:
            return await collect_descendant_ids(tx, node_id)

    async def get_recent_files(self, limit: int = 20) -> list[Node]:
        """Files ordered by most recent modification first."""
        async with self.storage.transaction() as tx:
            records = await tx.recent(limit, NodeType.FILE)
            return [Node.from_record(record) for record in records]

    async def count_nodes(self) -> int:
        async with self.storage.transaction() as tx:
            return await tx.count()

    # Writes

    async def create_node(
        self,
        name: str,
        node_type: NodeType | str,
        parent_id: Optional[str] = None,
        content: str = "",
    ) -> str:
        """Create a file or folder and return its new id.

        The stored name may differ from ``name``: on collision with a sibling
        of the same type it becomes ``name (1)``, ``name (2)``, ...

        Raises:
            InvalidOperationError: If the name is empty or the parent is a file
            NotFoundError: If the parent folder does not exist
        """
        node_type = NodeType(node_type)
        _validate_name(name)
        parent_id = normalize_parent_id(parent_id)

        async with self.storage.transaction() as tx:
            await self._require_container(tx, parent_id)
            record = await self._insert(tx, name, node_type, parent_id, content)

        logger.info(f"Created {node_type.value} {record.name!r} ({record.id}) in {parent_id}")
        return record.id

    async def rename_node(self, node_id: str, new_name: str) -> Node:
        """Rename a node, suffixing the name if a same-type sibling already holds it."""
        _validate_name(new_name)

        async with self.storage.transaction() as tx:
            record = await self._require(tx, node_id)
            if record.name == new_name:
                return Node.from_record(record)

            node_type = NodeType(record.type)
            parent_id = normalize_parent_id(record.parent_id)
            taken = await self._sibling_names(tx, parent_id, node_type, exclude_id=node_id)

            old_name = record.name
            record.name = resolve_conflict_free_name(new_name, taken)
            record.updated_at = self._timestamp()
            await tx.put(record)
            node = Node.from_record(record)

        logger.info(f"Renamed {node_id} from {old_name!r} to {node.name!r}")
        return node

    async def move_node(self, node_id: str, target_parent_id: Optional[str]) -> Node:
        """Move a node under another folder (or the root).

        Raises:
            InvalidOperationError: If the target is the node itself or a file
            NotFoundError: If the node or the target folder does not exist
            CycleError: If a folder would be moved into its own subtree
        """
        target_parent_id = normalize_parent_id(target_parent_id)
        if target_parent_id == node_id:
            raise InvalidOperationError(
                f"Cannot move {node_id} into itself", node_id=node_id
            )

        async with self.storage.transaction() as tx:
            record = await self._require(tx, node_id)
            if normalize_parent_id(record.parent_id) == target_parent_id:
                return Node.from_record(record)

            await self._require_container(tx, target_parent_id)

            node_type = NodeType(record.type)
            if node_type == NodeType.FOLDER:
                # Bounded by the node count so corrupt data cannot loop forever
                max_steps = await tx.count()
                async for ancestor in iter_ancestors(tx, target_parent_id, max_steps):
                    if ancestor.id == node_id:
                        raise CycleError(node_id, target_parent_id)
            elif node_type == NodeType.FILE:
                # Files have no subtree, so no cycle is possible
                pass

            taken = await self._sibling_names(
                tx, target_parent_id, node_type, exclude_id=node_id
            )
            old_parent_id = record.parent_id
            record.parent_id = target_parent_id
            record.name = resolve_conflict_free_name(record.name, taken)
            record.updated_at = self._timestamp()
            await tx.put(record)
            node = Node.from_record(record)

        logger.info(f"Moved {node_id} from {old_parent_id} to {target_parent_id} as {node.name!r}")
        return node

    async def update_file_content(self, node_id: str, content: str) -> Node:
        """Overwrite a node's content.

        The node type is not checked; writing content to a folder is allowed
        but logged, since folder content is never read.
        """
        async with self.storage.transaction() as tx:
            record = await self._require(tx, node_id)
            if record.type == NodeType.FOLDER.value:
                logger.warning(f"Writing content to folder {node_id}; folders ignore content")
            record.content = content
            record.updated_at = self._timestamp()
            await tx.put(record)
            node = Node.from_record(record)

        logger.debug(f"Saved {len(content)} characters to {node_id}")
        return node

    async def delete_node(self, node_id: str) -> list[str]:
        """Delete a node and its entire subtree in one batch.

        Deleting an id that no longer exists is a no-op, so retries are safe.

        Returns:
            Every id removed (the node first, then descendants in level order)
        """
        if not node_id or node_id == ROOT_ID:
            return []

        async with self.storage.transaction() as tx:
            record = await tx.get(node_id)
            if record is None:
                logger.debug(f"Delete of {node_id} skipped: already gone")
                return []
            doomed = [node_id, *await collect_descendant_ids(tx, node_id)]
            await tx.delete_many(doomed)

        logger.info(f"Deleted {node_id} and {len(doomed) - 1} descendant(s)")
        return doomed

    async def duplicate_node(self, node_id: str) -> str:
        """Copy a file next to itself as ``<name> (Copy)`` and return the copy's id."""
        async with self.storage.transaction() as tx:
            record = await self._require(tx, node_id)
            if record.type != NodeType.FILE.value:
                raise InvalidOperationError("Only files can be duplicated", node_id=node_id)
            copy = await self._insert(
                tx,
                copy_name(record.name),
                NodeType.FILE,
                normalize_parent_id(record.parent_id),
                record.content,
            )

        logger.info(f"Duplicated {node_id} as {copy.name!r} ({copy.id})")
        return copy.id

    async def ensure_welcome_file(self, name: str, content: str) -> Optional[str]:
        """Seed one file at the root when the store is completely empty."""
        async with self.storage.transaction() as tx:
            if await tx.count() > 0:
                return None
            record = await self._insert(tx, name, NodeType.FILE, ROOT_ID, content)

        logger.info(f"Seeded welcome file {record.name!r} ({record.id})")
        return record.id

    # Session pointers

    async def get_last_active_file_id(self) -> Optional[str]:
        async with self.storage.transaction() as tx:
            return await tx.get_meta(LAST_ACTIVE_FILE_KEY)

    async def set_last_active_file_id(self, node_id: Optional[str]) -> None:
        async with self.storage.transaction() as tx:
            await tx.set_meta(LAST_ACTIVE_FILE_KEY, node_id)
