"""Tree navigation derived from the flat node table.

Listings come from the parent_id index; breadcrumbs walk parent pointers
upward. Nothing here writes, and nothing here is cached: every call reads the
store as it is now.
"""

import logging
from collections import deque
from typing import Any, Optional

from pagestore.data_models.node import Breadcrumb, Node, normalize_parent_id
from pagestore.errors import NotFoundError
from pagestore.navigation.sorting import sort_listing
from pagestore.repository.nodes import NodeRepository
from pagestore.storage.models import ROOT_ID, NodeType

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100


class TreeNavigator:
    def __init__(self, repository: NodeRepository, max_depth: int = DEFAULT_MAX_DEPTH):
        self.repository = repository
        self.max_depth = max_depth

    async def get_folder_contents(self, parent_id: Optional[str]) -> list[Node]:
        """Children of a folder: folders first, then files, each in natural name order."""
        children = await self.repository.list_children(parent_id)
        return sort_listing(children)

    async def get_breadcrumbs(self, folder_id: Optional[str]) -> list[Breadcrumb]:
        """Ancestors of ``folder_id`` from the top level down to its parent.

        Neither the virtual root nor ``folder_id`` itself is included. A
        missing folder yields an empty path. The walk stops after max_depth
        ancestors, so a corrupted (cyclic) graph gives a truncated path
        instead of hanging.
        """
        folder_id = normalize_parent_id(folder_id)
        if folder_id == ROOT_ID:
            return []

        chain = await self.repository.list_ancestors(folder_id, self.max_depth + 1)
        if not chain:
            return []

        ancestors = chain[1:]
        if len(chain) > self.max_depth and ancestors and ancestors[-1].parent_id != ROOT_ID:
            logger.warning(
                f"Breadcrumbs for {folder_id} truncated at depth {self.max_depth}"
            )
        return [Breadcrumb(id=node.id, name=node.name) for node in reversed(ancestors)]

    async def get_descendant_ids(self, folder_id: str) -> set[str]:
        return set(await self.repository.list_descendant_ids(folder_id))

    async def get_folder_of(self, node_id: str) -> str:
        """The id of the folder containing ``node_id`` (ROOT_ID for top-level nodes)."""
        node = await self.repository.get_node(node_id)
        if node is None:
            raise NotFoundError(node_id)
        return node.parent_id

    async def get_tree(self, folder_id: Optional[str] = None) -> dict[str, Any]:
        """Nested listing of a folder and everything below it.

        Built level by level with an explicit queue; children appear in
        listing order. File content is not included.
        """
        folder_id = normalize_parent_id(folder_id)
        if folder_id == ROOT_ID:
            tree: dict[str, Any] = {"id": ROOT_ID, "name": "", "type": NodeType.FOLDER.value}
        else:
            folder = await self.repository.get_node(folder_id)
            if folder is None:
                raise NotFoundError(folder_id)
            tree = _node_entry(folder)
        tree["children"] = []

        visited = {folder_id}
        pending = deque([(folder_id, tree)])
        while pending:
            parent_id, entry = pending.popleft()
            for child in await self.get_folder_contents(parent_id):
                if child.id in visited:
                    continue
                visited.add(child.id)
                child_entry = _node_entry(child)
                entry["children"].append(child_entry)
                if child.is_folder:
                    child_entry["children"] = []
                    pending.append((child.id, child_entry))

        return tree


def _node_entry(node: Node) -> dict[str, Any]:
    return {
        "id": node.id,
        "name": node.name,
        "type": node.type.value,
        "updated_at": node.updated_at.isoformat(),
    }
