"""Storage module for the node database.

A single SQLite database holds every file and folder in one flat ``node``
table, indexed by ``parent_id`` (folder listings) and ``updated_at`` (recent
documents), plus a ``meta`` table for the schema version.
"""

from pagestore.storage.manager import NodeTransaction, StorageManager
from pagestore.storage.models import NODE_SCHEMA_VERSION, ROOT_ID, NodeRecord, NodeType

__all__ = [
    "NODE_SCHEMA_VERSION",
    "ROOT_ID",
    "NodeRecord",
    "NodeTransaction",
    "NodeType",
    "StorageManager",
]
