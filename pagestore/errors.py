"""Exception hierarchy for the document store."""


class PageStoreError(Exception):
    """Base exception for all document store errors."""


class NotFoundError(PageStoreError):
    """Raised when the target node of an operation does not exist."""

    def __init__(self, node_id: str, message: str | None = None):
        self.node_id = node_id
        super().__init__(message or f"Node not found: {node_id}")


class InvalidOperationError(PageStoreError):
    """Raised when an operation is structurally invalid (e.g. moving a node onto itself)."""

    def __init__(self, message: str, node_id: str | None = None):
        self.node_id = node_id
        super().__init__(message)


class CycleError(InvalidOperationError):
    """Raised when a move would make a folder its own ancestor."""

    def __init__(self, node_id: str, target_parent_id: str):
        self.target_parent_id = target_parent_id
        super().__init__(
            f"Cannot move folder {node_id} into {target_parent_id}: "
            f"target is the folder itself or one of its descendants",
            node_id=node_id,
        )


class StorageFailureError(PageStoreError):
    """Raised when the underlying database fails (I/O error, corruption, locked file)."""


class SchemaVersionError(PageStoreError, RuntimeError):
    """Raised when a database was written by a newer schema version than this code."""
