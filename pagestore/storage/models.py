"""Database models for the node store.

This module defines the SQLAlchemy models for the single-table node store:
every file and folder lives in ``node``, linked to its container through
``parent_id``. Top-level nodes point at the virtual ``ROOT_ID`` which never
has a row of its own.

IMPORTANT: ``parent_id`` is declared nullable only so that databases written
by schema v1 can still be opened and migrated. Every write made through the
repository stores a non-null parent (``ROOT_ID`` for top-level nodes).
"""

from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Schema version (increment on breaking changes, add a migration step)
NODE_SCHEMA_VERSION = 2

# Sentinel parent id for top-level nodes. Never a valid node id.
ROOT_ID = "root"


class NodeType(str, Enum):
    """Allowed values for NodeRecord.type."""

    FILE = "file"
    FOLDER = "folder"


class NodeBase(DeclarativeBase):
    pass


class NodeRecord(NodeBase):
    """A file or folder row.

    Invariants maintained by the repository, not by constraints:
    - (parent_id, name, type) is unique among live rows
    - following parent_id from any folder reaches ROOT_ID without revisiting a node
    """

    __tablename__ = "node"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(
        String, CheckConstraint("type IN ('file', 'folder')"), nullable=False
    )
    parent_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # ISO-8601 UTC strings; lexical order equals chronological order
    created_at: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index("ix_node_parent_id", "parent_id"),
        Index("ix_node_updated_at", "updated_at"),
    )


class Meta(NodeBase):
    """Metadata key-value store.

    Used for storing schema_version and small pieces of session state
    (e.g. the last opened file).
    """

    __tablename__ = "meta"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[Optional[str]] = mapped_column(String)
