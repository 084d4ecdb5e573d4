from datetime import datetime

from pydantic import BaseModel, ConfigDict

from pagestore.storage.models import ROOT_ID, NodeRecord, NodeType


def normalize_parent_id(parent_id: str | None) -> str:
    """Missing or empty parent ids mean the virtual root."""
    if not parent_id:
        return ROOT_ID
    return parent_id


class Node(BaseModel):
    """Detached view of a stored file or folder."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: NodeType
    parent_id: str = ROOT_ID
    content: str = ""
    created_at: datetime
    updated_at: datetime

    @property
    def is_folder(self) -> bool:
        return self.type == NodeType.FOLDER

    @property
    def is_file(self) -> bool:
        return self.type == NodeType.FILE

    @classmethod
    def from_record(cls, record: NodeRecord) -> "Node":
        return cls(
            id=record.id,
            name=record.name,
            type=NodeType(record.type),
            parent_id=normalize_parent_id(record.parent_id),
            content=record.content or "",
            created_at=datetime.fromisoformat(record.created_at),
            updated_at=datetime.fromisoformat(record.updated_at),
        )


class Breadcrumb(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
