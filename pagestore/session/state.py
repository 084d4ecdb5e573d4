"""Per-session view state.

One SessionState belongs to one SessionCoordinator (one window/tab). It is
derived from the store and never written back to it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from pagestore.data_models.node import Breadcrumb, Node
from pagestore.storage.models import ROOT_ID


class ViewStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class ActiveFileStatus(str, Enum):
    UNSELECTED = "unselected"
    LOADING = "loading"
    SELECTED = "selected"


@dataclass
class FolderView:
    folder_id: str = ROOT_ID
    status: ViewStatus = ViewStatus.IDLE
    nodes: list[Node] = field(default_factory=list)
    breadcrumbs: list[Breadcrumb] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ActiveFile:
    status: ActiveFileStatus = ActiveFileStatus.UNSELECTED
    file_id: Optional[str] = None
    file: Optional[Node] = None


@dataclass
class SessionState:
    current_folder_id: str = ROOT_ID
    view: FolderView = field(default_factory=FolderView)
    active: ActiveFile = field(default_factory=ActiveFile)
    # Monotonic request tokens; only the latest request may commit its result
    folder_request_seq: int = 0
    file_request_seq: int = 0


class SessionSnapshot(BaseModel):
    """Everything a UI shell reads from a session, as one immutable value."""

    current_folder_id: str
    nodes: list[Node]
    breadcrumbs: list[Breadcrumb]
    active_file_id: Optional[str]
    active_file: Optional[Node]
    loading: bool
    error: Optional[str]
