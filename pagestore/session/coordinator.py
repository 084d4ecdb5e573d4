"""Session coordinator: sequences folder listings and active-file loads.

The UI shell talks only to this class. Reads go through the navigator, writes
through the repository, and every successful write is followed by a full
re-read of the current folder rather than a patch of the cached listing.

Overlapping requests are resolved with monotonically increasing tokens: a
result is committed only if no newer request of the same kind was issued
while it was in flight ("last navigation wins"). Superseded storage calls are
not aborted, their results are just dropped.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from pagestore.data_models.node import Breadcrumb, Node, normalize_parent_id
from pagestore.errors import PageStoreError
from pagestore.navigation.tree import TreeNavigator
from pagestore.repository.nodes import NodeRepository
from pagestore.session.autosave import ContentAutosaver
from pagestore.session.state import (
    ActiveFile,
    ActiveFileStatus,
    FolderView,
    SessionSnapshot,
    SessionState,
    ViewStatus,
)
from pagestore.settings import StoreSettings
from pagestore.storage.models import ROOT_ID, NodeType

logger = logging.getLogger(__name__)

FOLDER_LOAD_ERROR = "Failed to load folder"


@contextmanager
def _reporting(action: str) -> Iterator[None]:
    """Log a failed mutation and let the error reach the caller."""
    try:
        yield
    except PageStoreError as exc:
        logger.error(f"{action} failed: {exc}")
        raise


class SessionCoordinator:
    def __init__(
        self,
        repository: NodeRepository,
        navigator: TreeNavigator,
        settings: Optional[StoreSettings] = None,
        state: Optional[SessionState] = None,
    ):
        self.repository = repository
        self.navigator = navigator
        self.settings = settings or StoreSettings()
        self.state = state or SessionState()

    # UI-facing state

    @property
    def current_folder_id(self) -> str:
        return self.state.current_folder_id

    @property
    def nodes(self) -> list[Node]:
        return self.state.view.nodes

    @property
    def breadcrumbs(self) -> list[Breadcrumb]:
        return self.state.view.breadcrumbs

    @property
    def loading(self) -> bool:
        return self.state.view.status == ViewStatus.LOADING

    @property
    def error(self) -> Optional[str]:
        return self.state.view.error

    @property
    def active_file_id(self) -> Optional[str]:
        return self.state.active.file_id

    @property
    def active_file(self) -> Optional[Node]:
        return self.state.active.file

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            current_folder_id=self.current_folder_id,
            nodes=list(self.nodes),
            breadcrumbs=list(self.breadcrumbs),
            active_file_id=self.active_file_id,
            active_file=self.active_file,
            loading=self.loading,
            error=self.error,
        )

    # Lifecycle

    async def start(self) -> None:
        """Seed an empty store, reopen the last file and load the top level."""
        file_to_open = None
        if self.settings.seed_welcome_file:
            file_to_open = await self.repository.ensure_welcome_file(
                self.settings.welcome_file_name, self.settings.welcome_file_content
            )
        if file_to_open is None:
            file_to_open = await self.repository.get_last_active_file_id()

        if file_to_open is not None:
            await self.open_file(file_to_open)
        await self.navigate(ROOT_ID)

    def create_autosaver(self) -> ContentAutosaver:
        return ContentAutosaver(self.save_file_content, self.settings.autosave_delay_seconds)

    # Reads

    async def refresh_folder(self, folder_id: Optional[str] = None) -> bool:
        """Reload a folder listing and its breadcrumbs (the current folder by default).

        Failures are reported through ``error`` instead of raised.

        Returns:
            True if this request's result was committed to the view
        """
        if folder_id is None:
            folder_id = self.state.current_folder_id
        folder_id = normalize_parent_id(folder_id)

        self.state.folder_request_seq += 1
        request_id = self.state.folder_request_seq
        self.state.view.status = ViewStatus.LOADING
        self.state.view.error = None

        try:
            nodes, breadcrumbs = await asyncio.gather(
                self.navigator.get_folder_contents(folder_id),
                self.navigator.get_breadcrumbs(folder_id),
            )
        except PageStoreError as exc:
            logger.error(f"Failed to load folder {folder_id}: {exc}")
            if request_id == self.state.folder_request_seq:
                self.state.view.status = ViewStatus.FAILED
                self.state.view.error = FOLDER_LOAD_ERROR
            return False

        if request_id != self.state.folder_request_seq:
            logger.debug(f"Discarding stale listing of {folder_id} (request {request_id})")
            return False

        self.state.view = FolderView(
            folder_id=folder_id,
            status=ViewStatus.LOADED,
            nodes=nodes,
            breadcrumbs=breadcrumbs,
        )
        return True

    async def navigate(self, folder_id: Optional[str]) -> bool:
        """Make ``folder_id`` (None for the top level) the current folder and load it."""
        folder_id = normalize_parent_id(folder_id)
        self.state.current_folder_id = folder_id
        return await self.refresh_folder(folder_id)

    async def open_file(self, file_id: Optional[str]) -> Optional[Node]:
        """Load a file into the active-file slot.

        Ends UNSELECTED when the file is gone (e.g. deleted meanwhile), is a
        folder, or cannot be read. A load superseded by a newer open/close is
        discarded.
        """
        if not file_id:
            await self.close_file()
            return None

        self.state.file_request_seq += 1
        request_id = self.state.file_request_seq
        self.state.active = ActiveFile(status=ActiveFileStatus.LOADING, file_id=file_id)

        try:
            node = await self.repository.get_node(file_id)
        except PageStoreError as exc:
            logger.error(f"Failed to load active file {file_id}: {exc}")
            node = None

        if request_id != self.state.file_request_seq:
            logger.debug(f"Discarding stale load of {file_id} (request {request_id})")
            return None

        if node is None or node.type == NodeType.FOLDER:
            if node is not None:
                logger.warning(f"Cannot open folder {file_id} as a file")
            self.state.active = ActiveFile()
            await self._remember_active_file(None)
            return None

        self.state.active = ActiveFile(
            status=ActiveFileStatus.SELECTED, file_id=file_id, file=node
        )
        await self._remember_active_file(file_id)
        return node

    async def close_file(self) -> None:
        # Invalidate any load still in flight
        self.state.file_request_seq += 1
        self.state.active = ActiveFile()
        await self._remember_active_file(None)

    async def _remember_active_file(self, file_id: Optional[str]) -> None:
        try:
            await self.repository.set_last_active_file_id(file_id)
        except PageStoreError as exc:
            logger.warning(f"Could not persist last active file: {exc}")

    # Mutations

    async def create_folder(self, name: Optional[str] = None) -> str:
        with _reporting("Create folder"):
            node_id = await self.repository.create_node(
                name or self.settings.default_folder_name,
                NodeType.FOLDER,
                self.state.current_folder_id,
            )
        await self.refresh_folder()
        return node_id

    async def create_file(self, name: Optional[str] = None, content: str = "") -> str:
        """Create a file in the current folder and open it."""
        with _reporting("Create file"):
            node_id = await self.repository.create_node(
                name or self.settings.default_file_name,
                NodeType.FILE,
                self.state.current_folder_id,
                content,
            )
        await self.refresh_folder()
        await self.open_file(node_id)
        return node_id

    async def rename_item(self, node_id: str, new_name: str) -> Node:
        with _reporting("Rename"):
            node = await self.repository.rename_node(node_id, new_name)
        await self.refresh_folder()
        if self.state.active.file_id == node_id and node.is_file:
            self.state.active = ActiveFile(
                status=ActiveFileStatus.SELECTED, file_id=node_id, file=node
            )
        return node

    async def delete_item(self, node_id: str) -> list[str]:
        with _reporting("Delete"):
            deleted = await self.repository.delete_node(node_id)

        removed = set(deleted)
        if self.state.current_folder_id in removed:
            self.state.current_folder_id = ROOT_ID
        await self.refresh_folder()
        if self.state.active.file_id in removed:
            await self.close_file()
        return deleted

    async def move_item(self, node_id: str, target_parent_id: Optional[str]) -> Node:
        with _reporting("Move"):
            node = await self.repository.move_node(node_id, target_parent_id)
        await self.refresh_folder()
        if self.state.active.file_id == node_id and node.is_file:
            self.state.active = ActiveFile(
                status=ActiveFileStatus.SELECTED, file_id=node_id, file=node
            )
        return node

    async def duplicate_item(self, node_id: str) -> str:
        with _reporting("Duplicate"):
            copy_id = await self.repository.duplicate_node(node_id)
        await self.refresh_folder()
        return copy_id

    async def save_file_content(self, node_id: str, content: str) -> Node:
        """Persist editor content; keeps the active file in step without a listing refresh."""
        with _reporting("Save"):
            node = await self.repository.update_file_content(node_id, content)
        if self.state.active.file_id == node_id:
            self.state.active = ActiveFile(
                status=ActiveFileStatus.SELECTED, file_id=node_id, file=node
            )
        return node
