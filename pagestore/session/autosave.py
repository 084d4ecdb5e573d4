"""Debounced content saving for editor collaborators.

The store writes every call immediately; batching editor keystrokes is the
caller's job. ContentAutosaver holds the latest content per file and writes it
once the file has been quiet for ``delay`` seconds, or right away on
``flush()`` (call it when the window is hidden or the app suspends).
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from pagestore.errors import NotFoundError, PageStoreError

logger = logging.getLogger(__name__)

SaveCallback = Callable[[str, str], Awaitable[Any]]


class ContentAutosaver:
    def __init__(self, save: SaveCallback, delay: float = 1.0):
        self._save = save
        self.delay = delay
        self._pending: dict[str, str] = {}
        self._timers: dict[str, asyncio.Task] = {}

    @property
    def pending(self) -> dict[str, str]:
        """Content waiting to be written, keyed by file id."""
        return dict(self._pending)

    def schedule(self, file_id: str, content: str) -> None:
        """Record new content and restart the file's quiet-period timer.

        Must be called from within a running event loop.
        """
        self._pending[file_id] = content
        timer = self._timers.pop(file_id, None)
        if timer is not None:
            timer.cancel()
        self._timers[file_id] = asyncio.get_running_loop().create_task(
            self._save_later(file_id)
        )

    async def _save_later(self, file_id: str) -> None:
        await asyncio.sleep(self.delay)
        self._timers.pop(file_id, None)
        content = self._pending.pop(file_id, None)
        if content is None:
            return
        try:
            await self._save(file_id, content)
            logger.debug(f"Autosaved {file_id}")
        except NotFoundError:
            logger.warning(f"Dropping autosave of {file_id}: file was deleted")
        except PageStoreError as exc:
            logger.error(f"Autosave of {file_id} failed: {exc}")
            # Keep it for the next flush unless newer content arrived meanwhile
            self._pending.setdefault(file_id, content)

    async def flush(self) -> None:
        """Write all pending content now.

        Content for files that no longer exist is dropped. Every other file is
        attempted even if an earlier one fails; the first failure is then
        re-raised and the unsaved content stays pending.
        """
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

        first_error: Optional[PageStoreError] = None
        for file_id, content in list(self._pending.items()):
            try:
                await self._save(file_id, content)
            except NotFoundError:
                logger.warning(f"Dropping pending content of {file_id}: file was deleted")
            except PageStoreError as exc:
                logger.error(f"Flush of {file_id} failed: {exc}")
                if first_error is None:
                    first_error = exc
                continue
            if self._pending.get(file_id) == content:
                del self._pending[file_id]

        if first_error is not None:
            raise first_error

    def cancel(self) -> None:
        """Drop pending content without writing it."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._pending.clear()
