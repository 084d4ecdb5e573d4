"""Tests for ContentAutosaver."""

import asyncio

import pytest

from pagestore.errors import NotFoundError, StorageFailureError
from pagestore.session.autosave import ContentAutosaver


class RecordingSaver:
    def __init__(self, failures: int = 0):
        self.saved: list[tuple[str, str]] = []
        self.failures = failures

    async def __call__(self, file_id: str, content: str) -> None:
        if self.failures:
            self.failures -= 1
            raise StorageFailureError("disk full")
        self.saved.append((file_id, content))


@pytest.mark.asyncio
async def test_debounces_to_latest_content():
    saver = RecordingSaver()
    autosaver = ContentAutosaver(saver, delay=0.02)

    for text in ["h", "he", "hel", "hello"]:
        autosaver.schedule("page", text)
    await asyncio.sleep(0.1)

    assert saver.saved == [("page", "hello")]
    assert autosaver.pending == {}


@pytest.mark.asyncio
async def test_files_are_debounced_independently():
    saver = RecordingSaver()
    autosaver = ContentAutosaver(saver, delay=0.02)

    autosaver.schedule("a", "alpha")
    autosaver.schedule("b", "beta")
    await asyncio.sleep(0.1)

    assert sorted(saver.saved) == [("a", "alpha"), ("b", "beta")]


@pytest.mark.asyncio
async def test_nothing_written_before_delay():
    saver = RecordingSaver()
    autosaver = ContentAutosaver(saver, delay=10)

    autosaver.schedule("page", "draft")
    await asyncio.sleep(0.01)

    assert saver.saved == []
    assert autosaver.pending == {"page": "draft"}
    autosaver.cancel()


@pytest.mark.asyncio
async def test_flush_writes_immediately():
    saver = RecordingSaver()
    autosaver = ContentAutosaver(saver, delay=10)

    autosaver.schedule("page", "draft")
    await autosaver.flush()

    assert saver.saved == [("page", "draft")]
    assert autosaver.pending == {}


@pytest.mark.asyncio
async def test_failed_save_stays_pending_for_flush():
    saver = RecordingSaver(failures=1)
    autosaver = ContentAutosaver(saver, delay=0.01)

    autosaver.schedule("page", "draft")
    await asyncio.sleep(0.05)
    assert autosaver.pending == {"page": "draft"}

    await autosaver.flush()
    assert saver.saved == [("page", "draft")]
    assert autosaver.pending == {}


@pytest.mark.asyncio
async def test_flush_propagates_errors():
    saver = RecordingSaver(failures=1)
    autosaver = ContentAutosaver(saver, delay=10)

    autosaver.schedule("page", "draft")
    with pytest.raises(StorageFailureError):
        await autosaver.flush()

    assert autosaver.pending == {"page": "draft"}


@pytest.mark.asyncio
async def test_cancel_drops_pending_content():
    saver = RecordingSaver()
    autosaver = ContentAutosaver(saver, delay=0.01)

    autosaver.schedule("page", "draft")
    autosaver.cancel()
    await asyncio.sleep(0.05)

    assert saver.saved == []
    assert autosaver.pending == {}


class DeletedFileSaver(RecordingSaver):
    def __init__(self, deleted: set[str]):
        super().__init__()
        self.deleted = deleted

    async def __call__(self, file_id: str, content: str) -> None:
        if file_id in self.deleted:
            raise NotFoundError(file_id)
        await super().__call__(file_id, content)


@pytest.mark.asyncio
async def test_timer_drops_content_of_deleted_file():
    saver = DeletedFileSaver({"gone"})
    autosaver = ContentAutosaver(saver, delay=0.01)

    autosaver.schedule("gone", "draft")
    await asyncio.sleep(0.05)

    assert autosaver.pending == {}


@pytest.mark.asyncio
async def test_flush_skips_deleted_file_and_saves_the_rest():
    saver = DeletedFileSaver({"gone"})
    autosaver = ContentAutosaver(saver, delay=10)

    autosaver.schedule("gone", "draft")
    autosaver.schedule("keep", "important")
    await autosaver.flush()

    assert saver.saved == [("keep", "important")]
    assert autosaver.pending == {}


@pytest.mark.asyncio
async def test_flush_attempts_every_file_before_raising():
    saver = RecordingSaver(failures=1)
    autosaver = ContentAutosaver(saver, delay=10)

    autosaver.schedule("first", "one")
    autosaver.schedule("second", "two")
    with pytest.raises(StorageFailureError):
        await autosaver.flush()

    assert saver.saved == [("second", "two")]
    assert autosaver.pending == {"first": "one"}
