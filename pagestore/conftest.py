"""Shared test fixtures for the document store."""

import os
import random
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from faker import Faker

from pagestore.navigation.tree import TreeNavigator
from pagestore.repository.nodes import NodeRepository
from pagestore.session.coordinator import SessionCoordinator
from pagestore.settings import StoreSettings
from pagestore.storage.manager import StorageManager


class FakeClock:
    """Deterministic UTC clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture(scope="session", autouse=True)
def setup_faker_seed():
    """Configure Faker to use a deterministic seed for reproducibility.

    The seed can be set via FAKER_SEED environment variable, or will be
    randomly generated. The seed is printed to stdout for reproducibility.
    """
    seed = os.environ.get("FAKER_SEED")
    if seed:
        seed = int(seed)
    else:
        seed = random.randint(0, 2**32 - 1)

    print(f"\n{'=' * 70}")
    print(f"Faker seed: {seed}")
    print(f"To reproduce this test run, set: FAKER_SEED={seed}")
    print(f"{'=' * 70}\n")

    Faker.seed(seed)
    random.seed(seed)

    return seed


@pytest.fixture
def fake() -> Faker:
    return Faker()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def storage(tmp_path):
    """An open StorageManager backed by a temporary database file."""
    manager = StorageManager(tmp_path / "pagestore.db")
    await manager.open()
    yield manager
    await manager.close()


@pytest.fixture
def repository(storage, clock) -> NodeRepository:
    return NodeRepository(storage, clock=clock)


@pytest.fixture
def navigator(repository) -> TreeNavigator:
    return TreeNavigator(repository)


@pytest.fixture
def settings(tmp_path) -> StoreSettings:
    return StoreSettings(
        base_path=tmp_path,
        seed_welcome_file=False,
        autosave_delay_seconds=0.01,
    )


@pytest.fixture
def coordinator(repository, navigator, settings) -> SessionCoordinator:
    return SessionCoordinator(repository, navigator, settings)
