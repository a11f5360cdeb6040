"""Shared pytest fixtures."""

import pytest

from edgepurge import EdgePurge, EdgePurgeSettings, MemoryProvider, TagStore


@pytest.fixture
def settings(tmp_path) -> EdgePurgeSettings:
    """Settings pointing at a fresh SQLite database."""
    return EdgePurgeSettings(
        environment="test",
        tag_format="%environment%-%sha1%",
        database_url=f"sqlite:///{tmp_path / 'edgepurge.db'}",
        invalidation_strategy="batch",
        batch_size=100,
    )


@pytest.fixture
def store(settings: EdgePurgeSettings) -> TagStore:
    """Create a TagStore with its schema for each test."""
    store = TagStore.from_url(settings.database_url, settings)
    store.create_schema()
    return store


@pytest.fixture
def provider() -> MemoryProvider:
    """Create a fresh MemoryProvider for each test."""
    return MemoryProvider(max_urls=1000)


@pytest.fixture
def sleeps() -> list[float]:
    """Collects the waits requested by retry loops."""
    return []


@pytest.fixture
def engine(
    settings: EdgePurgeSettings,
    provider: MemoryProvider,
    store: TagStore,
    sleeps: list[float],
) -> EdgePurge:
    """Create an EdgePurge running jobs inline, without real sleeps."""
    return EdgePurge(settings, provider=provider, store=store, sleep=sleeps.append)
