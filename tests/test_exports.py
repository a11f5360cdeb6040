"""Tests for package exports."""


def test_exports_available() -> None:
    """Test that the public API is importable from the package root."""
    from edgepurge import (
        CdnProvider,
        EdgePurge,
        EdgePurgeSettings,
        Invalidation,
        MemoryProvider,
        ObsoleteTagSweeper,
        TagStore,
        ThreadQueue,
    )

    # Just verify they're importable
    assert EdgePurge is not None
    assert EdgePurgeSettings is not None
    assert Invalidation is not None
    assert CdnProvider is not None
    assert MemoryProvider is not None
    assert ObsoleteTagSweeper is not None
    assert TagStore is not None
    assert ThreadQueue is not None


def test_all_names_resolve() -> None:
    import edgepurge

    for name in edgepurge.__all__:
        assert hasattr(edgepurge, name), name
