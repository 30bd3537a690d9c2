"""Shared fixtures for integration tests.

These tests use real infrastructure components (DiskcacheAdapter, YAML
config files, the composition root) instead of mocks.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tabguard.infrastructure.cache.diskcache_adapter import DiskcacheAdapter


@pytest.fixture()
async def diskcache(tmp_path: Path) -> DiskcacheAdapter:
    """Real DiskcacheAdapter backed by tmp_path (auto-cleaned)."""
    adapter = DiskcacheAdapter(
        directory=tmp_path / "cache",
        ttl_seconds=3600,
        max_concurrent=5,
    )
    async with adapter:
        yield adapter


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Drop TABGUARD_* variables inherited from the outer environment."""
    import os

    for key in list(os.environ):
        if key.startswith("TABGUARD_"):
            monkeypatch.delenv(key)
    return monkeypatch
