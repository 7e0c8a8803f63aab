"""Integration test fixtures.

Provides settings for a durable SQLite cache in a temporary directory. The
shared fixtures (settings, identity) come from tests/conftest.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from ghrevisions.config import CacheSettings

if TYPE_CHECKING:
    from pathlib import Path

    from ghrevisions.config import Settings


@pytest.fixture()
def durable_settings(settings: Settings, tmp_path: Path) -> Settings:
    """Settings whose object cache persists in ``tmp_path``."""
    return settings.model_copy(
        update={"cache": CacheSettings(backend="durable", db_path=str(tmp_path / "cache.db"))}
    )
