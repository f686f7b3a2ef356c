# SPDX-License-Identifier: MIT
"""Shared pytest fixtures for objsync tests."""

import pathlib

import pytest

from objsync.config import get_listing_buffer_size
from objsync.storage.local import LocalDiskStore


@pytest.fixture(autouse=True)
def clear_buffer_size_cache():
    """get_listing_buffer_size() is cached; isolate env changes between tests."""
    get_listing_buffer_size.cache_clear()
    yield
    get_listing_buffer_size.cache_clear()


@pytest.fixture
def tmp_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """Create an empty directory used as a store root."""
    root = tmp_path / "root"
    root.mkdir()
    return root


@pytest.fixture
def sample_tree(tmp_root: pathlib.Path) -> pathlib.Path:
    """Create the tree a.txt, b/c.txt, b/d.txt."""
    (tmp_root / "a.txt").write_bytes(b"A")
    (tmp_root / "b").mkdir()
    (tmp_root / "b" / "c.txt").write_bytes(b"CC")
    (tmp_root / "b" / "d.txt").write_bytes(b"DDD")
    return tmp_root


@pytest.fixture
async def store(sample_tree: pathlib.Path):
    """LocalDiskStore over sample_tree, keys relative to the root."""
    backend = LocalDiskStore(str(sample_tree) + "/")
    yield backend
    await backend.aclose()
