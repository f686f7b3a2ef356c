# SPDX-License-Identifier: MIT
"""Unit tests for the lexical pre-order walker."""

import pytest

from objsync.storage.walker import PathInfo, local_read_dir, local_stat, sort_entries, walk


def _tree_fns(tree):
    """Build stat/read_dir coroutines over a nested dict (None marks a file)."""

    def lookup(path):
        node = tree
        for part in [p for p in path.split("/") if p]:
            node = node[part]
        return node

    async def stat(path):
        node = lookup(path)
        return PathInfo(name=path.rstrip("/").rsplit("/", 1)[-1], is_dir=node is not None, size=0, mtime=0.0)

    async def read_dir(path):
        return [PathInfo(name=n, is_dir=c is not None, size=0, mtime=0.0) for n, c in lookup(path).items()]

    return stat, read_dir


@pytest.mark.unit
def test_sort_entries_appends_slash_to_directories():
    entries = [
        PathInfo("a", True, 0, 0.0),
        PathInfo("a-b", False, 0, 0.0),
        PathInfo("a0", False, 0, 0.0),
    ]

    assert [e.name for e in sort_entries(entries)] == ["a-b", "a", "a0"]


@pytest.mark.unit
async def test_walk_is_pre_order_and_sorted():
    tree = {"b": {"y": None, "x": {"z": None}}, "a": None, "b-c": None}
    stat, read_dir = _tree_fns(tree)

    paths = [path async for path, _ in walk("/", stat, read_dir)]

    assert paths == ["/", "/a", "/b-c", "/b", "/b/x", "/b/x/z", "/b/y"]


@pytest.mark.unit
async def test_walk_prune_skips_children_but_yields_directory():
    tree = {"keep": {"f": None}, "skip": {"g": None}}
    stat, read_dir = _tree_fns(tree)

    paths = [path async for path, _ in walk("/", stat, read_dir, prune=lambda p: p == "/skip")]

    assert paths == ["/", "/keep", "/keep/f", "/skip"]


@pytest.mark.unit
async def test_walk_propagates_read_dir_errors():
    stat, _ = _tree_fns({"a": {"b": None}})

    async def broken_read_dir(path):
        raise PermissionError(path)

    gen = walk("/", stat, broken_read_dir)
    assert (await gen.__anext__())[0] == "/"
    with pytest.raises(PermissionError):
        await gen.__anext__()


@pytest.mark.unit
def test_local_primitives_follow_symlinks(tmp_path):
    (tmp_path / "real").mkdir()
    (tmp_path / "real" / "f").write_bytes(b"12345")
    (tmp_path / "link").symlink_to(tmp_path / "real", target_is_directory=True)

    entries = {e.name: e for e in local_read_dir(str(tmp_path))}
    info = local_stat(str(tmp_path / "real" / "f"))

    assert entries["link"].is_dir
    assert entries["real"].is_dir
    assert info.name == "f"
    assert info.size == 5
    assert not info.is_dir
