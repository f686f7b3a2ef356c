# SPDX-License-Identifier: MIT
"""Deterministic pre-order traversal of hierarchical stores.

Entries of a directory are visited in lexical order of their names, with
``/`` appended to directory names before comparison. This makes the
sequence of relative paths produced by a walk globally sorted, which is
what flat object-store style listing needs.

The walker is backend agnostic: callers pass coroutines that stat a path
and read a directory. Both must follow symbolic links, so a link to a
directory is walked as a directory. There is no cycle protection.
"""

from __future__ import annotations

import os
import posixpath
import stat as stat_mod
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

from .protocol import DIR_SUFFIX


@dataclass(frozen=True)
class PathInfo:
    """What the walker needs to know about a path."""

    name: str
    is_dir: bool
    size: int
    mtime: float

    @property
    def sort_name(self) -> str:
        return self.name + DIR_SUFFIX if self.is_dir else self.name


StatFn = Callable[[str], Awaitable[PathInfo]]
ReadDirFn = Callable[[str], Awaitable["list[PathInfo]"]]


def sort_entries(entries: list[PathInfo]) -> list[PathInfo]:
    """Sort directory entries in walk order."""
    return sorted(entries, key=lambda e: e.sort_name)


async def walk(
    root: str,
    stat: StatFn,
    read_dir: ReadDirFn,
    prune: Callable[[str], bool] | None = None,
) -> AsyncIterator[tuple[str, PathInfo]]:
    """Yield ``(path, info)`` for ``root`` and everything below it.

    Args:
        root: Path to start from. It is yielded first.
        stat: Returns the info of a single path, following links.
        read_dir: Returns the entries of a directory, following links.
        prune: Optional predicate; a directory for which it returns True is
            yielded but not descended into.

    Errors raised by ``stat`` or ``read_dir`` abort the walk.
    """
    stack = [(root, await stat(root))]
    while stack:
        path, info = stack.pop()
        yield path, info
        if not info.is_dir or (prune is not None and prune(path)):
            continue
        entries = sort_entries(await read_dir(path))
        for entry in reversed(entries):
            stack.append((posixpath.join(path, entry.name), entry))


# ------------------------------------------------------------------
# Local filesystem primitives (blocking; run them in a worker thread)
# ------------------------------------------------------------------


def local_stat(path: str) -> PathInfo:
    st = os.stat(path)
    return PathInfo(
        name=posixpath.basename(path.rstrip("/")),
        is_dir=stat_mod.S_ISDIR(st.st_mode),
        size=st.st_size,
        mtime=st.st_mtime,
    )


def local_read_dir(path: str) -> list[PathInfo]:
    entries = []
    with os.scandir(path) as it:
        for entry in it:
            st = entry.stat(follow_symlinks=True)
            entries.append(
                PathInfo(name=entry.name, is_dir=stat_mod.S_ISDIR(st.st_mode), size=st.st_size, mtime=st.st_mtime)
            )
    return entries
