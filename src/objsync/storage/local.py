# SPDX-License-Identifier: MIT
"""Local filesystem storage backend.

Keys map onto paths by joining them to the root. A key ending with ``/``
is a directory. Listing is synthesised by walking the tree in lexical
order (see :mod:`objsync.storage.walker`), which yields the same flat,
sorted key space an object store would return.

The root is kept verbatim. With a trailing slash keys are relative
(``a.txt``); without one they keep a leading slash (``/a.txt``) and the
empty key names the root itself, which is how a single file or a directory
"as an entry" is synced.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import AsyncIterator

import aiofiles
import aiofiles.os
import anyio

from ..exceptions import ObjectNotFoundError
from .base import CHUNK_SIZE, BaseObjectStorage, ByteStream, is_dir_key, iter_body
from .protocol import DIR_SUFFIX, Body, Capability, Object
from .walker import PathInfo, local_read_dir, local_stat, walk

logger = logging.getLogger("objsync")


class LocalDiskStore(BaseObjectStorage):
    """Object storage over a directory of the local filesystem.

    Args:
        root: Directory (or single file) the keys are relative to. Created,
            with parents, when missing.
    """

    capabilities = frozenset({Capability.FILE_SYSTEM})

    def __init__(self, root: str, access_key: str = "", secret_key: str = "") -> None:
        super().__init__()
        self.root = root
        if not os.path.exists(root):
            os.makedirs(root, mode=0o755, exist_ok=True)
        logger.debug("LocalDiskStore initialized: root=%s", root)

    def __str__(self) -> str:
        return f"file://{self.root}"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path(self, key: str) -> str:
        if not key:
            return self.root
        return self.root.rstrip("/") + "/" + key.lstrip("/")

    # ------------------------------------------------------------------
    # Byte-level I/O
    # ------------------------------------------------------------------

    async def get(self, key: str, offset: int = 0, limit: int = -1) -> AsyncIterator[bytes]:
        try:
            f = await aiofiles.open(self._path(key), "rb")
        except (FileNotFoundError, NotADirectoryError) as e:
            raise ObjectNotFoundError(key) from e
        try:
            if offset > 0:
                await f.seek(offset)
        except BaseException:
            await f.close()
            raise
        return ByteStream(self._read_chunks(f, limit), f.close)

    @staticmethod
    async def _read_chunks(f, limit: int) -> AsyncIterator[bytes]:
        remaining = limit if limit > 0 else None
        while remaining is None or remaining > 0:
            size = CHUNK_SIZE if remaining is None else min(CHUNK_SIZE, remaining)
            chunk = await f.read(size)
            if not chunk:
                break
            if remaining is not None:
                remaining -= len(chunk)
            yield chunk

    async def put(self, key: str, data: Body = b"") -> None:
        path = self._path(key)
        if is_dir_key(key):
            await aiofiles.os.makedirs(path, mode=0o700, exist_ok=True)
            return
        await aiofiles.os.makedirs(os.path.dirname(path), mode=0o700, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            async for chunk in iter_body(data):
                await f.write(chunk)

    async def exists(self, key: str) -> bool:
        return await aiofiles.os.path.exists(self._path(key))

    async def delete(self, key: str) -> None:
        path = self._path(key)
        if not await aiofiles.os.path.exists(path):
            raise ObjectNotFoundError(key)
        if await aiofiles.os.path.isdir(path):
            await aiofiles.os.rmdir(path)
        else:
            await aiofiles.os.remove(path)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def chtimes(self, key: str, mtime: float) -> None:
        await anyio.to_thread.run_sync(os.utime, self._path(key), (mtime, mtime))

    async def chmod(self, key: str, mode: int) -> None:
        await anyio.to_thread.run_sync(os.chmod, self._path(key), mode)

    async def chown(self, key: str, owner: str, group: str) -> None:
        if not owner and not group:
            return
        await anyio.to_thread.run_sync(shutil.chown, self._path(key), owner or None, group or None)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def _stat(self, path: str) -> PathInfo:
        return await anyio.to_thread.run_sync(local_stat, path)

    async def _read_dir(self, path: str) -> list[PathInfo]:
        return await anyio.to_thread.run_sync(local_read_dir, path)

    def _prune(self, prefix: str):
        def prune(path: str) -> bool:
            if path == self.root:
                return False
            key = path[len(self.root) :] + DIR_SUFFIX
            return not (key.startswith(prefix) or prefix.startswith(key))

        return prune

    async def iter_objects(self, prefix: str, marker: str) -> AsyncIterator[Object]:
        prune = self._prune(prefix) if prefix else None
        async for path, info in walk(self.root, self._stat, self._read_dir, prune):
            if info.is_dir:
                continue
            yield Object(key=path[len(self.root) :], size=info.size, mtime=info.mtime)
