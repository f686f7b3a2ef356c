# SPDX-License-Identifier: MIT
"""Shared behaviour for storage backends.

:class:`BaseObjectStorage` supplies the parts of the contract that do not
depend on the backend: default ``copy``, the paged ``list`` session built on
:class:`~objsync.storage.listing.ListingCursor`, and helpers for request
bodies and streams. A backend implements the byte-level operations and
:meth:`BaseObjectStorage.iter_objects`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable

from ..exceptions import UnsupportedOperationError
from .listing import ListingCursor
from .protocol import DIR_SUFFIX, Body, Capability, Object

logger = logging.getLogger("objsync")

CHUNK_SIZE = 1 << 20


async def iter_body(data: Body) -> AsyncIterator[bytes]:
    """Normalise a ``put`` body into an async stream of chunks."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        if data:
            yield bytes(data)
    elif isinstance(data, AsyncIterable):
        async for chunk in data:
            yield chunk
    else:
        for chunk in data:
            yield chunk


class ByteStream:
    """Chunks of an opened object, returned by ``get``.

    Owns the underlying handle: ``close`` runs once, when the chunks are
    exhausted or on :meth:`aclose`, even if iteration never started.
    """

    def __init__(self, chunks: AsyncIterator[bytes], close: Callable[[], Awaitable[object]]) -> None:
        self._chunks = chunks
        self._close = close
        self._closed = False

    def __aiter__(self) -> ByteStream:
        return self

    async def __anext__(self) -> bytes:
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._chunks.aclose()
        finally:
            await self._close()


async def read_all(stream: AsyncIterator[bytes]) -> bytes:
    """Drain a stream returned by ``get`` into memory."""
    buf = bytearray()
    try:
        async for chunk in stream:
            buf.extend(chunk)
    finally:
        await stream.aclose()
    return bytes(buf)


def is_dir_key(key: str) -> bool:
    return key.endswith(DIR_SUFFIX)


class BaseObjectStorage:
    """Base class for concrete storages.

    Besides the default operations this class keeps one listing session
    per instance for :meth:`list`: a call whose ``marker`` equals the last
    key returned by the previous call (with the same ``prefix``) continues
    the running listing; any other call discards it and starts over.
    Callers that page concurrently must use :meth:`open_listing` instead.
    """

    capabilities: frozenset[Capability] = frozenset()

    def __init__(self) -> None:
        self._listing: ListingCursor | None = None
        self._last_listed: str | None = None

    def __str__(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self}>"

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    async def get(self, key: str, offset: int = 0, limit: int = -1) -> AsyncIterator[bytes]:
        raise NotImplementedError

    async def put(self, key: str, data: Body = b"") -> None:
        raise NotImplementedError

    async def copy(self, dst: str, src: str) -> None:
        """Read ``src`` fully and write it to ``dst``."""
        stream = await self.get(src)
        try:
            await self.put(dst, stream)
        finally:
            await stream.aclose()

    async def chtimes(self, key: str, mtime: float) -> None:
        raise UnsupportedOperationError(f"{self} does not support setting modification times")

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def iter_objects(self, prefix: str, marker: str) -> AsyncIterator[Object]:
        """Yield non-directory objects in ascending key order.

        Implementations may yield keys outside ``prefix`` or below
        ``marker``; the cursor filters them.
        """
        raise NotImplementedError

    def open_listing(self, prefix: str = "", marker: str = "") -> ListingCursor:
        return ListingCursor(self.iter_objects(prefix, marker), prefix=prefix, marker=marker)

    async def list(self, prefix: str = "", marker: str = "", limit: int = 1000) -> list[Object]:
        cursor = self._listing
        if cursor is None or marker != self._last_listed or prefix != cursor.prefix:
            if cursor is not None:
                logger.debug("Restarting listing of %s at %r", self, marker)
                await cursor.aclose()
            cursor = self._listing = self.open_listing(prefix, marker)
        try:
            objs = await cursor.next_page(limit)
        except Exception:
            self._listing = None
            await cursor.aclose()
            raise
        if not objs:
            self._listing = None
            await cursor.aclose()
            return objs
        self._last_listed = objs[-1].key
        return objs

    async def aclose(self) -> None:
        if self._listing is not None:
            await self._listing.aclose()
            self._listing = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
