# SPDX-License-Identifier: MIT
"""Prefix wrapping: expose a sub-tree of a storage as a storage of its own."""

from __future__ import annotations

import dataclasses
from collections.abc import AsyncIterator

from .listing import ListingCursor
from .protocol import Body, Capability, Object, ObjectStorage


class PrefixedStorage:
    """Prepend ``prefix`` to every key sent to ``inner`` and strip it from listed keys.

    Listing through :meth:`list` uses the inner storage's session, so
    sequential paging keeps its fast path. Capabilities of the inner
    storage are passed through.
    """

    def __init__(self, inner: ObjectStorage, prefix: str) -> None:
        self.inner = inner
        self.prefix = prefix

    def __str__(self) -> str:
        return f"{self.inner}{self.prefix}"

    def __repr__(self) -> str:
        return f"<PrefixedStorage {self}>"

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self.inner.capabilities

    def _key(self, key: str) -> str:
        return self.prefix + key

    def _strip(self, obj: Object) -> Object:
        return dataclasses.replace(obj, key=obj.key[len(self.prefix) :])

    # ------------------------------------------------------------------
    # Byte-level I/O
    # ------------------------------------------------------------------

    async def get(self, key: str, offset: int = 0, limit: int = -1) -> AsyncIterator[bytes]:
        return await self.inner.get(self._key(key), offset, limit)

    async def put(self, key: str, data: Body = b"") -> None:
        await self.inner.put(self._key(key), data)

    async def copy(self, dst: str, src: str) -> None:
        await self.inner.copy(self._key(dst), self._key(src))

    async def delete(self, key: str) -> None:
        await self.inner.delete(self._key(key))

    async def exists(self, key: str) -> bool:
        return await self.inner.exists(self._key(key))

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list(self, prefix: str = "", marker: str = "", limit: int = 1000) -> list[Object]:
        objs = await self.inner.list(self._key(prefix), self._key(marker), limit)
        return [self._strip(obj) for obj in objs]

    def open_listing(self, prefix: str = "", marker: str = "") -> ListingCursor:
        inner = self.inner.open_listing(self._key(prefix), self._key(marker))
        return ListingCursor(self._stripped(inner), prefix=prefix, marker=marker)

    async def _stripped(self, cursor: ListingCursor) -> AsyncIterator[Object]:
        async with cursor:
            async for obj in cursor:
                yield self._strip(obj)

    # ------------------------------------------------------------------
    # Metadata / lifecycle
    # ------------------------------------------------------------------

    async def chtimes(self, key: str, mtime: float) -> None:
        await self.inner.chtimes(self._key(key), mtime)

    async def chmod(self, key: str, mode: int) -> None:
        await self.inner.chmod(self._key(key), mode)  # type: ignore[attr-defined]

    async def chown(self, key: str, owner: str, group: str) -> None:
        await self.inner.chown(self._key(key), owner, group)  # type: ignore[attr-defined]

    async def aclose(self) -> None:
        await self.inner.aclose()

    async def __aenter__(self) -> PrefixedStorage:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
