# SPDX-License-Identifier: MIT
"""Paged listing on top of an ordered object source.

A :class:`ListingCursor` runs the source (for example a filesystem walk) in
a background task that fills a bounded queue, so a consumer can start
paging before the source is exhausted and memory stays bounded on
arbitrarily large key spaces. The producer blocks when the queue is full
and the consumer blocks when it is empty.

The task belongs to the cursor: closing the cursor, or dropping the last
reference to it, cancels the task.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import weakref
from collections.abc import AsyncIterator

from ..config import get_listing_buffer_size
from ..exceptions import TraversalError
from .protocol import Object

logger = logging.getLogger("objsync")

_DONE = object()


def _cancel_task(task: asyncio.Task) -> None:
    # Finalizers can run after the loop is closed; cancelling then would
    # schedule a callback on a dead loop.
    if not task.get_loop().is_closed():
        task.cancel()


class _Producer:
    """State shared between a cursor and its background task.

    Kept separate from the cursor so the task holds no reference to it and
    the cursor can be garbage collected while the task is running.
    """

    def __init__(self, maxsize: int) -> None:
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.error: BaseException | None = None

    async def run(self, source: AsyncIterator[Object], prefix: str, marker: str) -> None:
        try:
            async for obj in source:
                if obj.key >= marker and obj.key.startswith(prefix):
                    await self.queue.put(obj)
        except Exception as exc:
            logger.warning("Listing of prefix %r failed: %s", prefix, exc)
            self.error = exc
        finally:
            aclose = getattr(source, "aclose", None)
            if aclose is not None:
                await aclose()
        await self.queue.put(_DONE)


class ListingCursor:
    """Explicit continuation over the objects of one listing.

    Objects come out strictly ascending, filtered to ``key >= marker`` and
    ``key.startswith(prefix)``. Use :meth:`next_page` for paging or iterate
    with ``async for``. :attr:`last_key` is the continuation token: the key
    of the last object handed out.

    Must be created while an event loop is running.
    """

    def __init__(self, source: AsyncIterator[Object], prefix: str = "", marker: str = "", maxsize: int | None = None):
        self.prefix = prefix
        self.marker = marker
        self.last_key: str | None = None
        self._exhausted = False
        self._producer = _Producer(maxsize or get_listing_buffer_size())
        self._task = asyncio.get_running_loop().create_task(self._producer.run(source, prefix, marker))
        self._finalizer = weakref.finalize(self, _cancel_task, self._task)
        self._finalizer.atexit = False

    @property
    def closed(self) -> bool:
        return self._exhausted

    async def next_page(self, limit: int) -> list[Object]:
        """Return up to ``limit`` objects.

        An empty list means the listing is finished. If the source failed,
        the page that would be empty raises :class:`TraversalError` instead;
        the error is raised only once.
        """
        objs: list[Object] = []
        while len(objs) < limit and not self._exhausted:
            item = await self._producer.queue.get()
            if item is _DONE:
                self._exhausted = True
                break
            objs.append(item)
        if objs:
            self.last_key = objs[-1].key
            return objs
        error, self._producer.error = self._producer.error, None
        if error is not None:
            raise TraversalError(f"Listing of prefix {self.prefix!r} failed: {error}") from error
        return objs

    async def aclose(self) -> None:
        """Stop the background task. Safe to call more than once."""
        self._exhausted = True
        self._finalizer.detach()
        if not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def __aenter__(self) -> ListingCursor:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    def __aiter__(self) -> AsyncIterator[Object]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Object]:
        while True:
            page = await self.next_page(1000)
            if not page:
                return
            for obj in page:
                yield obj
