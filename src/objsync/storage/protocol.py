# SPDX-License-Identifier: MIT
"""Object storage protocol and shared types.

Defines the interface that every storage backend (local disk, HDFS, S3
family, SFTP) must implement so the sync engine can drive them uniformly.
"""

from __future__ import annotations

import enum
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from .listing import ListingCursor

DIR_SUFFIX = "/"
"""Keys ending with this suffix are directory placeholders, never listed."""

Body = Union[bytes, AsyncIterable[bytes], Iterable[bytes]]
"""Data accepted by :meth:`ObjectStorage.put`."""


@dataclass(frozen=True)
class Object:
    """A listed object."""

    key: str
    size: int
    mtime: float


class Capability(enum.Enum):
    """Optional behaviours a backend may declare statically."""

    FILE_SYSTEM = "file_system"
    """POSIX permissions and ownership can be preserved (see :class:`FileSystem`)."""


@runtime_checkable
class ObjectStorage(Protocol):
    """Protocol for key-addressed storages.

    Keys are ``/`` separated and totally ordered as Python strings. A key
    ending with :data:`DIR_SUFFIX` denotes a directory placeholder.
    """

    capabilities: frozenset[Capability]

    # ------------------------------------------------------------------
    # Byte-level I/O
    # ------------------------------------------------------------------

    async def get(self, key: str, offset: int = 0, limit: int = -1) -> AsyncIterator[bytes]:
        """Open ``key`` for reading starting at ``offset``.

        When ``limit > 0`` at most ``limit`` bytes are produced, otherwise
        the stream runs to the end of the object.

        Raises:
            ObjectNotFoundError: If the key does not exist.
        """
        ...

    async def put(self, key: str, data: Body = b"") -> None:
        """Write ``data`` to ``key``, overwriting any existing object.

        A directory key only ensures the directory exists; ``data`` is ignored.
        """
        ...

    async def copy(self, dst: str, src: str) -> None:
        """Copy ``src`` to ``dst``.

        Raises:
            ObjectNotFoundError: If ``src`` does not exist.
        """
        ...

    async def delete(self, key: str) -> None:
        """Remove ``key``.

        Raises:
            ObjectNotFoundError: If the key does not exist.
        """
        ...

    async def exists(self, key: str) -> bool:
        """Check whether a file or directory placeholder exists at ``key``."""
        ...

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list(self, prefix: str = "", marker: str = "", limit: int = 1000) -> list[Object]:
        """Return up to ``limit`` objects with ``key >= marker`` under ``prefix``.

        Keys are strictly ascending and directories are never included. An
        empty list means the key space is exhausted.

        Raises:
            TraversalError: On the page that would otherwise be empty, if the
                listing failed. The error is reported once.
        """
        ...

    def open_listing(self, prefix: str = "", marker: str = "") -> ListingCursor:
        """Start an independent listing owned by the caller."""
        ...

    # ------------------------------------------------------------------
    # Metadata / lifecycle
    # ------------------------------------------------------------------

    async def chtimes(self, key: str, mtime: float) -> None:
        """Set the modification time of ``key``.

        Raises:
            UnsupportedOperationError: If the backend has no mutable mtime.
        """
        ...

    async def aclose(self) -> None:
        """Release network clients and cancel any open listing."""
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Extra operations of backends declaring :attr:`Capability.FILE_SYSTEM`."""

    async def chmod(self, key: str, mode: int) -> None: ...

    async def chown(self, key: str, owner: str, group: str) -> None: ...
