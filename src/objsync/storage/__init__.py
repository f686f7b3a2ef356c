# SPDX-License-Identifier: MIT
"""Pluggable storage backends for objsync.

Every backend implements the :class:`ObjectStorage` contract so a sync
engine can copy between any two of them.

Usage::

    from objsync.storage import create_storage

    store = create_storage("/data/src/")
    page = await store.list(limit=100)
    data = await read_all(await store.get(page[0].key))
"""

from .base import BaseObjectStorage, read_all
from .factory import StorageEndpoint, create_storage, create_sync_pair, parse_storage_uri
from .listing import ListingCursor
from .local import LocalDiskStore
from .prefix import PrefixedStorage
from .protocol import DIR_SUFFIX, Capability, FileSystem, Object, ObjectStorage
from .registry import BackendRegistry

__all__ = [
    "DIR_SUFFIX",
    "BackendRegistry",
    "BaseObjectStorage",
    "Capability",
    "FileSystem",
    "ListingCursor",
    "LocalDiskStore",
    "Object",
    "ObjectStorage",
    "PrefixedStorage",
    "StorageEndpoint",
    "create_storage",
    "create_sync_pair",
    "parse_storage_uri",
    "read_all",
]
