# SPDX-License-Identifier: MIT
"""objsync - uniform storage access for a multi-backend sync engine."""

from .config import SyncConfig
from .exceptions import (
    ConfigError,
    CredentialError,
    ObjectNotFoundError,
    StorageCreationError,
    StorageError,
    TraversalError,
    UnsupportedOperationError,
)
from .storage import Object, ObjectStorage, create_storage, create_sync_pair

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "CredentialError",
    "Object",
    "ObjectNotFoundError",
    "ObjectStorage",
    "StorageCreationError",
    "StorageError",
    "SyncConfig",
    "TraversalError",
    "UnsupportedOperationError",
    "create_storage",
    "create_sync_pair",
]
