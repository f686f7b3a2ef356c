# SPDX-License-Identifier: MIT
"""Exception hierarchy for objsync.

Configuration errors are fatal and raised before any I/O. Construction
errors let the caller decide whether to retry or report. Per-key errors are
raised from the awaited operation.
"""


class StorageError(Exception):
    """Base class for all objsync errors."""


class ConfigError(StorageError, ValueError):
    """Malformed storage URI, unknown backend or inconsistent sync arguments."""


class StorageCreationError(StorageError):
    """A backend could not be constructed."""


class CredentialError(StorageCreationError):
    """Credentials were rejected or could not be obtained."""


class ObjectNotFoundError(StorageError, FileNotFoundError):
    """The requested key does not exist in the store."""

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key


class TraversalError(StorageError):
    """Listing traversal failed; the underlying error is chained as ``__cause__``."""


class UnsupportedOperationError(StorageError, NotImplementedError):
    """The backend does not implement an optional operation."""
