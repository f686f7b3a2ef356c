# SPDX-License-Identifier: MIT
"""Configuration management for objsync.

This module handles:
- Logging setup
- Sync options shared by the storage factory
- Environment-driven tunables (SSH key path, listing buffer size)
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from functools import lru_cache

# ---------- Logging configuration ----------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("objsync")

DEFAULT_LISTING_BUFFER_SIZE = 10240

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY


# ---------- Sync options ----------
@dataclass
class SyncConfig:
    """Options consulted while building storages for a sync run.

    Attributes:
        no_https: Force plain HTTP for every HTTP-based backend.
        perms: Preserve POSIX permissions. Cleared by the factory when a
            storage cannot honour it.
    """

    no_https: bool = False
    perms: bool = False

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Read ``OBJSYNC_NO_HTTPS`` and ``OBJSYNC_PERMS``."""
        return cls(
            no_https=_env_flag("OBJSYNC_NO_HTTPS"),
            perms=_env_flag("OBJSYNC_PERMS"),
        )


# ---------- Environment tunables ----------
def get_ssh_private_key_path() -> str | None:
    """Return ``SSH_PRIVATE_KEY_PATH`` if set.

    When present, SFTP storages authenticate with the key and the
    interactive password prompt is skipped.
    """
    value = os.getenv("SSH_PRIVATE_KEY_PATH", "").strip()
    return value or None


@lru_cache(maxsize=1)
def get_listing_buffer_size() -> int:
    """Capacity of the queue between a listing traversal and its consumer.

    Raises:
        RuntimeError: If ``OBJSYNC_LIST_BUFFER`` is not a positive integer
    """
    raw = os.getenv("OBJSYNC_LIST_BUFFER", "").strip()
    if not raw:
        return DEFAULT_LISTING_BUFFER_SIZE
    try:
        size = int(raw)
    except ValueError as e:
        raise RuntimeError(f"OBJSYNC_LIST_BUFFER must be an integer, got {raw!r}") from e
    if size <= 0:
        raise RuntimeError(f"OBJSYNC_LIST_BUFFER must be positive, got {size}")
    return size
