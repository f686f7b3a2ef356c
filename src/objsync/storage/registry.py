# SPDX-License-Identifier: MIT
"""Backend registry.

Maps a backend name (the URI scheme) to its storage class. Built-in
backends with optional dependencies are registered lazily: their module is
imported the first time the name is looked up.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from ..exceptions import ConfigError

logger = logging.getLogger("objsync")

# name -> (module, class, extra that provides its dependencies)
_BUILTIN: dict[str, tuple[str, str, str | None]] = {
    "file": ("objsync.storage.local", "LocalDiskStore", None),
    "hdfs": ("objsync.storage.webhdfs", "WebHDFSStore", None),
    "s3": ("objsync.storage.s3", "S3Store", "s3"),
    "minio": ("objsync.storage.s3", "MinioStore", "s3"),
    "oss": ("objsync.storage.s3", "S3Store", "s3"),
    "jss": ("objsync.storage.s3", "S3Store", "s3"),
    "ufile": ("objsync.storage.s3", "S3Store", "s3"),
    "sftp": ("objsync.storage.sftp", "SFTPStore", "sftp"),
}


class BackendRegistry:
    """Registry of storage backends."""

    _backends: dict[str, type] = {}

    @classmethod
    def register(cls, name: str):
        """Decorator registering a backend class under ``name``.

        Usage::

            @BackendRegistry.register("gcs")
            class GCSStore(BaseObjectStorage):
                ...
        """

        def decorator(backend_class: type) -> type:
            cls._backends[name.lower()] = backend_class
            return backend_class

        return decorator

    @classmethod
    def get(cls, name: str) -> Any:
        """Return the backend class for ``name``.

        Raises:
            ConfigError: If the backend is unknown or its optional
                dependencies are not installed.
        """
        name = name.lower()
        if name in cls._backends:
            return cls._backends[name]
        if name not in _BUILTIN:
            raise ConfigError(f"Unknown storage backend: {name!r}. Available: {', '.join(cls.list_names())}")
        module_name, class_name, extra = _BUILTIN[name]
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise ConfigError(
                f"Storage backend {name!r} requires extra dependencies. Install with: pip install 'objsync[{extra}]'"
            ) from exc
        backend_class = getattr(module, class_name)
        cls._backends[name] = backend_class
        logger.debug("Loaded storage backend %s from %s", name, module_name)
        return backend_class

    @classmethod
    def list_names(cls) -> list[str]:
        return sorted(set(_BUILTIN) | set(cls._backends))

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name.lower() in cls._backends or name.lower() in _BUILTIN

    @classmethod
    def unregister(cls, name: str) -> None:
        """Drop a registration (loaded built-ins are reloaded on next lookup)."""
        cls._backends.pop(name.lower(), None)
