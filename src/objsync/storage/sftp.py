# SPDX-License-Identifier: MIT
"""SFTP storage backend.

paramiko is synchronous, so every remote call runs in a worker thread.
Listing walks the remote tree the same way the local backend does.
"""

from __future__ import annotations

import functools
import logging
import posixpath
import stat as stat_mod
from collections.abc import AsyncIterator

import anyio
import paramiko

from ..exceptions import CredentialError, ObjectNotFoundError, UnsupportedOperationError
from .base import CHUNK_SIZE, BaseObjectStorage, ByteStream, is_dir_key, iter_body
from .protocol import DIR_SUFFIX, Body, Capability, Object
from .walker import PathInfo, walk

logger = logging.getLogger("objsync")

DEFAULT_PORT = 22


def split_endpoint(endpoint: str) -> tuple[str, int, str]:
    """Split ``host[:port][/path]`` into host, port and root path."""
    hostport, sep, rest = endpoint.partition("/")
    host, _, port = hostport.partition(":")
    if not host:
        raise ValueError(f"No host in endpoint {endpoint!r}")
    return host, int(port) if port else DEFAULT_PORT, sep + rest


class SFTPStore(BaseObjectStorage):
    """Object storage over an SSH server's filesystem.

    Keys are joined to the root path the same way :class:`LocalDiskStore`
    joins them. An empty root means the login directory (``./``).

    Args:
        endpoint: ``host[:port][/path]``.
        access_key: SSH user name.
        secret_key: Password. Ignored when ``private_key_path`` is given.
        private_key_path: Private key file used instead of a password.

    Raises:
        CredentialError: If the server rejects the credentials.
    """

    capabilities = frozenset({Capability.FILE_SYSTEM})

    def __init__(
        self,
        endpoint: str,
        access_key: str = "",
        secret_key: str = "",
        private_key_path: str | None = None,
    ) -> None:
        super().__init__()
        host, port, root = split_endpoint(endpoint)
        self._host = f"{host}:{port}"
        self._user = access_key
        self.root = root or "./"
        self._ssh = paramiko.SSHClient()
        self._ssh.load_system_host_keys()
        self._ssh.set_missing_host_key_policy(paramiko.WarningPolicy())
        try:
            self._ssh.connect(
                host,
                port=port,
                username=access_key or None,
                password=None if private_key_path else (secret_key or None),
                key_filename=private_key_path,
                look_for_keys=private_key_path is None and not secret_key,
            )
        except paramiko.AuthenticationException as e:
            raise CredentialError(f"SSH authentication failed for {access_key}@{self._host}: {e}") from e
        self._sftp = self._ssh.open_sftp()
        logger.debug("SFTPStore initialized: host=%s root=%s", self._host, self.root)

    def __str__(self) -> str:
        user = f"{self._user}@" if self._user else ""
        return f"{user}{self._host}:{self.root}"

    async def aclose(self) -> None:
        await super().aclose()
        self._sftp.close()
        self._ssh.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path(self, key: str) -> str:
        if not key:
            return self.root
        return self.root.rstrip("/") + "/" + key.lstrip("/")

    async def _run(self, fn, *args):
        return await anyio.to_thread.run_sync(fn, *args)

    async def _lookup(self, key: str) -> paramiko.SFTPAttributes | None:
        try:
            return await self._run(self._sftp.stat, self._path(key))
        except FileNotFoundError:
            return None

    def _makedirs(self, path: str) -> None:
        parts = [p for p in path.split("/") if p]
        current = "/" if path.startswith("/") else ""
        for part in parts:
            current = posixpath.join(current, part)
            try:
                self._sftp.stat(current)
            except FileNotFoundError:
                self._sftp.mkdir(current, mode=0o700)

    # ------------------------------------------------------------------
    # Byte-level I/O
    # ------------------------------------------------------------------

    async def get(self, key: str, offset: int = 0, limit: int = -1) -> AsyncIterator[bytes]:
        try:
            f = await self._run(self._sftp.open, self._path(key), "rb")
        except FileNotFoundError as e:
            raise ObjectNotFoundError(key) from e
        if offset > 0:
            f.seek(offset)
        return ByteStream(self._read_chunks(f, limit), functools.partial(self._run, f.close))

    async def _read_chunks(self, f, limit: int) -> AsyncIterator[bytes]:
        remaining = limit if limit > 0 else None
        while remaining is None or remaining > 0:
            size = CHUNK_SIZE if remaining is None else min(CHUNK_SIZE, remaining)
            chunk = await self._run(f.read, size)
            if not chunk:
                break
            if remaining is not None:
                remaining -= len(chunk)
            yield chunk

    async def put(self, key: str, data: Body = b"") -> None:
        path = self._path(key)
        if is_dir_key(key):
            await self._run(self._makedirs, path)
            return
        await self._run(self._makedirs, posixpath.dirname(path))
        f = await self._run(self._sftp.open, path, "wb")
        try:
            async for chunk in iter_body(data):
                await self._run(f.write, chunk)
        finally:
            await self._run(f.close)

    async def delete(self, key: str) -> None:
        attrs = await self._lookup(key)
        if attrs is None:
            raise ObjectNotFoundError(key)
        if stat_mod.S_ISDIR(attrs.st_mode or 0):
            await self._run(self._sftp.rmdir, self._path(key))
        else:
            await self._run(self._sftp.remove, self._path(key))

    async def exists(self, key: str) -> bool:
        return await self._lookup(key) is not None

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def chtimes(self, key: str, mtime: float) -> None:
        await self._run(self._sftp.utime, self._path(key), (mtime, mtime))

    async def chmod(self, key: str, mode: int) -> None:
        await self._run(self._sftp.chmod, self._path(key), mode)

    async def chown(self, key: str, owner: str, group: str) -> None:
        """Change ownership. SFTP only knows numeric ids."""
        if not owner and not group:
            return
        try:
            uid = int(owner) if owner else None
            gid = int(group) if group else None
        except ValueError as e:
            raise UnsupportedOperationError(f"SFTP needs numeric owner and group, got {owner!r}:{group!r}") from e
        if uid is None or gid is None:
            attrs = await self._lookup(key)
            if attrs is None:
                raise ObjectNotFoundError(key)
            uid = attrs.st_uid if uid is None else uid
            gid = attrs.st_gid if gid is None else gid
        await self._run(self._sftp.chown, self._path(key), uid, gid)

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    @staticmethod
    def _path_info(name: str, attrs: paramiko.SFTPAttributes) -> PathInfo:
        return PathInfo(
            name=name,
            is_dir=stat_mod.S_ISDIR(attrs.st_mode or 0),
            size=attrs.st_size or 0,
            mtime=float(attrs.st_mtime or 0),
        )

    async def _stat(self, path: str) -> PathInfo:
        attrs = await self._run(self._sftp.stat, path)
        return self._path_info(posixpath.basename(path.rstrip("/")), attrs)

    def _read_dir_sync(self, path: str) -> list[PathInfo]:
        entries = []
        for attrs in self._sftp.listdir_attr(path):
            name = attrs.filename
            if stat_mod.S_ISLNK(attrs.st_mode or 0):
                attrs = self._sftp.stat(posixpath.join(path, name))
            entries.append(self._path_info(name, attrs))
        return entries

    async def _read_dir(self, path: str) -> list[PathInfo]:
        return await self._run(self._read_dir_sync, path)

    async def iter_objects(self, prefix: str, marker: str) -> AsyncIterator[Object]:
        def prune(path: str) -> bool:
            key = path[len(self.root) :] + DIR_SUFFIX
            return path != self.root and not (key.startswith(prefix) or prefix.startswith(key))

        async for path, info in walk(self.root, self._stat, self._read_dir, prune if prefix else None):
            if not info.is_dir:
                yield Object(key=path[len(self.root) :], size=info.size, mtime=info.mtime)
