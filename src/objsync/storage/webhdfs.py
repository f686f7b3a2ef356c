# SPDX-License-Identifier: MIT
"""HDFS storage backend.

Uses the WebHDFS REST API for all file operations, with simple
(``user.name``) authentication.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import AsyncIterator
from urllib.parse import quote

import httpx

from ..exceptions import ObjectNotFoundError
from .base import BaseObjectStorage, ByteStream, is_dir_key, iter_body
from .protocol import DIR_SUFFIX, Body, Capability, Object
from .walker import PathInfo, walk

logger = logging.getLogger("objsync")


class WebHDFSStore(BaseObjectStorage):
    """HDFS accessed through WebHDFS.

    Keys are paths below the filesystem root, so ``a/b.txt`` is
    ``/a/b.txt``. Prefix wrapping by the factory scopes a store to a
    sub-directory.

    Args:
        endpoint: NameNode HTTP address, ``host:port`` (``http://`` assumed)
            or a full URL.
        access_key: HDFS user name sent as ``user.name``. Optional.
        secret_key: Unused; WebHDFS simple auth has no password.
    """

    capabilities = frozenset({Capability.FILE_SYSTEM})

    def __init__(self, endpoint: str, access_key: str = "", secret_key: str = "") -> None:
        super().__init__()
        if not endpoint:
            raise ValueError("HDFS endpoint is empty")
        if not endpoint.startswith(("http://", "https://")):
            endpoint = f"http://{endpoint}"
        self._host = endpoint.rstrip("/")
        self._user = access_key
        self._client = httpx.AsyncClient(timeout=300.0)
        logger.debug("WebHDFSStore initialized: host=%s user=%s", self._host, self._user or "-")

    def __str__(self) -> str:
        return f"hdfs://{self._host.split('://', 1)[1]}/"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the listing session and the underlying httpx client."""
        await super().aclose()
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def _hdfs_path(self, key: str) -> str:
        return "/" + key.lstrip("/")

    def _url(self, path: str) -> str:
        return f"{self._host}/webhdfs/v1{quote(path)}"

    def _params(self, op: str, **extra: object) -> dict[str, object]:
        params: dict[str, object] = {"op": op}
        if self._user:
            params["user.name"] = self._user
        params.update(extra)
        return params

    # ------------------------------------------------------------------
    # Byte-level I/O
    # ------------------------------------------------------------------

    async def get(self, key: str, offset: int = 0, limit: int = -1) -> AsyncIterator[bytes]:
        extra: dict[str, object] = {}
        if offset > 0:
            extra["offset"] = offset
        if limit > 0:
            extra["length"] = limit
        request = self._client.build_request(
            "GET", self._url(self._hdfs_path(key)), params=self._params("OPEN", **extra)
        )
        resp = await self._client.send(request, stream=True, follow_redirects=True)
        if resp.status_code == 404:
            await resp.aclose()
            raise ObjectNotFoundError(key)
        if resp.is_error:
            await resp.aread()
            await resp.aclose()
            resp.raise_for_status()
        return ByteStream(resp.aiter_bytes(), resp.aclose)

    async def put(self, key: str, data: Body = b"") -> None:
        """Create a file with the two-step WebHDFS upload.

        The NameNode answers the first request with a redirect to a DataNode,
        which receives the content. Directory keys are created with MKDIRS.
        """
        path = self._hdfs_path(key)
        if is_dir_key(key):
            resp = await self._client.put(self._url(path.rstrip("/") or "/"), params=self._params("MKDIRS"))
            resp.raise_for_status()
            return
        url = self._url(path)
        resp = await self._client.put(url, params=self._params("CREATE", overwrite="true"), follow_redirects=False)
        if resp.is_redirect:
            target, params = resp.headers["Location"], None
        else:
            # HttpFS style gateways create the file in place and expect data=true
            resp.raise_for_status()
            target, params = url, self._params("CREATE", overwrite="true", data="true")
        resp = await self._client.put(
            target,
            params=params,
            content=iter_body(data),
            headers={"Content-Type": "application/octet-stream"},
        )
        resp.raise_for_status()

    async def delete(self, key: str) -> None:
        resp = await self._client.delete(self._url(self._hdfs_path(key)), params=self._params("DELETE"))
        if resp.status_code == 404:
            raise ObjectNotFoundError(key)
        resp.raise_for_status()
        if not resp.json().get("boolean", False):
            raise ObjectNotFoundError(key)

    async def exists(self, key: str) -> bool:
        resp = await self._client.get(self._url(self._hdfs_path(key)), params=self._params("GETFILESTATUS"))
        if resp.status_code == 404:
            return False
        resp.raise_for_status()
        return True

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def chtimes(self, key: str, mtime: float) -> None:
        resp = await self._client.put(
            self._url(self._hdfs_path(key)),
            params=self._params("SETTIMES", modificationtime=int(mtime * 1000)),
        )
        if resp.status_code == 404:
            raise ObjectNotFoundError(key)
        resp.raise_for_status()

    async def chmod(self, key: str, mode: int) -> None:
        resp = await self._client.put(
            self._url(self._hdfs_path(key)),
            params=self._params("SETPERMISSION", permission=format(mode & 0o7777, "o")),
        )
        resp.raise_for_status()

    async def chown(self, key: str, owner: str, group: str) -> None:
        extra = {}
        if owner:
            extra["owner"] = owner
        if group:
            extra["group"] = group
        if not extra:
            return
        resp = await self._client.put(self._url(self._hdfs_path(key)), params=self._params("SETOWNER", **extra))
        resp.raise_for_status()

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    @staticmethod
    def _path_info(name: str, status: dict) -> PathInfo:
        return PathInfo(
            name=name,
            is_dir=status.get("type") == "DIRECTORY",
            size=status.get("length", 0),
            mtime=status.get("modificationTime", 0) / 1000.0,
        )

    async def _stat(self, path: str) -> PathInfo:
        resp = await self._client.get(self._url(path), params=self._params("GETFILESTATUS"))
        resp.raise_for_status()
        return self._path_info(posixpath.basename(path.rstrip("/")), resp.json()["FileStatus"])

    async def _read_dir(self, path: str) -> list[PathInfo]:
        resp = await self._client.get(self._url(path), params=self._params("LISTSTATUS"))
        resp.raise_for_status()
        statuses = resp.json().get("FileStatuses", {}).get("FileStatus", [])
        return [self._path_info(s["pathSuffix"], s) for s in statuses if s.get("pathSuffix")]

    async def iter_objects(self, prefix: str, marker: str) -> AsyncIterator[Object]:
        def prune(path: str) -> bool:
            key = path.lstrip("/") + DIR_SUFFIX
            return path != "/" and not (key.startswith(prefix) or prefix.startswith(key))

        async for path, info in walk("/", self._stat, self._read_dir, prune if prefix else None):
            if not info.is_dir:
                yield Object(key=path[1:], size=info.size, mtime=info.mtime)
