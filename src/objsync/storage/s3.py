# SPDX-License-Identifier: MIT
"""S3 compatible storage backend.

AWS S3 and services speaking the same API (MinIO, Aliyun OSS, UCloud
UFile, JD Cloud JSS). boto3 is synchronous, so every call runs in a worker
thread.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import AsyncIterator

import anyio
import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..exceptions import ObjectNotFoundError
from .base import CHUNK_SIZE, BaseObjectStorage, ByteStream, is_dir_key, iter_body
from .protocol import Body, Object

logger = logging.getLogger("objsync")

_AWS_REGION = re.compile(r"(?:^|\.)s3[.-]([a-z0-9-]+)\.amazonaws\.com")
_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def _is_not_found(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code", "") in _NOT_FOUND_CODES


def split_endpoint(endpoint: str) -> tuple[str, str | None, str | None]:
    """Split ``scheme://BUCKET[.ENDPOINT]`` into bucket, endpoint URL and region.

    Raises:
        ValueError: If no bucket name is present.
    """
    scheme, sep, rest = endpoint.partition("://")
    if not sep:
        scheme, rest = "https", endpoint
    bucket, _, host = rest.rstrip("/").partition(".")
    if not bucket:
        raise ValueError(f"No bucket in endpoint {endpoint!r}")
    if not host:
        return bucket, None, None
    region = None
    match = _AWS_REGION.search(host)
    if match:
        region = match.group(1)
    elif host.endswith("amazonaws.com"):
        region = "us-east-1"
    return bucket, f"{scheme}://{host}", region


class S3Store(BaseObjectStorage):
    """Object storage backed by an S3 bucket.

    Args:
        endpoint: ``https://BUCKET.ENDPOINT``; the first host label is the bucket.
        access_key: Access key ID. Empty means the boto3 default credential chain.
        secret_key: Secret access key.
    """

    addressing_style = "auto"

    def __init__(self, endpoint: str, access_key: str = "", secret_key: str = "") -> None:
        super().__init__()
        self.bucket, endpoint_url, region = split_endpoint(endpoint)
        client_kwargs = {
            "aws_access_key_id": access_key or None,
            "aws_secret_access_key": secret_key or None,
            "region_name": region,
            "config": Config(s3={"addressing_style": self.addressing_style}),
        }
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("s3", **client_kwargs)
        logger.debug("S3Store initialized: bucket=%s endpoint=%s", self.bucket, endpoint_url or "default")

    def __str__(self) -> str:
        return f"s3://{self.bucket}/"

    async def _call(self, method: str, **kwargs):
        return await anyio.to_thread.run_sync(functools.partial(getattr(self._client, method), **kwargs))

    async def _head(self, key: str) -> dict | None:
        try:
            return await self._call("head_object", Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise

    # ------------------------------------------------------------------
    # Byte-level I/O
    # ------------------------------------------------------------------

    async def get(self, key: str, offset: int = 0, limit: int = -1) -> AsyncIterator[bytes]:
        kwargs = {"Bucket": self.bucket, "Key": key}
        if offset > 0 or limit > 0:
            end = str(offset + limit - 1) if limit > 0 else ""
            kwargs["Range"] = f"bytes={offset}-{end}"
        try:
            resp = await self._call("get_object", **kwargs)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(key) from e
            raise
        body = resp["Body"]
        return ByteStream(self._iter_body(body), functools.partial(anyio.to_thread.run_sync, body.close))

    @staticmethod
    async def _iter_body(body) -> AsyncIterator[bytes]:
        while True:
            chunk = await anyio.to_thread.run_sync(body.read, CHUNK_SIZE)
            if not chunk:
                break
            yield chunk

    async def put(self, key: str, data: Body = b"") -> None:
        """Upload ``data`` with a single PutObject.

        .. warning::

            **Full in-memory buffering.** PutObject needs the complete body,
            so streamed input is accumulated in memory first.
        """
        if is_dir_key(key):
            await self._call("put_object", Bucket=self.bucket, Key=key, Body=b"")
            return
        buf = bytearray()
        async for chunk in iter_body(data):
            buf.extend(chunk)
        await self._call("put_object", Bucket=self.bucket, Key=key, Body=bytes(buf))

    async def copy(self, dst: str, src: str) -> None:
        """Server-side copy."""
        try:
            await self._call(
                "copy_object", Bucket=self.bucket, Key=dst, CopySource={"Bucket": self.bucket, "Key": src}
            )
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(src) from e
            raise

    async def delete(self, key: str) -> None:
        if await self._head(key) is None:
            raise ObjectNotFoundError(key)
        await self._call("delete_object", Bucket=self.bucket, Key=key)

    async def exists(self, key: str) -> bool:
        return await self._head(key) is not None

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def iter_objects(self, prefix: str, marker: str) -> AsyncIterator[Object]:
        # StartAfter excludes the marker itself
        if marker and marker.startswith(prefix) and not is_dir_key(marker):
            head = await self._head(marker)
            if head is not None:
                yield Object(key=marker, size=head["ContentLength"], mtime=head["LastModified"].timestamp())

        kwargs = {"Bucket": self.bucket, "Prefix": prefix}
        if marker:
            kwargs["StartAfter"] = marker
        while True:
            resp = await self._call("list_objects_v2", **kwargs)
            for item in resp.get("Contents", []):
                if is_dir_key(item["Key"]):
                    continue
                yield Object(key=item["Key"], size=item["Size"], mtime=item["LastModified"].timestamp())
            if not resp.get("IsTruncated"):
                break
            kwargs["ContinuationToken"] = resp["NextContinuationToken"]


class MinioStore(S3Store):
    """MinIO buckets are addressed path style."""

    addressing_style = "path"
