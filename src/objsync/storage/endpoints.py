# SPDX-License-Identifier: MIT
"""Endpoint scheme selection for HTTP based backends.

Some providers expose private or internal endpoints that only speak plain
HTTP. :data:`PLAIN_HTTP_RULES` maps a backend name to a predicate over the
endpoint host; when it returns True the endpoint gets ``http://``.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Callable


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def _s3_plain_http(endpoint: str) -> bool:
    # BUCKET.IP[:PORT] is a self-hosted S3 compatible service
    parts = endpoint.split(":")[0].split(".", 1)
    return len(parts) > 1 and _is_ip(parts[1])


PLAIN_HTTP_RULES: dict[str, Callable[[str], bool]] = {
    "ufile": lambda endpoint: ".internal-" in endpoint or endpoint.endswith(".ucloud.cn"),
    "oss": lambda endpoint: ".vpc100-oss" in endpoint or "internal.aliyuncs.com" in endpoint,
    "jss": lambda endpoint: True,
    "s3": _s3_plain_http,
    "minio": lambda endpoint: True,
}

# Backends whose endpoint is not an HTTP URL
_RAW_ENDPOINT = ("hdfs",)


def supports_https(name: str, endpoint: str) -> bool:
    """Whether ``endpoint`` of backend ``name`` can be reached over HTTPS."""
    rule = PLAIN_HTTP_RULES.get(name)
    return rule is None or not rule(endpoint)


def resolve_endpoint(name: str, host: str, path: str = "", no_https: bool = False) -> str:
    """Build the endpoint handed to a backend constructor.

    ``file`` uses the URI path as its root, ``hdfs`` takes the host as is,
    everything else gets an ``https://`` or ``http://`` prefix.
    """
    if name == "file":
        return path
    if name in _RAW_ENDPOINT:
        return host
    if not no_https and supports_https(name, host):
        return "https://" + host
    return "http://" + host
