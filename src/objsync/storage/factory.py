# SPDX-License-Identifier: MIT
"""Storage factory.

Turns a source or destination string into a ready-to-use
:class:`~objsync.storage.protocol.ObjectStorage`. Accepted forms::

    [NAME://][ACCESS_KEY:SECRET_KEY@]BUCKET[.ENDPOINT][/PREFIX]
    [USER[:PASSWORD]@]HOST[:PORT][/PATH]        (SFTP)
    /some/local/path[/]                         (local disk)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

from ..config import SyncConfig, get_ssh_private_key_path
from ..credentials import CredentialProvider, TerminalPasswordPrompt
from ..exceptions import ConfigError, StorageCreationError
from .endpoints import resolve_endpoint
from .prefix import PrefixedStorage
from .protocol import DIR_SUFFIX, Capability, ObjectStorage
from .registry import BackendRegistry

logger = logging.getLogger("objsync")

SFTP = "sftp"


@dataclass(frozen=True)
class StorageEndpoint:
    """A parsed storage string. Nothing here has touched the network."""

    name: str
    host: str
    path: str = ""
    access_key: str = ""
    secret_key: str = ""
    prompt_password: bool = False
    """True when an SFTP password is needed but was not given."""


# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------


def parse_storage_uri(uri: str) -> StorageEndpoint:
    """Parse a storage string.

    Raises:
        ConfigError: If the string is not a valid URI or has no scheme.
    """
    if "://" not in uri:
        if ":" in uri:
            return _parse_remote_shell(uri)
        return _parse_local_path(uri)

    try:
        parts = urlsplit(uri)
        username, password = parts.username, parts.password
        parts.port  # noqa: B018 - validates the port
    except ValueError as e:
        raise ConfigError(f"Can't parse {uri}: {e}") from e
    if not parts.scheme:
        raise ConfigError(f"Can't parse {uri}: missing scheme")

    return StorageEndpoint(
        name=parts.scheme.lower(),
        host=parts.netloc.rpartition("@")[2],
        path=parts.path,
        access_key=unquote(username or ""),
        secret_key=unquote(password or ""),
    )


def _parse_remote_shell(uri: str) -> StorageEndpoint:
    user = password = ""
    if "@" in uri:
        user, _, uri = uri.rpartition("@")
    prompt = ":" not in user
    if not prompt:
        user, _, password = user.partition(":")
    host, path = _split_host_path(uri)
    return StorageEndpoint(
        name=SFTP, host=host, path=path, access_key=user, secret_key=password, prompt_password=prompt
    )


def _split_host_path(uri: str) -> tuple[str, str]:
    hostport, sep, rest = uri.partition("/")
    host, _, port = hostport.partition(":")
    if not host or (port and not port.isdigit()):
        raise ConfigError(f"Can't parse {uri}: expected [USER[:PASSWORD]@]HOST[:PORT][/PATH]")
    return hostport.rstrip(":"), sep + rest


def _parse_local_path(uri: str) -> StorageEndpoint:
    try:
        fullpath = os.path.abspath(uri)
    except (ValueError, OSError) as e:
        raise ConfigError(f"invalid path {uri!r}: {e}") from e
    if uri.endswith(DIR_SUFFIX) and not fullpath.endswith(DIR_SUFFIX):
        fullpath += DIR_SUFFIX
    return StorageEndpoint(name="file", host="", path=fullpath)


# ------------------------------------------------------------------
# Construction
# ------------------------------------------------------------------


def create_storage(
    uri: str,
    config: SyncConfig | None = None,
    credentials: CredentialProvider | None = None,
) -> ObjectStorage:
    """Build the storage described by ``uri``.

    Args:
        uri: Storage string (see module docstring).
        config: Sync options. ``config.perms`` is cleared, with a warning,
            when the storage cannot preserve permissions.
        credentials: Asked for the SFTP password when ``uri`` carries none
            and ``SSH_PRIVATE_KEY_PATH`` is unset. Defaults to an
            interactive terminal prompt.

    Raises:
        ConfigError: Malformed ``uri`` or unknown backend. Raised before
            any I/O; callers should abort.
        StorageCreationError: The backend could not be built (for example
            :class:`~objsync.exceptions.CredentialError`).
    """
    config = config if config is not None else SyncConfig()
    endpoint = parse_storage_uri(uri)
    backend = BackendRegistry.get(endpoint.name)

    if endpoint.name == SFTP:
        store = _create_sftp(backend, endpoint, credentials)
    else:
        address = resolve_endpoint(endpoint.name, endpoint.host, endpoint.path, config.no_https)
        store = _construct(backend, endpoint.name, address, endpoint.access_key, endpoint.secret_key)
        if endpoint.name != "file" and len(endpoint.path) > 1:
            store = PrefixedStorage(store, endpoint.path[1:])

    if config.perms and Capability.FILE_SYSTEM not in store.capabilities:
        logger.warning("%s is not a file system, can not preserve permissions", store)
        config.perms = False
    return store


def _create_sftp(backend, endpoint: StorageEndpoint, credentials: CredentialProvider | None) -> ObjectStorage:
    key_path = get_ssh_private_key_path()
    password = endpoint.secret_key
    if endpoint.prompt_password and key_path is None:
        provider = credentials if credentials is not None else TerminalPasswordPrompt()
        password = provider.password(endpoint.access_key, endpoint.host)
    return _construct(
        backend,
        SFTP,
        endpoint.host + endpoint.path,
        endpoint.access_key,
        password,
        private_key_path=key_path,
    )


def _construct(backend, name: str, address: str, access_key: str, secret_key: str, **kwargs) -> ObjectStorage:
    logger.debug("Creating %s storage at %s", name, address)
    try:
        return backend(address, access_key, secret_key, **kwargs)
    except ConfigError:
        raise
    except StorageCreationError as e:
        raise type(e)(f"create {name} {address}: {e}") from e
    except Exception as e:
        raise StorageCreationError(f"create {name} {address}: {e}") from e


def create_sync_pair(
    src: str,
    dst: str,
    config: SyncConfig | None = None,
    credentials: CredentialProvider | None = None,
) -> tuple[ObjectStorage, ObjectStorage]:
    """Build the source and destination storages of a sync run.

    Raises:
        ConfigError: If exactly one of ``src`` and ``dst`` ends with ``/``.
    """
    if src.endswith(DIR_SUFFIX) != dst.endswith(DIR_SUFFIX):
        raise ConfigError("SRC and DST should both end with '/' or not!")
    config = config if config is not None else SyncConfig()
    return create_storage(src, config, credentials), create_storage(dst, config, credentials)
