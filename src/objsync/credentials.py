# SPDX-License-Identifier: MIT
"""Credential providers used when a storage URI carries no password.

The factory never reads the terminal itself; it asks a provider. The
default provider prompts interactively, tests and embedding code inject a
static one.
"""

from __future__ import annotations

import getpass
from typing import Protocol, runtime_checkable

from .exceptions import CredentialError


@runtime_checkable
class CredentialProvider(Protocol):
    """Supplies a password for ``user`` on ``host``."""

    def password(self, user: str, host: str) -> str: ...


class TerminalPasswordPrompt:
    """Prompt on the controlling terminal with echo disabled."""

    def __init__(self, prompt: str = "Enter Password: ") -> None:
        self._prompt = prompt

    def password(self, user: str, host: str) -> str:
        try:
            return getpass.getpass(self._prompt)
        except (EOFError, OSError) as e:
            raise CredentialError(f"Read password for {user}@{host}: {e}") from e


class StaticCredentials:
    """Always return the same password."""

    def __init__(self, password: str) -> None:
        self._password = password

    def password(self, user: str, host: str) -> str:
        return self._password
