"""Credential providers for the GitHub client.

The client never caches a token: it asks its provider for a fresh
``Credential`` on every request.  A provider returns ``None`` when no
credential is available; the client turns that into
``AuthenticationRequired``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Credential:
    """A bearer token plus the account login it belongs to."""

    token: str
    account: str | None = None


class TokenProvider(Protocol):
    """Anything that can hand out a credential on demand."""

    def get_credential(self) -> Credential | None:
        ...  # pragma: no cover


class StaticTokenProvider:
    """Serve a token fixed at construction time (from config or CLI)."""

    def __init__(self, token: str | None, account: str | None = None):
        self._token = token
        self._account = account

    def get_credential(self) -> Credential | None:
        if not self._token:
            return None
        return Credential(token=self._token, account=self._account)


class EnvTokenProvider:
    """Read the token from the environment each time it is requested.

    ``GITHUB_TOKEN`` is preferred over ``GH_TOKEN`` (the GitHub CLI name).
    The account login comes from ``GITHUB_USER`` unless given explicitly.
    It is never looked up through the API; without it the client cannot
    tell which issues are assigned to the authenticated user.
    """

    def __init__(self, account: str | None = None):
        self._account = account

    def get_credential(self) -> Credential | None:
        token = os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN")
        if not token:
            return None
        account = self._account or os.getenv("GITHUB_USER") or None
        return Credential(token=token.strip(), account=account)


def provider_from_config(
    token: str | None, account: str | None
) -> TokenProvider:
    """Pick a provider: a configured token wins over the environment."""
    if token:
        return StaticTokenProvider(token, account)
    return EnvTokenProvider(account)
