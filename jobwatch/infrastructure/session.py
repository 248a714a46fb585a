"""Session-context hooks.

Every outbound job request needs a bearer credential issued by the auth
provider. Callers never look the credential up themselves: they ask the
injected :class:`SessionProvider`, which answers with the current credential
or ``None`` when nobody is signed in.
"""
from __future__ import annotations

from typing import Protocol


class SessionProvider(Protocol):
    """Contract for session lookups."""

    def get_credential(self) -> str | None:
        """Return the current bearer credential, if any."""


class AnonymousSessionProvider:
    """Provider used when no session is configured."""

    def get_credential(self) -> str | None:
        return None


class StaticSessionProvider:
    """Provider holding one credential, e.g. a request's bearer token."""

    def __init__(self, credential: str | None) -> None:
        self._credential = (credential or "").strip() or None

    def get_credential(self) -> str | None:
        return self._credential


def session_from_header(authorization: str | None) -> SessionProvider:
    """Build a provider from an ``Authorization`` header value."""

    if not authorization:
        return AnonymousSessionProvider()
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return AnonymousSessionProvider()
    return StaticSessionProvider(token)
