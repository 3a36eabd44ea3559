"""Caller identity resolution."""

from dataclasses import dataclass
from typing import Protocol

from quiz_sync.domain.auth_state import Identity
from quiz_sync.domain.errors import Unauthorized
from quiz_sync.services.sessions import SessionStore


@dataclass(frozen=True)
class AuthContext:
    """Verified identity (or none) plus a store scoped to it."""

    identity: Identity | None
    store: SessionStore

    def require_identity(self) -> Identity:
        if self.identity is None:
            raise Unauthorized("Authentication required")
        return self.identity


class AuthProvider(Protocol):
    """Turns an inbound credential into an ``AuthContext``."""

    def resolve(self, authorization: str | None) -> AuthContext:
        """Return the context for an ``Authorization`` header value."""


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from a ``Bearer`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
