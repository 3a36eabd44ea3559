"""Supabase Auth backed identity resolution."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

import httpx
from supabase import AuthError, Client, create_client

from quiz_sync.adapters.supabase_clients import connect
from quiz_sync.adapters.supabase_session_store import SupabaseSessionStore
from quiz_sync.domain.auth_state import Identity
from quiz_sync.domain.errors import StoreUnavailable
from quiz_sync.services.auth import AuthContext, AuthProvider, bearer_token

logger = logging.getLogger(__name__)


@dataclass
class SupabaseAuthProvider(AuthProvider):
    """Verifies Bearer JWTs and scopes store access to the caller's token."""

    url: str
    anon_key: str
    sessions_table: str = "sessions"
    client_factory: Callable[[str, str], Client] = create_client

    def resolve(self, authorization: str | None) -> AuthContext:
        """Return an authenticated or anonymous context for the header."""
        client = connect(self.url, self.anon_key, self.client_factory)
        token = bearer_token(authorization)
        if token is None:
            return self._anonymous(client)
        try:
            response = client.auth.get_user(token)
        except AuthError as exc:
            logger.warning("Invalid or expired auth token", extra={"error": str(exc)})
            return self._anonymous(client)
        except httpx.HTTPError as exc:
            raise StoreUnavailable("Authentication service unreachable") from exc
        user = response.user if response is not None else None
        if user is None:
            return self._anonymous(client)

        # row-level security sees the caller, not the anon key
        client.postgrest.auth(token)
        return AuthContext(
            identity=Identity(user_id=user.id, email=user.email),
            store=SupabaseSessionStore(client, sessions_table=self.sessions_table),
        )

    def _anonymous(self, client: Client) -> AuthContext:
        return AuthContext(
            identity=None,
            store=SupabaseSessionStore(client, sessions_table=self.sessions_table),
        )
