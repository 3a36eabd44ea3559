"""Dependency container wiring for the application."""

from collections.abc import Callable
from dataclasses import dataclass
from functools import cache

from quiz_sync.adapters.supabase_auth_provider import SupabaseAuthProvider
from quiz_sync.adapters.supabase_clients import connect
from quiz_sync.adapters.supabase_session_store import SupabaseSessionStore
from quiz_sync.config import Settings, missing_supabase_settings
from quiz_sync.domain.errors import Misconfigured, Unauthorized
from quiz_sync.services.auth import AuthContext, AuthProvider, bearer_token
from quiz_sync.services.authorization import EventAuthorizationGate
from quiz_sync.services.feed import InMemorySessionFeed
from quiz_sync.services.health import HealthMonitor
from quiz_sync.services.reconciler import SessionReconciler
from quiz_sync.services.sessions import SessionCreator, SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_provider_factory: Callable[[], AuthProvider]
    gate: EventAuthorizationGate
    feed: InMemorySessionFeed
    health_monitor: HealthMonitor

    def authenticate(self, authorization: str | None) -> AuthContext:
        """Resolve the caller for one request.

        A request without a bearer token is rejected before any provider or
        client is built, so it gets a 401 even on a misconfigured deployment.
        """
        if bearer_token(authorization) is None:
            raise Unauthorized("Authentication required")
        return self.auth_provider_factory().resolve(authorization)

    def reconciler(self, store: SessionStore) -> SessionReconciler:
        """Reconciler reading through ``store`` and publishing applied writes."""
        return SessionReconciler(
            store=store,
            max_attempts=self.settings.reconcile_max_attempts,
            notify=self.feed.publish,
        )

    def session_creator(self, store: SessionStore) -> SessionCreator:
        return SessionCreator(
            store=store, max_attempts=self.settings.session_code_max_attempts
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container.

    Supabase clients are created on first use so that a deployment with
    missing configuration still starts and reports itself through /health.
    """
    resolved_settings = settings or Settings()

    def require_configured() -> None:
        missing = missing_supabase_settings(resolved_settings)
        if missing:
            raise Misconfigured(
                "Supabase environment variables not configured",
                extra={"missing": missing},
            )

    @cache
    def auth_provider() -> AuthProvider:
        require_configured()
        return SupabaseAuthProvider(
            url=resolved_settings.supabase_url,
            anon_key=resolved_settings.supabase_anon_key,
            sessions_table=resolved_settings.sessions_table,
        )

    @cache
    def probe_store() -> SessionStore:
        require_configured()
        client = connect(
            resolved_settings.supabase_url, resolved_settings.supabase_anon_key
        )
        return SupabaseSessionStore(
            client, sessions_table=resolved_settings.sessions_table
        )

    health_monitor = HealthMonitor(
        settings=resolved_settings,
        store_factory=probe_store,
        timeout_seconds=resolved_settings.health_probe_timeout_seconds,
    )
    return AppContainer(
        settings=resolved_settings,
        auth_provider_factory=auth_provider,
        gate=EventAuthorizationGate(),
        feed=InMemorySessionFeed(),
        health_monitor=health_monitor,
    )
