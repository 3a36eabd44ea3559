"""Supabase client construction."""

from collections.abc import Callable

from supabase import Client, SupabaseException, create_client

from quiz_sync.domain.errors import Misconfigured

ClientFactory = Callable[[str, str], Client]


def connect(url: str, key: str, factory: ClientFactory = create_client) -> Client:
    """Create a client; settings the library rejects raise ``Misconfigured``."""
    try:
        return factory(url, key)
    except SupabaseException as exc:
        variable = "SUPABASE_ANON_KEY" if "key" in str(exc).lower() else "SUPABASE_URL"
        raise Misconfigured(
            f"Supabase rejected {variable}: {exc}",
            extra={"missing": [variable]},
        ) from exc
