"""Supabase Realtime implementation of the session change feed."""

import logging
from dataclasses import dataclass

from supabase import AsyncClient, acreate_client

from quiz_sync.config import Settings, missing_supabase_settings
from quiz_sync.domain.errors import Misconfigured
from quiz_sync.services.feed import CallbackSubscription, ChangeCallback, SessionFeed

logger = logging.getLogger(__name__)


@dataclass
class SupabaseRealtimeFeed(SessionFeed):
    """Listens for UPDATE rows on the sessions table, one channel per session."""

    client: AsyncClient
    sessions_table: str = "sessions"
    schema: str = "public"

    @classmethod
    async def create(cls, settings: Settings) -> "SupabaseRealtimeFeed":
        """Create a feed with its own async Supabase client."""
        missing = missing_supabase_settings(settings)
        if missing:
            raise Misconfigured(
                "Supabase environment variables not configured",
                extra={"missing": missing},
            )
        client = await acreate_client(settings.supabase_url, settings.supabase_anon_key)
        return cls(client=client, sessions_table=settings.sessions_table)

    async def subscribe(
        self, session_id: str, callback: ChangeCallback
    ) -> CallbackSubscription:
        """Subscribe to changes of one session row."""
        channel = self.client.channel(f"session:{session_id}")

        def on_change(_payload: dict) -> None:
            callback(session_id)

        channel.on_postgres_changes(
            "UPDATE",
            schema=self.schema,
            table=self.sessions_table,
            filter=f"id=eq.{session_id}",
            callback=on_change,
        )
        await channel.subscribe()
        logger.info("Subscribed to session changes", extra={"session_id": session_id})

        async def teardown() -> None:
            await self.client.remove_channel(channel)

        return CallbackSubscription(teardown=teardown)
