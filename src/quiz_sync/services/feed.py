"""Session change feed abstractions."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from quiz_sync.domain.sessions import SessionRecord

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]


class FeedSubscription(Protocol):
    """Handle for one feed subscription."""

    async def unsubscribe(self) -> None:
        """Stop delivering notifications."""


class SessionFeed(Protocol):
    """Delivers 'this session row changed' notifications."""

    async def subscribe(
        self, session_id: str, callback: ChangeCallback
    ) -> FeedSubscription:
        """Call ``callback(session_id)`` whenever the session row changes."""


@dataclass
class CallbackSubscription:
    """Subscription that runs a teardown coroutine once."""

    teardown: Callable[[], Awaitable[None]]
    active: bool = True

    async def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        await self.teardown()


@dataclass
class InMemorySessionFeed(SessionFeed):
    """In-process feed used when writes and readers share one process."""

    _callbacks: dict[str, list[ChangeCallback]] = field(default_factory=dict)

    async def subscribe(
        self, session_id: str, callback: ChangeCallback
    ) -> CallbackSubscription:
        """Register a callback for one session id."""
        self._callbacks.setdefault(session_id, []).append(callback)

        async def teardown() -> None:
            callbacks = self._callbacks.get(session_id, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return CallbackSubscription(teardown=teardown)

    def publish(self, session: SessionRecord) -> None:
        """Notify subscribers that ``session`` changed."""
        for callback in list(self._callbacks.get(session.id, [])):
            try:
                callback(session.id)
            except Exception:
                logger.exception(
                    "Session change callback failed", extra={"session_id": session.id}
                )
