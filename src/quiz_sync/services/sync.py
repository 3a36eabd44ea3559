"""Client-side cached view of one session."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from quiz_sync.domain.errors import SessionNotFound, SyncError
from quiz_sync.domain.sessions import ReconcileResult, SessionRecord
from quiz_sync.services.feed import FeedSubscription, SessionFeed
from quiz_sync.services.health import HealthMonitor
from quiz_sync.services.reconciler import SessionReconciler

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionRecord], None]
ErrorListener = Callable[[SyncError], None]


@dataclass
class SessionSync:
    """Keeps ``session`` equal to the store's row, driven by change notifications.

    Store reads run in a worker thread. Notifications and health recoveries
    must be delivered on the event loop; each one schedules a refresh, and
    notifications arriving while a refresh is in flight are folded into one
    follow-up read.
    """

    reconciler: SessionReconciler
    feed: SessionFeed
    session: SessionRecord | None = None
    _subscription: FeedSubscription | None = None
    _listeners: list[SessionListener] = field(default_factory=list)
    _error_listeners: list[ErrorListener] = field(default_factory=list)
    _refresh_task: asyncio.Task[None] | None = None
    _stale: bool = False

    def on_change(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def follow_health(self, monitor: HealthMonitor) -> None:
        """Reconcile whenever the store comes back after an outage."""
        monitor.on_recovery(self._schedule_refresh)

    async def start(self, session_id: str) -> SessionRecord:
        """Load the session and subscribe to its changes."""
        session = await asyncio.to_thread(self.reconciler.store.get_session, session_id)
        if session is None:
            raise SessionNotFound("Session not found", extra={"sessionId": session_id})
        self.session = session
        self._subscription = await self.feed.subscribe(session_id, self._handle_change)
        return session

    async def stop(self) -> None:
        """Unsubscribe and wait for a scheduled refresh to finish."""
        if self._subscription is not None:
            await self._subscription.unsubscribe()
            self._subscription = None
        if self._refresh_task is not None:
            await self._refresh_task
            self._refresh_task = None

    async def refresh(self) -> ReconcileResult | None:
        """Reconcile the cache now; returns ``None`` if the sync is not started."""
        if self.session is None:
            return None
        try:
            result = await asyncio.to_thread(self.reconciler.reconcile, self.session)
        except SyncError as exc:
            logger.warning(
                "Session reconcile failed",
                extra={"session_id": self.session.id, "code": exc.code},
            )
            for error_listener in list(self._error_listeners):
                error_listener(exc)
            return None
        self.session = result.session
        if result.drift_corrected:
            for listener in list(self._listeners):
                listener(result.session)
        return result

    def _handle_change(self, session_id: str) -> None:
        if self.session is not None and session_id == self.session.id:
            self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._stale = True
            return
        self._refresh_task = asyncio.get_running_loop().create_task(
            self._refresh_until_current()
        )

    async def _refresh_until_current(self) -> None:
        self._stale = True
        while self._stale:
            self._stale = False
            await self.refresh()
