"""Store connectivity probe."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from quiz_sync.config import Settings, environment_flags, missing_supabase_settings
from quiz_sync.domain.errors import Misconfigured, StoreError, StoreUnavailable
from quiz_sync.domain.health import DatabaseSummary, HealthState, HealthStatus
from quiz_sync.services.sessions import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class HealthMonitor:
    """Classifies the deployment as healthy, unhealthy or misconfigured.

    The store factory is only called once configuration checks pass, so a
    misconfigured deployment never attempts a network call.
    """

    settings: Settings
    store_factory: Callable[[], SessionStore]
    timeout_seconds: float = 5.0
    last_state: HealthState | None = None
    _recovery_listeners: list[Callable[[], None]] = field(default_factory=list)

    def on_recovery(self, listener: Callable[[], None]) -> None:
        """Register a callback for unhealthy -> healthy transitions."""
        self._recovery_listeners.append(listener)

    async def probe(self) -> HealthStatus:
        """Run the checks in order and return the resulting status."""
        status = await self._probe()
        previous = self.last_state
        self.last_state = status.state
        if previous is HealthState.UNHEALTHY and status.healthy:
            logger.info("Store connectivity recovered")
            for listener in list(self._recovery_listeners):
                listener()
        return status

    async def _probe(self) -> HealthStatus:
        timestamp = datetime.now(tz=UTC).isoformat()
        environment = environment_flags(self.settings)
        missing = missing_supabase_settings(self.settings)
        if missing:
            return HealthStatus(
                state=HealthState.MISCONFIGURED,
                timestamp=timestamp,
                environment=environment,
                error="Supabase environment variables not configured",
                code="MISCONFIGURED",
                missing=missing,
            )

        try:
            store = self.store_factory()
            total = await asyncio.wait_for(
                asyncio.to_thread(store.count_sessions), timeout=self.timeout_seconds
            )
        except Misconfigured as exc:
            logger.warning("Store client rejected configuration")
            return HealthStatus(
                state=HealthState.MISCONFIGURED,
                timestamp=timestamp,
                environment=environment,
                error=exc.message,
                code=exc.code,
                missing=list(exc.extra.get("missing", [])),
            )
        except TimeoutError:
            logger.warning(
                "Health probe timed out", extra={"timeout": self.timeout_seconds}
            )
            return HealthStatus(
                state=HealthState.UNHEALTHY,
                timestamp=timestamp,
                environment=environment,
                error=f"Store did not answer within {self.timeout_seconds}s",
                code="TIMEOUT",
            )
        except StoreError as exc:
            logger.warning("Health probe store error", extra={"code": exc.store_code})
            return HealthStatus(
                state=HealthState.UNHEALTHY,
                timestamp=timestamp,
                environment=environment,
                error=exc.message,
                code=exc.store_code,
            )
        except StoreUnavailable as exc:
            logger.warning("Health probe could not reach the store")
            return HealthStatus(
                state=HealthState.UNHEALTHY,
                timestamp=timestamp,
                environment=environment,
                error=exc.message,
                code=exc.code,
            )

        return HealthStatus(
            state=HealthState.HEALTHY,
            timestamp=timestamp,
            environment=environment,
            database=DatabaseSummary(
                accessible=True,
                total_sessions=total,
                test_query_successful=True,
            ),
        )
