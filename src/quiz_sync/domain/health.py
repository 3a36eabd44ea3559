"""Health probe results."""

from dataclasses import dataclass, field
from enum import StrEnum


class HealthState(StrEnum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    MISCONFIGURED = "misconfigured"


@dataclass(frozen=True)
class DatabaseSummary:
    """What the probe could see of the store."""

    accessible: bool
    total_sessions: int
    test_query_successful: bool


@dataclass(frozen=True)
class HealthStatus:
    """Outcome of a single probe; recomputed every time, never stored."""

    state: HealthState
    timestamp: str
    environment: dict[str, bool]
    database: DatabaseSummary | None = None
    error: str | None = None
    code: str | None = None
    missing: list[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return self.state is HealthState.HEALTHY

    def to_body(self) -> dict[str, object]:
        """Return the HealthCheckResult JSON body."""
        body: dict[str, object] = {
            "status": self.state.value,
            "healthy": self.healthy,
            "timestamp": self.timestamp,
            "environment": self.environment,
        }
        if self.database is not None:
            body["database"] = {
                "accessible": self.database.accessible,
                "total_sessions": self.database.total_sessions,
                "test_query_successful": self.database.test_query_successful,
            }
        if self.error is not None:
            body["error"] = self.error
        if self.code is not None:
            body["code"] = self.code
        if self.missing:
            body["missing"] = self.missing
        return body
