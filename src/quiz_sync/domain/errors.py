"""Typed failures raised by the synchronization core."""


class SyncError(Exception):
    """Base error carrying a machine-readable code and an HTTP status."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        extra: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.extra = extra or {}

    def to_body(self) -> dict[str, object]:
        """Return the JSON body used for HTTP responses."""
        return {"error": self.message, "code": self.code, **self.extra}


class Unauthorized(SyncError):
    """Missing or unverifiable caller identity."""

    code = "AUTH_REQUIRED"
    status_code = 401


class Forbidden(SyncError):
    """Verified identity that may not perform the requested action."""

    code = "HOST_ONLY_ACTION"
    status_code = 403


class Gone(SyncError):
    """Request routed through a retired endpoint."""

    code = "ENDPOINT_DEPRECATED"
    status_code = 410


class MethodNotAllowed(SyncError):
    code = "METHOD_NOT_ALLOWED"
    status_code = 405


class InvalidEvent(SyncError):
    """Malformed request body or an event the session cannot accept."""

    code = "INVALID_REQUEST"
    status_code = 400


class SessionNotFound(SyncError):
    code = "SESSION_NOT_FOUND"
    status_code = 404


class Conflict(SyncError):
    """A concurrent write won the race; reconcile and retry the intent."""

    code = "WRITE_CONFLICT"
    status_code = 409


class CorruptSessionState(SyncError):
    """Persisted row violates the video room invariant and needs a repair."""

    code = "CORRUPT_SESSION_STATE"
    status_code = 409


class GenerationExhausted(SyncError):
    code = "GENERATION_EXHAUSTED"
    status_code = 503


class Misconfigured(SyncError):
    """Required configuration is absent, detected before any network call."""

    code = "MISCONFIGURED"
    status_code = 503


class StoreUnavailable(SyncError):
    """Transport level failure talking to the store."""

    code = "STORE_UNAVAILABLE"
    status_code = 503


class StoreError(SyncError):
    """Store rejected the operation; ``store_code`` is the raw store code."""

    code = "STORE_ERROR"
    status_code = 500

    def __init__(self, message: str, *, store_code: str | None = None) -> None:
        super().__init__(message, extra={"storeCode": store_code})
        self.store_code = store_code


class InvariantViolation(SyncError):
    """A write would persist a half-set video room pair."""

    code = "INVARIANT_VIOLATION"
    status_code = 500
