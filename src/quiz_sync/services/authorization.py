"""Authorization gate for inbound game events."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from quiz_sync.domain.errors import (
    Forbidden,
    Gone,
    InvalidEvent,
    MethodNotAllowed,
    SessionNotFound,
)
from quiz_sync.domain.events import (
    HOST_ONLY,
    ActorRole,
    GameEvent,
    parse_payload,
)
from quiz_sync.services.auth import AuthContext
from quiz_sync.services.sessions import SessionStore

logger = logging.getLogger(__name__)

CURRENT_EVENT_PATH = "/game-event"

MIGRATION_GUIDE: dict[str, object] = {
    "newEndpoint": CURRENT_EVENT_PATH,
    "authenticationRequired": True,
    "securityEnhancements": [
        "Host verification for restricted operations",
        "Participant verification for game participation",
        "Row-level security enforced through the caller's own credentials",
    ],
}


class EventChannel(StrEnum):
    CURRENT = "current"
    DEPRECATED = "deprecated"


@dataclass(frozen=True)
class EventRequest:
    """Raw inbound event request as received by a transport."""

    method: str
    channel: EventChannel = EventChannel.CURRENT
    body: Mapping[str, object] | None = field(default_factory=dict)


@dataclass(frozen=True)
class AuthorizedEvent:
    """An event that passed the gate, with the store it may write through."""

    event: GameEvent
    store: SessionStore


def deprecated_endpoint_error() -> Gone:
    """The fixed rejection for anything sent to the retired endpoint."""
    return Gone(
        "This endpoint has been deprecated",
        extra={
            "message": f"Please use {CURRENT_EVENT_PATH} instead",
            "migrationGuide": MIGRATION_GUIDE,
        },
    )


def check_role(event: GameEvent) -> None:
    """Reject host-only kinds requested by a participant."""
    if event.kind in HOST_ONLY and event.actor_role is not ActorRole.HOST:
        raise Forbidden(
            "Only the session host can perform this action",
            extra={"kind": event.kind.value},
        )


class EventAuthorizationGate:
    """Validates, authenticates and role-checks game events, in that order."""

    def admit(self, request: EventRequest) -> None:
        """Transport checks that need neither identity nor body."""
        if request.channel is EventChannel.DEPRECATED:
            raise deprecated_endpoint_error()
        if request.method.upper() != "POST":
            raise MethodNotAllowed("Method not allowed")

    def authorize(self, request: EventRequest, auth: AuthContext) -> AuthorizedEvent:
        """Return the authorized event or raise the first failing check."""
        self.admit(request)
        identity = auth.require_identity()

        if request.body is None:
            raise InvalidEvent("Invalid JSON in request body", code="INVALID_JSON")
        session_id = request.body.get("sessionId")
        if not isinstance(session_id, str) or not session_id:
            raise InvalidEvent("Missing required fields: sessionId and kind")
        if "kind" not in request.body:
            raise InvalidEvent("Missing required fields: sessionId and kind")
        payload = parse_payload(request.body.get("kind"), request.body.get("payload"))

        session = auth.store.get_session(session_id)
        if session is None:
            raise SessionNotFound("Session not found", extra={"sessionId": session_id})
        is_host = session.host_id == identity.user_id
        role = ActorRole.HOST if is_host else ActorRole.PARTICIPANT
        event = GameEvent(
            session_id=session_id,
            actor_id=identity.user_id,
            actor_role=role,
            payload=payload,
        )
        try:
            check_role(event)
        except Forbidden:
            logger.warning(
                "Rejected host-only event",
                extra={
                    "session_id": session_id,
                    "actor_id": identity.user_id,
                    "kind": event.kind.value,
                },
            )
            raise
        return AuthorizedEvent(event=event, store=auth.store)
