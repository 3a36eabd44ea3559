"""Client-side authentication state machine.

Consumers hold the machine itself plus a ``Subscription``; there is no module
level state. Transitions are driven by auth events from the identity provider
(the same event names Supabase Auth emits).
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """A verified caller."""

    user_id: str
    email: str | None = None


class AuthEvent(StrEnum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    SIGNED_OUT = "SIGNED_OUT"


@dataclass(frozen=True)
class Initializing:
    pass


@dataclass(frozen=True)
class Authenticated:
    identity: Identity


@dataclass(frozen=True)
class Anonymous:
    pass


AuthState = Initializing | Authenticated | Anonymous
AuthListener = Callable[[AuthState], None]


@dataclass
class Subscription:
    """Handle returned by ``AuthStateMachine.subscribe``."""

    _machine: "AuthStateMachine"
    _listener: AuthListener
    active: bool = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._machine._listeners.remove(self)


class AuthStateMachine:
    """Tracks ``initializing -> authenticated | anonymous`` transitions."""

    def __init__(self) -> None:
        self._state: AuthState = Initializing()
        self._listeners: list[Subscription] = []

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def identity(self) -> Identity | None:
        if isinstance(self._state, Authenticated):
            return self._state.identity
        return None

    def subscribe(self, listener: AuthListener) -> Subscription:
        """Register a listener called on every state change."""
        subscription = Subscription(_machine=self, _listener=listener)
        self._listeners.append(subscription)
        return subscription

    def handle(self, event: AuthEvent, identity: Identity | None) -> AuthState:
        """Apply one auth event and return the resulting state."""
        if event is AuthEvent.SIGNED_OUT or identity is None:
            next_state: AuthState = Anonymous()
        else:
            next_state = Authenticated(identity)
        if next_state == self._state:
            return self._state
        logger.info(
            "Auth state changed",
            extra={"auth_event": event.value, "state": type(next_state).__name__},
        )
        self._state = next_state
        for subscription in list(self._listeners):
            subscription._listener(next_state)
        return next_state
