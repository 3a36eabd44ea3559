"""Shared test fixtures."""

import time
from dataclasses import dataclass, field, replace

import pytest

from quiz_sync.config import Settings
from quiz_sync.containers import AppContainer
from quiz_sync.domain.auth_state import Identity
from quiz_sync.domain.errors import Conflict, SessionNotFound, StoreError
from quiz_sync.domain.sessions import SessionRecord, SessionStatus
from quiz_sync.services.auth import AuthContext, AuthProvider, bearer_token
from quiz_sync.services.authorization import EventAuthorizationGate
from quiz_sync.services.feed import InMemorySessionFeed
from quiz_sync.services.health import HealthMonitor
from quiz_sync.services.sessions import SessionStore

HOST_ID = "host-user"
PLAYER_ID = "player-user"
HOST_TOKEN = "host-token"
PLAYER_TOKEN = "player-token"

_WRITE_CALLS = {
    "create_session",
    "update_session",
    "upsert_participant",
    "upsert_answer",
}


@dataclass
class InMemorySessionStore(SessionStore):
    """In-memory session store that records every call."""

    sessions: dict[str, SessionRecord] = field(default_factory=dict)
    participants: dict[tuple[str, str], str] = field(default_factory=dict)
    answers: dict[tuple[str, str, int], str] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    forced_collisions: int = 0
    insert_conflicts: int = 0
    count_error: StoreError | None = None
    count_delay: float = 0.0

    @property
    def writes(self) -> list[str]:
        return [call for call in self.calls if call in _WRITE_CALLS]

    def add(self, session: SessionRecord) -> SessionRecord:
        self.sessions[session.id] = session
        return session

    def get_session(self, session_id: str) -> SessionRecord | None:
        self.calls.append("get_session")
        return self.sessions.get(session_id)

    def session_code_exists(self, code: str) -> bool:
        self.calls.append("session_code_exists")
        if self.forced_collisions > 0:
            self.forced_collisions -= 1
            return True
        return code in self.sessions

    def create_session(self, code: str, host_id: str) -> SessionRecord:
        self.calls.append("create_session")
        if self.insert_conflicts > 0 or code in self.sessions:
            self.insert_conflicts = max(0, self.insert_conflicts - 1)
            raise Conflict("Session code already exists", code="SESSION_EXISTS")
        session = SessionRecord(id=code, host_id=host_id, status=SessionStatus.CREATED)
        self.sessions[code] = session
        return session

    def update_session(
        self,
        session_id: str,
        changes: dict[str, object],
        expected: dict[str, object] | None = None,
    ) -> SessionRecord:
        self.calls.append("update_session")
        current = self.sessions.get(session_id)
        if current is None:
            raise SessionNotFound("Session not found")
        for column, value in (expected or {}).items():
            stored = getattr(current, column)
            if isinstance(stored, SessionStatus):
                stored = stored.value
            if stored != value:
                raise Conflict("Session changed concurrently")
        values = dict(changes)
        if "status" in values:
            values["status"] = SessionStatus(values["status"])
        updated = replace(current, **values)
        self.sessions[session_id] = updated
        return updated

    def upsert_participant(
        self, session_id: str, user_id: str, display_name: str
    ) -> None:
        self.calls.append("upsert_participant")
        self.participants[(session_id, user_id)] = display_name

    def is_participant(self, session_id: str, user_id: str) -> bool:
        self.calls.append("is_participant")
        return (session_id, user_id) in self.participants

    def upsert_answer(
        self, session_id: str, user_id: str, round_number: int, answer: str
    ) -> None:
        self.calls.append("upsert_answer")
        self.answers[(session_id, user_id, round_number)] = answer

    def count_sessions(self) -> int:
        self.calls.append("count_sessions")
        if self.count_delay:
            time.sleep(self.count_delay)
        if self.count_error is not None:
            raise self.count_error
        return len(self.sessions)


@dataclass
class FakeAuthProvider(AuthProvider):
    """Maps bearer tokens to identities; every context shares one store."""

    store: InMemorySessionStore
    identities: dict[str, Identity] = field(default_factory=dict)
    resolved: list[str | None] = field(default_factory=list)

    def resolve(self, authorization: str | None) -> AuthContext:
        self.resolved.append(authorization)
        token = bearer_token(authorization)
        identity = self.identities.get(token) if token else None
        return AuthContext(identity=identity, store=self.store)


def make_session(**overrides: object) -> SessionRecord:
    values: dict[str, object] = {
        "id": "12A#B3C",
        "host_id": HOST_ID,
        "status": SessionStatus.LOBBY,
    }
    values.update(overrides)
    return SessionRecord(**values)  # type: ignore[arg-type]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://abcdefgh.supabase.co",
        supabase_anon_key="anon-key",
        supabase_service_role_key=None,
        _env_file=None,
    )


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def auth_provider(store: InMemorySessionStore) -> FakeAuthProvider:
    return FakeAuthProvider(
        store=store,
        identities={
            HOST_TOKEN: Identity(user_id=HOST_ID),
            PLAYER_TOKEN: Identity(user_id=PLAYER_ID),
        },
    )


@pytest.fixture
def container(
    settings: Settings,
    store: InMemorySessionStore,
    auth_provider: FakeAuthProvider,
) -> AppContainer:
    return AppContainer(
        settings=settings,
        auth_provider_factory=lambda: auth_provider,
        gate=EventAuthorizationGate(),
        feed=InMemorySessionFeed(),
        health_monitor=HealthMonitor(
            settings=settings,
            store_factory=lambda: store,
            timeout_seconds=settings.health_probe_timeout_seconds,
        ),
    )
