"""Tests for the game-event authorization gate."""

import pytest

from quiz_sync.domain.auth_state import Identity
from quiz_sync.domain.errors import (
    Forbidden,
    Gone,
    InvalidEvent,
    MethodNotAllowed,
    SessionNotFound,
    Unauthorized,
)
from quiz_sync.domain.events import (
    HOST_ONLY,
    PARTICIPANT_ALLOWED,
    ActorRole,
    EndGamePayload,
    EventKind,
    GameEvent,
    JoinPayload,
    parse_payload,
)
from quiz_sync.services.auth import AuthContext
from quiz_sync.services.authorization import (
    MIGRATION_GUIDE,
    EventAuthorizationGate,
    EventChannel,
    EventRequest,
    check_role,
)
from tests.conftest import HOST_ID, PLAYER_ID, InMemorySessionStore, make_session

SESSION_ID = "12A#B3C"

_SAMPLE_PAYLOADS: dict[EventKind, dict[str, object]] = {
    EventKind.JOIN: {"display_name": "Ada"},
    EventKind.ANSWER: {"round": 1, "answer": "42"},
    EventKind.ADVANCE_ROUND: {"round": 1},
    EventKind.SET_STATUS: {"status": "active"},
    EventKind.END_GAME: {},
    EventKind.OPEN_VIDEO_ROOM: {"room_url": "https://video.example.test/room"},
    EventKind.CLOSE_VIDEO_ROOM: {},
    EventKind.REPAIR_VIDEO_ROOM: {},
}


def _context(store: InMemorySessionStore, user_id: str | None) -> AuthContext:
    identity = Identity(user_id=user_id) if user_id else None
    return AuthContext(identity=identity, store=store)


def _request(kind: object, payload: object = None, **overrides: object) -> EventRequest:
    body: dict[str, object] = {"sessionId": SESSION_ID, "kind": kind}
    if payload is not None:
        body["payload"] = payload
    values: dict[str, object] = {"method": "POST", "body": body}
    values.update(overrides)
    return EventRequest(**values)  # type: ignore[arg-type]


def test_role_table_partitions_event_kinds() -> None:
    assert HOST_ONLY | PARTICIPANT_ALLOWED == set(EventKind)
    assert not HOST_ONLY & PARTICIPANT_ALLOWED


@pytest.mark.parametrize("kind", sorted(HOST_ONLY))
def test_check_role_rejects_participant_for_host_only_kinds(kind: EventKind) -> None:
    event = GameEvent(
        session_id=SESSION_ID,
        actor_id=PLAYER_ID,
        actor_role=ActorRole.PARTICIPANT,
        payload=parse_payload(kind.value, _SAMPLE_PAYLOADS[kind]),
    )

    with pytest.raises(Forbidden) as exc_info:
        check_role(event)

    assert exc_info.value.code == "HOST_ONLY_ACTION"


def test_check_role_allows_host_and_participant_kinds() -> None:
    check_role(
        GameEvent(SESSION_ID, HOST_ID, ActorRole.HOST, EndGamePayload())
    )
    check_role(
        GameEvent(
            SESSION_ID, PLAYER_ID, ActorRole.PARTICIPANT, JoinPayload(display_name="Bo")
        )
    )


@pytest.mark.parametrize("kind", sorted(HOST_ONLY))
def test_participant_host_only_event_is_forbidden_without_writes(
    kind: EventKind,
) -> None:
    store = InMemorySessionStore()
    store.add(make_session(id=SESSION_ID))

    gate = EventAuthorizationGate()
    with pytest.raises(Forbidden):
        gate.authorize(
            _request(kind.value, _SAMPLE_PAYLOADS[kind]), _context(store, PLAYER_ID)
        )

    assert store.writes == []


def test_host_event_is_authorized_with_server_side_role() -> None:
    store = InMemorySessionStore()
    store.add(make_session(id=SESSION_ID))

    authorized = EventAuthorizationGate().authorize(
        _request("end_game"), _context(store, HOST_ID)
    )

    assert authorized.event.actor_role is ActorRole.HOST
    assert authorized.event.actor_id == HOST_ID
    assert authorized.store is store


def test_client_supplied_role_is_ignored() -> None:
    store = InMemorySessionStore()
    store.add(make_session(id=SESSION_ID))
    request = EventRequest(
        method="POST",
        body={
            "sessionId": SESSION_ID,
            "kind": "end_game",
            "actorRole": "host",
            "hostId": PLAYER_ID,
        },
    )

    with pytest.raises(Forbidden):
        EventAuthorizationGate().authorize(request, _context(store, PLAYER_ID))


def test_participant_join_is_authorized() -> None:
    store = InMemorySessionStore()
    store.add(make_session(id=SESSION_ID))

    authorized = EventAuthorizationGate().authorize(
        _request("join", {"display_name": "Bo"}), _context(store, PLAYER_ID)
    )

    assert authorized.event.actor_role is ActorRole.PARTICIPANT
    assert authorized.event.kind is EventKind.JOIN


@pytest.mark.parametrize(
    "body", [None, {}, {"sessionId": SESSION_ID, "kind": "end_game"}, {"x": 1}]
)
def test_deprecated_channel_always_gone(body: dict[str, object] | None) -> None:
    store = InMemorySessionStore()
    store.add(make_session(id=SESSION_ID))
    request = EventRequest(method="POST", channel=EventChannel.DEPRECATED, body=body)

    with pytest.raises(Gone) as exc_info:
        EventAuthorizationGate().authorize(request, _context(store, HOST_ID))

    body_json = exc_info.value.to_body()
    assert exc_info.value.status_code == 410
    assert body_json["code"] == "ENDPOINT_DEPRECATED"
    assert body_json["migrationGuide"] == MIGRATION_GUIDE
    assert store.calls == []


def test_deprecated_channel_checked_before_identity() -> None:
    store = InMemorySessionStore()
    request = EventRequest(method="GET", channel=EventChannel.DEPRECATED)

    with pytest.raises(Gone):
        EventAuthorizationGate().authorize(request, _context(store, None))


def test_non_post_method_rejected() -> None:
    store = InMemorySessionStore()

    with pytest.raises(MethodNotAllowed):
        EventAuthorizationGate().authorize(
            _request("end_game", method="GET"), _context(store, HOST_ID)
        )


def test_missing_identity_rejected_before_body_checks() -> None:
    store = InMemorySessionStore()

    with pytest.raises(Unauthorized) as exc_info:
        EventAuthorizationGate().authorize(
            EventRequest(method="POST", body=None), _context(store, None)
        )

    assert exc_info.value.status_code == 401
    assert store.calls == []


def test_unparseable_body_rejected() -> None:
    store = InMemorySessionStore()

    with pytest.raises(InvalidEvent) as exc_info:
        EventAuthorizationGate().authorize(
            EventRequest(method="POST", body=None), _context(store, HOST_ID)
        )

    assert exc_info.value.code == "INVALID_JSON"


@pytest.mark.parametrize(
    "body",
    [
        {"kind": "end_game"},
        {"sessionId": "", "kind": "end_game"},
        {"sessionId": SESSION_ID},
    ],
)
def test_missing_required_fields_rejected(body: dict[str, object]) -> None:
    store = InMemorySessionStore()

    with pytest.raises(InvalidEvent):
        EventAuthorizationGate().authorize(
            EventRequest(method="POST", body=body), _context(store, HOST_ID)
        )

    assert store.calls == []


@pytest.mark.parametrize(
    ("kind", "payload"),
    [
        ("teleport", {}),
        ("advance_round", {"round": -1}),
        ("answer", {"round": 1}),
        ("join", {"display_name": "Bo", "role": "host"}),
        ("end_game", "now"),
    ],
)
def test_invalid_payload_rejected(kind: str, payload: object) -> None:
    store = InMemorySessionStore()
    store.add(make_session(id=SESSION_ID))

    with pytest.raises(InvalidEvent):
        EventAuthorizationGate().authorize(
            _request(kind, payload), _context(store, HOST_ID)
        )

    assert store.writes == []


def test_unknown_session_rejected() -> None:
    store = InMemorySessionStore()

    with pytest.raises(SessionNotFound):
        EventAuthorizationGate().authorize(
            _request("end_game"), _context(store, HOST_ID)
        )
