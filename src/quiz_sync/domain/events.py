"""Game events as a closed set of tagged payloads."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from quiz_sync.domain.errors import InvalidEvent
from quiz_sync.domain.sessions import SessionStatus


class ActorRole(StrEnum):
    HOST = "host"
    PARTICIPANT = "participant"


class EventKind(StrEnum):
    """Every mutation a client may request."""

    JOIN = "join"
    ANSWER = "answer"
    ADVANCE_ROUND = "advance_round"
    SET_STATUS = "set_status"
    END_GAME = "end_game"
    OPEN_VIDEO_ROOM = "open_video_room"
    CLOSE_VIDEO_ROOM = "close_video_room"
    REPAIR_VIDEO_ROOM = "repair_video_room"


HOST_ONLY: frozenset[EventKind] = frozenset(
    {
        EventKind.ADVANCE_ROUND,
        EventKind.SET_STATUS,
        EventKind.END_GAME,
        EventKind.OPEN_VIDEO_ROOM,
        EventKind.CLOSE_VIDEO_ROOM,
        EventKind.REPAIR_VIDEO_ROOM,
    }
)
PARTICIPANT_ALLOWED: frozenset[EventKind] = frozenset(
    {EventKind.JOIN, EventKind.ANSWER}
)


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class JoinPayload(_Payload):
    kind: Literal["join"] = "join"
    display_name: str = Field(min_length=1, max_length=40)


class AnswerPayload(_Payload):
    kind: Literal["answer"] = "answer"
    round: int = Field(ge=1)
    answer: str = Field(max_length=500)


class AdvanceRoundPayload(_Payload):
    """Absolute target round, so a retried request lands on the same state."""

    kind: Literal["advance_round"] = "advance_round"
    round: int = Field(ge=0)


class SetStatusPayload(_Payload):
    kind: Literal["set_status"] = "set_status"
    status: SessionStatus
    force: bool = False


class EndGamePayload(_Payload):
    kind: Literal["end_game"] = "end_game"


class OpenVideoRoomPayload(_Payload):
    kind: Literal["open_video_room"] = "open_video_room"
    room_url: str = Field(min_length=1)


class CloseVideoRoomPayload(_Payload):
    kind: Literal["close_video_room"] = "close_video_room"


class RepairVideoRoomPayload(_Payload):
    kind: Literal["repair_video_room"] = "repair_video_room"


EventPayload = Annotated[
    JoinPayload
    | AnswerPayload
    | AdvanceRoundPayload
    | SetStatusPayload
    | EndGamePayload
    | OpenVideoRoomPayload
    | CloseVideoRoomPayload
    | RepairVideoRoomPayload,
    Field(discriminator="kind"),
]

_PAYLOAD_ADAPTER: TypeAdapter[EventPayload] = TypeAdapter(EventPayload)


def parse_payload(kind: object, payload: object) -> EventPayload:
    """Validate a raw kind plus payload mapping into a typed payload."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidEvent("Event payload must be an object")
    try:
        return _PAYLOAD_ADAPTER.validate_python({**payload, "kind": kind})
    except ValidationError as exc:
        details = [
            {"loc": [str(part) for part in error["loc"]], "msg": error["msg"]}
            for error in exc.errors()
        ]
        raise InvalidEvent("Invalid event payload", extra={"details": details}) from exc


@dataclass(frozen=True)
class GameEvent:
    """A request by one actor to mutate one session."""

    session_id: str
    actor_id: str
    actor_role: ActorRole
    payload: EventPayload

    @property
    def kind(self) -> EventKind:
        return EventKind(self.payload.kind)
