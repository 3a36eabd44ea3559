"""Domain models for quiz sessions."""

from dataclasses import dataclass
from enum import StrEnum


class SessionStatus(StrEnum):
    """Lifecycle stage of a session, in order."""

    CREATED = "created"
    LOBBY = "lobby"
    ACTIVE = "active"
    FINISHED = "finished"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = list(SessionStatus)


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted session row."""

    id: str
    host_id: str
    status: SessionStatus
    current_round: int = 0
    video_room_created: bool = False
    video_room_url: str | None = None
    updated_at: str | None = None

    @property
    def video_room_consistent(self) -> bool:
        """Return true when the url is set exactly when the room is created."""
        return self.video_room_created == (self.video_room_url is not None)

    def material_fields(self) -> tuple[object, ...]:
        """Fields whose change is worth re-rendering for."""
        return (
            self.host_id,
            self.status,
            self.current_round,
            self.video_room_created,
            self.video_room_url,
        )

    def summary(self) -> dict[str, object]:
        """Client-facing summary of the session."""
        return {
            "id": self.id,
            "hostId": self.host_id,
            "status": self.status.value,
            "currentRound": self.current_round,
            "videoRoomCreated": self.video_room_created,
            "videoRoomUrl": self.video_room_url,
        }


@dataclass(frozen=True)
class ReconcileResult:
    """Fresh authoritative session plus whether it differed from the cache."""

    session: SessionRecord
    drift_corrected: bool
