"""Applies authorized events and reconciles cached sessions with the store."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from quiz_sync.domain.errors import (
    CorruptSessionState,
    Forbidden,
    InvalidEvent,
    InvariantViolation,
    SessionNotFound,
)
from quiz_sync.domain.events import (
    AdvanceRoundPayload,
    AnswerPayload,
    CloseVideoRoomPayload,
    EndGamePayload,
    JoinPayload,
    OpenVideoRoomPayload,
    RepairVideoRoomPayload,
    SetStatusPayload,
)
from quiz_sync.domain.sessions import ReconcileResult, SessionRecord, SessionStatus
from quiz_sync.services.authorization import AuthorizedEvent, check_role
from quiz_sync.services.sessions import SessionStore

logger = logging.getLogger(__name__)

_VIDEO_ROOM_FIELDS = {"video_room_created", "video_room_url"}


def video_room_changes(room_url: str | None) -> dict[str, object]:
    """Both halves of the video room pair, for a single write."""
    return {"video_room_created": room_url is not None, "video_room_url": room_url}


def check_video_room_changes(changes: dict[str, object]) -> None:
    """Refuse change sets that would leave the video room pair half-set."""
    touched = _VIDEO_ROOM_FIELDS & changes.keys()
    if not touched:
        return
    if touched != _VIDEO_ROOM_FIELDS:
        raise InvariantViolation(
            "video_room_created and video_room_url must be written together",
            extra={"fields": sorted(touched)},
        )
    if bool(changes["video_room_created"]) != (changes["video_room_url"] is not None):
        raise InvariantViolation("video_room_url must be set iff the room is created")


@dataclass
class SessionReconciler:
    """Owns every session write and every cache refresh on the client side."""

    store: SessionStore
    max_attempts: int = 3
    notify: Callable[[SessionRecord], None] | None = None

    def apply(self, authorized: AuthorizedEvent) -> SessionRecord:  # noqa: PLR0911
        """Perform the mutation implied by the event and return the session."""
        event = authorized.event
        check_role(event)
        store = authorized.store
        current = store.get_session(event.session_id)
        if current is None:
            raise SessionNotFound(
                "Session not found", extra={"sessionId": event.session_id}
            )
        payload = event.payload
        logger.info(
            "Applying game event",
            extra={
                "session_id": event.session_id,
                "kind": event.kind.value,
                "actor_role": event.actor_role.value,
            },
        )

        if isinstance(payload, JoinPayload):
            store.upsert_participant(
                event.session_id, event.actor_id, payload.display_name
            )
            return current
        if isinstance(payload, AnswerPayload):
            if not store.is_participant(event.session_id, event.actor_id):
                raise Forbidden(
                    "Only players who joined the session can answer",
                    code="PLAYER_ONLY_ACTION",
                )
            if current.status is not SessionStatus.ACTIVE:
                raise InvalidEvent(
                    "Answers are only accepted while the game is active",
                    code="GAME_NOT_ACTIVE",
                )
            if payload.round != current.current_round:
                raise InvalidEvent(
                    "Answer is not for the current round",
                    code="STALE_ROUND",
                    extra={"currentRound": current.current_round},
                )
            store.upsert_answer(
                event.session_id, event.actor_id, payload.round, payload.answer
            )
            return current
        if isinstance(payload, AdvanceRoundPayload):
            if payload.round == current.current_round:
                return current
            if payload.round < current.current_round:
                raise InvalidEvent(
                    "Round target is behind the current round",
                    code="INVALID_ROUND_TARGET",
                    extra={"currentRound": current.current_round},
                )
            return self._write(
                store,
                current,
                {"current_round": payload.round},
                expected={"current_round": current.current_round},
            )
        if isinstance(payload, SetStatusPayload):
            return self._set_status(store, current, payload.status, payload.force)
        if isinstance(payload, EndGamePayload):
            return self._set_status(store, current, SessionStatus.FINISHED, False)
        if isinstance(payload, OpenVideoRoomPayload):
            already_open = current.video_room_created
            if already_open and current.video_room_url == payload.room_url:
                return current
            return self._write(store, current, video_room_changes(payload.room_url))
        if isinstance(payload, CloseVideoRoomPayload):
            if not current.video_room_created and current.video_room_url is None:
                return current
            return self._write(store, current, video_room_changes(None))
        if isinstance(payload, RepairVideoRoomPayload):
            if current.video_room_consistent:
                return current
            logger.warning(
                "Repairing video room state",
                extra={
                    "session_id": current.id,
                    "video_room_created": current.video_room_created,
                    "has_url": current.video_room_url is not None,
                },
            )
            return self._write(
                store, current, video_room_changes(current.video_room_url)
            )
        raise InvalidEvent(f"Unsupported event kind: {event.kind.value}")

    def reconcile(self, cached: SessionRecord) -> ReconcileResult:
        """Replace ``cached`` with a fresh authoritative read.

        Rows that break the video room invariant are re-read rather than
        patched; after ``max_attempts`` corrupt reads ``CorruptSessionState``
        is raised.
        """
        for attempt in range(1, self.max_attempts + 1):
            fresh = self.store.get_session(cached.id)
            if fresh is None:
                raise SessionNotFound(
                    "Session not found", extra={"sessionId": cached.id}
                )
            if fresh.video_room_consistent:
                drift = fresh.material_fields() != cached.material_fields()
                if drift:
                    logger.info(
                        "Session drift corrected", extra={"session_id": cached.id}
                    )
                return ReconcileResult(session=fresh, drift_corrected=drift)
            logger.warning(
                "Corrupt video room state read, re-fetching",
                extra={"session_id": cached.id, "attempt": attempt},
            )
        raise CorruptSessionState(
            "Session video room state is inconsistent",
            extra={"sessionId": cached.id},
        )

    def _set_status(
        self,
        store: SessionStore,
        current: SessionRecord,
        status: SessionStatus,
        force: bool,
    ) -> SessionRecord:
        if status is current.status:
            return current
        if status.rank < current.status.rank and not force:
            raise InvalidEvent(
                f"Cannot move session from {current.status.value} to {status.value}",
                code="INVALID_STATUS_TRANSITION",
            )
        return self._write(
            store,
            current,
            {"status": status.value},
            expected={"status": current.status.value},
        )

    def _write(
        self,
        store: SessionStore,
        current: SessionRecord,
        changes: dict[str, object],
        expected: dict[str, object] | None = None,
    ) -> SessionRecord:
        check_video_room_changes(changes)
        updated = store.update_session(current.id, changes, expected=expected)
        if self.notify is not None:
            self.notify(updated)
        return updated
