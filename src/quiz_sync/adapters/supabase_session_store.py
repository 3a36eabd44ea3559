"""Supabase-backed session store."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx
from supabase import Client, PostgrestAPIError

from quiz_sync.domain.errors import (
    Conflict,
    SessionNotFound,
    StoreError,
    StoreUnavailable,
)
from quiz_sync.domain.sessions import SessionRecord, SessionStatus
from quiz_sync.services.sessions import SessionStore

logger = logging.getLogger(__name__)

_SESSION_COLUMNS = (
    "id, host_id, status, current_round, video_room_created, video_room_url, "
    "updated_at"
)
UNIQUE_VIOLATION = "23505"


@dataclass
class SupabaseSessionStore(SessionStore):
    """Supabase implementation for sessions, roster and answers."""

    client: Client
    sessions_table: str = "sessions"
    participants_table: str = "session_participants"
    answers_table: str = "session_answers"

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by code, if present."""
        response = _execute(
            self.client.table(self.sessions_table)
            .select(_SESSION_COLUMNS)
            .eq("id", session_id)
            .limit(1)
        )
        if not response.data:
            return None
        return _to_record(response.data[0])

    def session_code_exists(self, code: str) -> bool:
        """Return true when a session already uses the code."""
        response = _execute(
            self.client.table(self.sessions_table).select("id").eq("id", code).limit(1)
        )
        return bool(response.data)

    def create_session(self, code: str, host_id: str) -> SessionRecord:
        """Insert a session row and return it."""
        response = _execute(
            self.client.table(self.sessions_table).insert(
                {
                    "id": code,
                    "host_id": host_id,
                    "status": SessionStatus.CREATED.value,
                    "current_round": 0,
                    "video_room_created": False,
                    "video_room_url": None,
                }
            )
        )
        if not response.data:
            raise StoreError("Failed to create session")
        return _to_record(response.data[0])

    def update_session(
        self,
        session_id: str,
        changes: dict[str, object],
        expected: dict[str, object] | None = None,
    ) -> SessionRecord:
        """Update the row in one statement, guarded by ``expected`` values."""
        query = (
            self.client.table(self.sessions_table)
            .update({**changes, "updated_at": datetime.now(tz=UTC).isoformat()})
            .eq("id", session_id)
        )
        for column, value in (expected or {}).items():
            if value is None:
                query = query.is_(column, "null")
            else:
                query = query.eq(column, value)
        response = _execute(query)
        if not response.data:
            if expected:
                raise Conflict(
                    "Session changed concurrently; reconcile and retry",
                    extra={"sessionId": session_id},
                )
            raise SessionNotFound("Session not found", extra={"sessionId": session_id})
        return _to_record(response.data[0])

    def upsert_participant(
        self, session_id: str, user_id: str, display_name: str
    ) -> None:
        """Add or refresh a roster entry."""
        _execute(
            self.client.table(self.participants_table).upsert(
                {
                    "session_id": session_id,
                    "user_id": user_id,
                    "display_name": display_name,
                    "joined_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="session_id,user_id",
            )
        )

    def is_participant(self, session_id: str, user_id: str) -> bool:
        """Return true when the user is on the session roster."""
        response = _execute(
            self.client.table(self.participants_table)
            .select("user_id")
            .eq("session_id", session_id)
            .eq("user_id", user_id)
            .limit(1)
        )
        return bool(response.data)

    def upsert_answer(
        self, session_id: str, user_id: str, round_number: int, answer: str
    ) -> None:
        """Record one answer per participant and round."""
        _execute(
            self.client.table(self.answers_table).upsert(
                {
                    "session_id": session_id,
                    "user_id": user_id,
                    "round": round_number,
                    "answer": answer,
                },
                on_conflict="session_id,user_id,round",
            )
        )

    def count_sessions(self) -> int:
        """Return the number of sessions visible to the caller."""
        response = _execute(
            self.client.table(self.sessions_table)
            .select("id", count="exact")
            .limit(1)
        )
        return response.count or 0


def _execute(query: Any) -> Any:
    """Run a PostgREST query, translating failures into domain errors."""
    try:
        return query.execute()
    except PostgrestAPIError as exc:
        if exc.code == UNIQUE_VIOLATION:
            raise Conflict(
                "Session code already exists", code="SESSION_EXISTS"
            ) from exc
        logger.warning(
            "Store rejected query",
            extra={"store_code": exc.code, "store_message": exc.message},
        )
        raise StoreError(exc.message or "Store error", store_code=exc.code) from exc
    except httpx.HTTPError as exc:
        logger.warning("Store unreachable", extra={"error": str(exc)})
        raise StoreUnavailable("Store unreachable") from exc


def _to_record(row: dict[str, Any]) -> SessionRecord:
    return SessionRecord(
        id=row["id"],
        host_id=row["host_id"],
        status=SessionStatus(row["status"]),
        current_round=int(row.get("current_round") or 0),
        video_room_created=bool(row.get("video_room_created")),
        video_room_url=row.get("video_room_url"),
        updated_at=row.get("updated_at"),
    )
