"""Session persistence port and the session creation flow."""

import logging
from dataclasses import dataclass
from typing import Protocol

from quiz_sync.domain.errors import Conflict, GenerationExhausted
from quiz_sync.domain.sessions import SessionRecord
from quiz_sync.services.session_codes import SessionCodeGenerator

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Persistence interface for sessions, scoped to one caller's permissions."""

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by code, if visible to the caller."""

    def session_code_exists(self, code: str) -> bool:
        """Return true when a session already uses the code."""

    def create_session(self, code: str, host_id: str) -> SessionRecord:
        """Insert a new session; raise ``Conflict`` if the code is taken."""

    def update_session(
        self,
        session_id: str,
        changes: dict[str, object],
        expected: dict[str, object] | None = None,
    ) -> SessionRecord:
        """Apply ``changes`` in one statement and return the updated row.

        ``expected`` adds equality guards; when they match no row the update
        raises ``Conflict``.
        """

    def upsert_participant(
        self, session_id: str, user_id: str, display_name: str
    ) -> None:
        """Add or refresh a participant on the roster."""

    def is_participant(self, session_id: str, user_id: str) -> bool:
        """Return true when the user has joined the session."""

    def upsert_answer(
        self, session_id: str, user_id: str, round_number: int, answer: str
    ) -> None:
        """Record a participant's answer for a round."""

    def count_sessions(self) -> int:
        """Return the number of visible sessions."""


@dataclass
class SessionCreator:
    """Creates sessions with a fresh code, letting the store settle races."""

    store: SessionStore
    max_attempts: int = 10

    def create(self, host_id: str) -> SessionRecord:
        """Insert a session hosted by ``host_id`` and return it."""
        generator = SessionCodeGenerator(self.store, max_attempts=self.max_attempts)
        for attempt in range(1, self.max_attempts + 1):
            code = generator.generate()
            try:
                session = self.store.create_session(code, host_id)
            except Conflict:
                # another creator claimed the code between the check and insert
                logger.warning(
                    "Session code claimed concurrently",
                    extra={"attempt": attempt},
                )
                continue
            logger.info(
                "Session created", extra={"session_id": session.id, "host_id": host_id}
            )
            return session
        raise GenerationExhausted(
            f"Could not claim a session code after {self.max_attempts} attempts",
            extra={"attempts": self.max_attempts},
        )
