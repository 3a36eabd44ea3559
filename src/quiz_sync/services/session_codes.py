"""Short, human-enterable session codes."""

import logging
import secrets
import string
from dataclasses import dataclass
from typing import Protocol

from quiz_sync.domain.errors import GenerationExhausted

logger = logging.getLogger(__name__)

DIGIT_COUNT = 3
LETTER_COUNT = 3
SYMBOLS = "!@#$%^&*()"
CODE_LENGTH = DIGIT_COUNT + LETTER_COUNT + 1


class SessionCodeLookup(Protocol):
    """Read access needed to check a candidate code."""

    def session_code_exists(self, code: str) -> bool:
        """Return true when a session already uses the code."""


def generate_code() -> str:
    """Return a shuffled mix of 3 digits, 3 letters and one symbol."""
    chars = [secrets.choice(string.digits) for _ in range(DIGIT_COUNT)]
    chars += [secrets.choice(string.ascii_uppercase) for _ in range(LETTER_COUNT)]
    chars.append(secrets.choice(SYMBOLS))
    # Fisher-Yates with the CSPRNG
    for i in range(len(chars) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]
    return "".join(chars)


def is_valid_code(code: str) -> bool:
    """Check length and digit/letter/symbol composition of a code."""
    if len(code) != CODE_LENGTH:
        return False
    digits = sum(char in string.digits for char in code)
    letters = sum(char in string.ascii_uppercase for char in code)
    symbols = sum(char in SYMBOLS for char in code)
    return (digits, letters, symbols) == (DIGIT_COUNT, LETTER_COUNT, 1)


@dataclass
class SessionCodeGenerator:
    """Produces codes not yet used by any stored session."""

    lookup: SessionCodeLookup
    max_attempts: int = 10

    def generate(self) -> str:
        """Return an unused code or raise ``GenerationExhausted``."""
        for attempt in range(1, self.max_attempts + 1):
            candidate = generate_code()
            if not self.lookup.session_code_exists(candidate):
                return candidate
            logger.info(
                "Session code collision, retrying",
                extra={"attempt": attempt, "max_attempts": self.max_attempts},
            )
        raise GenerationExhausted(
            f"No free session code after {self.max_attempts} attempts",
            extra={"attempts": self.max_attempts},
        )
