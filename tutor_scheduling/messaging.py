"""
Conversation collaborator.

Confirming a booking opens a chat thread between the student and the
tutor. The scheduling core only needs the thread to exist; delivery and
storage of messages belong to the messaging service behind this interface.
"""

import logging
import threading
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class ConversationGateway(ABC):
    """Ensures a student/tutor conversation exists."""

    @abstractmethod
    def ensure_conversation(self, student_id: int, tutor_user_id: int) -> None:
        """Create the conversation if missing. Must be idempotent."""


class InMemoryConversationDirectory(ConversationGateway):
    """Records conversation pairs in memory for tests and the console demo."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pairs: set[tuple[int, int]] = set()

    def ensure_conversation(self, student_id: int, tutor_user_id: int) -> None:
        with self._lock:
            pair = (student_id, tutor_user_id)
            if pair in self._pairs:
                return
            self._pairs.add(pair)
        logger.info("Conversation opened between student %s and tutor user %s", student_id, tutor_user_id)

    def has_conversation(self, student_id: int, tutor_user_id: int) -> bool:
        with self._lock:
            return (student_id, tutor_user_id) in self._pairs

    @property
    def pairs(self) -> set[tuple[int, int]]:
        with self._lock:
            return set(self._pairs)

    def reset(self) -> None:
        """Forget all conversations. Used by test fixtures for isolation."""
        with self._lock:
            self._pairs.clear()
