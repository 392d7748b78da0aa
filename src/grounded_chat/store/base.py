"""Abstract base class for persistence backends.

The chat service, the ranker and the ingestion pipeline only talk to
:class:`ChatStore`; adding a backend (Postgres through another driver, an
HTTP service, …) only requires implementing the abstract methods.
Every method raises :class:`~grounded_chat.errors.PersistenceError` when
the backend fails.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from grounded_chat.retrieval.models import Chunk
from grounded_chat.store.models import Chat, Message, Sender


class ChatStore(ABC):
    """Backend-agnostic persistence interface."""

    # -- chats ----------------------------------------------------------------

    @abstractmethod
    def create_chat(self, owner: str, title: str | None = None) -> Chat:
        """Insert a chat and return it with its generated id and timestamp."""
        ...

    @abstractmethod
    def get_chat(self, chat_id: str, owner: str) -> Chat | None:
        """Return the chat when it exists **and** belongs to *owner*."""
        ...

    @abstractmethod
    def list_chats(self, owner: str) -> list[Chat]:
        """Return the chats of *owner*, newest first."""
        ...

    @abstractmethod
    def set_title(self, chat_id: str, owner: str, title: str, *, only_if_unset: bool = False) -> int:
        """Update the title and return the number of affected rows.

        With *only_if_unset* the update is a compare-and-set that leaves an
        existing non-empty title untouched.
        """
        ...

    # -- messages -------------------------------------------------------------

    @abstractmethod
    def append_message(self, chat_id: str, sender: Sender, content: str) -> Message:
        """Persist a message, assigning its id and timestamp."""
        ...

    @abstractmethod
    def recent_messages(self, chat_id: str, n: int) -> list[Message]:
        """Return the *n* most recent messages, newest first."""
        ...

    @abstractmethod
    def all_messages(self, chat_id: str, limit: int = 100, offset: int = 0) -> list[Message]:
        """Return messages oldest first, paginated."""
        ...

    @abstractmethod
    def set_feedback(self, message_id: str, owner: str, negative: bool) -> int:
        """Flag a message of one of *owner*'s chats; return affected rows."""
        ...

    # -- chunks ---------------------------------------------------------------

    @abstractmethod
    def all_chunks(self) -> list[Chunk]:
        """Return every persisted chunk in insertion order.

        A chunk whose stored embedding cannot be decoded is returned with
        ``embedding=None`` rather than failing the whole load.
        """
        ...

    @abstractmethod
    def clear_chunks(self) -> None:
        """Delete every persisted chunk."""
        ...

    @abstractmethod
    def add_chunk(self, text: str, embedding: Sequence[float]) -> Chunk:
        """Persist one chunk and return it with its id."""
        ...

    # -- optional overrides ---------------------------------------------------

    def replace_chunks(self, chunks: Iterable[Chunk]) -> int:
        """Clear the chunk set and insert *chunks*; return how many were stored.

        Not atomic: a failure midway leaves a partially populated set.
        """
        self.clear_chunks()
        count = 0
        for chunk in chunks:
            self.add_chunk(chunk.text, chunk.embedding or [])
            count += 1
        return count

    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable."""
        return True

    def close(self) -> None:
        """Release backend resources."""
