"""
Store — persistence of chats, messages and embedded chunks.

Public surface
--------------
- :class:`ChatStore` — abstract backend.
- :class:`SQLChatStore` — default SQLAlchemy backend (lazy import).
- :class:`Chat`, :class:`Message`, :class:`Sender` — data models.
"""

from grounded_chat.store.base import ChatStore
from grounded_chat.store.models import Chat, Message, Sender

__all__ = [
    "Chat",
    "ChatStore",
    "Message",
    "SQLChatStore",
    "Sender",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import SQLChatStore to avoid pulling in SQLAlchemy at import time."""
    if name == "SQLChatStore":
        from grounded_chat.store.sql_store import SQLChatStore

        return SQLChatStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
