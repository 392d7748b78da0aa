"""Domain models for chats and messages."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class Sender(str, Enum):
    """Author of a message."""

    USER = "user"
    MODEL = "model"


class Chat(BaseModel):
    """A conversation owned by one user.

    Attributes
    ----------
    id:
        Opaque unique token (uuid4 string).
    owner:
        Identifier of the user that owns the chat.
    title:
        Short summary derived in the background; ``None`` until then.
    created_at:
        UTC creation time.
    """

    id: str
    owner: str
    title: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_title(self) -> bool:
        return bool(self.title and self.title.strip())


class Message(BaseModel):
    """One append-only entry of a chat."""

    id: str
    chat_id: str
    sender: Sender
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    negative_feedback: bool = False
