"""Turn state definition — shared across all graph nodes.

The state is the *single source of truth* that flows through every node
of the per-turn LangGraph workflow. Persistence of the inbound and
outbound messages happens outside the graph, in
:class:`~grounded_chat.chat.service.ChatService`.
"""

from __future__ import annotations

from enum import Enum
from typing import TypedDict

from langchain_core.messages import BaseMessage

from grounded_chat.store.models import Message


class TurnOutcome(str, Enum):
    """How the reply of a turn was produced."""

    ANSWERED = "answered"
    GATEWAY_ERROR = "gateway_error"
    EMPTY_RESPONSE = "empty_response"


class TurnState(TypedDict):
    """Typed state that flows through the turn graph.

    Attributes
    ----------
    chat_id:
        Chat the turn belongs to.
    owner:
        User that posted the inbound message.
    query:
        Content of the inbound user message.
    inbound_message_id:
        Id of the already-persisted inbound message; excluded from history.
    history:
        Prior messages, oldest first (``load_history``).
    context:
        Retrieved context block, ``""`` when nothing relevant was found.
    prompt:
        Full prompt sent to the chat model (``build_prompt``).
    answer:
        Reply text to persist (``generate``); never a raw gateway error.
    outcome:
        Whether *answer* is a real completion or a canned fallback.
    """

    chat_id: str
    owner: str
    query: str
    inbound_message_id: str
    history: list[Message]
    context: str
    prompt: list[BaseMessage]
    answer: str
    outcome: TurnOutcome
