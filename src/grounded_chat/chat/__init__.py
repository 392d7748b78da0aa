"""
Chat — conversation orchestration.

This module contains **zero** HTTP dependencies. It wires retrieval, the
LLM gateway and persistence into a per-turn LangGraph workflow that can
be tested locally with fake models and a throwaway SQLite file.

Public API
----------
- :class:`ChatService` — create chats, post messages, record feedback.
- :class:`TitleScheduler` — background title derivation.
- :func:`build_turn_graph` — compile the per-turn workflow.
- :data:`FALLBACK_REPLY` / :data:`EMPTY_REPLY` — canned replies.
"""

from grounded_chat.chat.graph import build_turn_graph, create_initial_turn_state
from grounded_chat.chat.nodes import EMPTY_REPLY, FALLBACK_REPLY, TurnNodes
from grounded_chat.chat.service import ChatService
from grounded_chat.chat.state import TurnOutcome, TurnState
from grounded_chat.chat.titles import TitleScheduler

__all__ = [
    "EMPTY_REPLY",
    "FALLBACK_REPLY",
    "ChatService",
    "TitleScheduler",
    "TurnNodes",
    "TurnOutcome",
    "TurnState",
    "build_turn_graph",
    "create_initial_turn_state",
]
