"""LangGraph graph definition — the retrieval-grounded chat turn.

Graph topology::

      ┌──────────────┐
      │ load_history  │   ← most recent prior messages
      └──────┬───────┘
             ▼
      ┌──────────────────┐
      │ retrieve_context  │   ← ranked chunks above the threshold
      └──────┬───────────┘
             ▼
      ┌──────────────┐
      │ build_prompt  │   ← system + history + context/question
      └──────┬───────┘
             ▼
      ┌──────────────┐
      │   generate    │   ← completion or canned fallback
      └──────┬───────┘
             ▼
          [ END ]

Steps run strictly in sequence: generation depends on the retrieved
context.
"""

from __future__ import annotations

from typing import Any

from langgraph.graph import END, StateGraph

from grounded_chat.chat.nodes import TurnNodes
from grounded_chat.chat.state import TurnOutcome, TurnState


def build_turn_graph(nodes: TurnNodes) -> Any:
    """Construct and return the compiled turn workflow."""
    workflow = StateGraph(TurnState)

    # -- Nodes ---------------------------------------------------------------
    workflow.add_node("load_history", nodes.load_history)
    workflow.add_node("retrieve_context", nodes.retrieve_context)
    workflow.add_node("build_prompt", nodes.build_prompt)
    workflow.add_node("generate", nodes.generate)

    # -- Edges ---------------------------------------------------------------
    workflow.set_entry_point("load_history")
    workflow.add_edge("load_history", "retrieve_context")
    workflow.add_edge("retrieve_context", "build_prompt")
    workflow.add_edge("build_prompt", "generate")
    workflow.add_edge("generate", END)

    return workflow.compile()


def create_initial_turn_state(chat_id: str, owner: str, query: str, inbound_message_id: str) -> dict[str, Any]:
    """Build the initial state dict for ``graph.invoke()``."""
    return {
        "chat_id": chat_id,
        "owner": owner,
        "query": query,
        "inbound_message_id": inbound_message_id,
        "history": [],
        "context": "",
        "prompt": [],
        "answer": "",
        "outcome": TurnOutcome.ANSWERED,
    }
