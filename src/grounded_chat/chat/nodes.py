"""Graph nodes — each method is one step of a chat turn.

Node contract
-------------
* Accepts the full :class:`TurnState` dict.
* Returns a *partial* dict with **only the keys that changed**.
* Never raises for secondary failures: history and context lookups
  degrade to empty values, generation failures to a canned reply.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from grounded_chat.chat.state import TurnOutcome, TurnState
from grounded_chat.config import settings
from grounded_chat.errors import EmptyResponseError, GatewayError, PersistenceError
from grounded_chat.llm.prompts import build_turn_prompt

if TYPE_CHECKING:
    from grounded_chat.llm.gateway import LLMGateway
    from grounded_chat.retrieval.ranker import RetrievalRanker
    from grounded_chat.store.base import ChatStore

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm sorry, I encountered an error while processing your request."
EMPTY_REPLY = "I received an empty or non-text response, please try rephrasing your question."


class TurnNodes:
    """Bound node callables sharing the turn's collaborators.

    Parameters
    ----------
    store:
        Source of conversation history.
    ranker:
        Produces the context block for the query.
    gateway:
        Chat model access.
    history_size:
        Maximum number of prior messages included in the prompt.
    """

    def __init__(
        self,
        store: ChatStore,
        ranker: RetrievalRanker,
        gateway: LLMGateway,
        *,
        history_size: int = settings.history_size,
    ) -> None:
        self._store = store
        self._ranker = ranker
        self._gateway = gateway
        self.history_size = history_size

    # ── 1. LOAD HISTORY ───────────────────────────────────────────────

    def load_history(self, state: TurnState) -> dict[str, Any]:
        """Fetch the most recent prior messages, oldest first."""
        chat_id = state["chat_id"]
        try:
            # One extra row: the inbound message is already persisted
            recent = self._store.recent_messages(chat_id, self.history_size + 1)
        except PersistenceError:
            logger.warning("Error getting chat history for chat %s. Proceeding without history.", chat_id, exc_info=True)
            return {"history": []}

        prior = [m for m in recent if m.id != state["inbound_message_id"]][: self.history_size]
        prior.reverse()
        return {"history": prior}

    # ── 2. RETRIEVE CONTEXT ───────────────────────────────────────────

    def retrieve_context(self, state: TurnState) -> dict[str, Any]:
        try:
            context = self._ranker.get_relevant_context(state["query"])
        except Exception:
            logger.warning("Failed to get relevant context, proceeding without it", exc_info=True)
            context = ""
        return {"context": context}

    # ── 3. BUILD PROMPT ───────────────────────────────────────────────

    def build_prompt(self, state: TurnState) -> dict[str, Any]:
        prompt = build_turn_prompt(state.get("history", []), state["query"], state.get("context", ""))
        return {"prompt": prompt}

    # ── 4. GENERATE ───────────────────────────────────────────────────

    def generate(self, state: TurnState) -> dict[str, Any]:
        """Call the chat model, substituting a canned reply on failure."""
        try:
            answer = self._gateway.complete(state["prompt"])
        except EmptyResponseError:
            logger.warning("Model response for chat %s was empty", state["chat_id"])
            return {"answer": EMPTY_REPLY, "outcome": TurnOutcome.EMPTY_RESPONSE}
        except GatewayError:
            logger.exception("Error generating model response for chat %s", state["chat_id"])
            return {"answer": FALLBACK_REPLY, "outcome": TurnOutcome.GATEWAY_ERROR}
        return {"answer": answer, "outcome": TurnOutcome.ANSWERED}
