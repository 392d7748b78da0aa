"""Chat service — drives every chat turn end to end.

Per turn:

1. verify the chat exists and belongs to the caller,
2. persist the inbound user message,
3. run the turn graph (history → context → prompt → generation),
4. persist the model reply,
5. schedule title derivation when the chat is still untitled.

Only the writes of steps 1, 2 and 4 can fail a turn. Everything else
degrades: no history, no context, or a canned reply. Multi-step writes
are not transactional; a failure after step 2 leaves the user message
stored without a reply, which is logged rather than rolled back.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from grounded_chat.chat.graph import build_turn_graph, create_initial_turn_state
from grounded_chat.chat.nodes import TurnNodes
from grounded_chat.config import settings
from grounded_chat.errors import NotFoundError, PersistenceError, ValidationError
from grounded_chat.store.models import Chat, Message, Sender

if TYPE_CHECKING:
    from grounded_chat.chat.titles import TitleScheduler
    from grounded_chat.llm.gateway import LLMGateway
    from grounded_chat.retrieval.ranker import RetrievalRanker
    from grounded_chat.store.base import ChatStore

logger = logging.getLogger(__name__)

DETAILS_PAGE_SIZE = 100
TITLE_SEED_SCAN = 10


class ChatService:
    """Conversation orchestrator.

    Parameters
    ----------
    store:
        Persistence backend for chats and messages.
    ranker:
        Context retrieval for each query.
    gateway:
        Chat model access.
    titles:
        Background title scheduler.
    history_size:
        Prior messages included in each prompt.
    max_message_chars:
        Upper bound on inbound message length.
    """

    def __init__(
        self,
        store: ChatStore,
        ranker: RetrievalRanker,
        gateway: LLMGateway,
        titles: TitleScheduler,
        *,
        history_size: int = settings.history_size,
        max_message_chars: int = settings.max_message_chars,
    ) -> None:
        self._store = store
        self._titles = titles
        self.max_message_chars = max_message_chars
        self._graph = build_turn_graph(TurnNodes(store, ranker, gateway, history_size=history_size))

    # -- public API -----------------------------------------------------------

    def create_chat(self, owner: str, first_message: str | None = None) -> tuple[Chat, list[Message]]:
        """Create a chat, optionally running its first turn.

        Returns the chat and the messages stored during creation. When a
        first message is given, title derivation is always scheduled
        after the exchange.
        """
        _require_owner(owner)
        if first_message is not None and first_message.strip():
            self._validate_content(first_message)
        else:
            first_message = None

        chat = self._store.create_chat(owner)
        if first_message is None:
            return chat, []

        user_msg = self._persist_inbound(chat.id, first_message)
        messages = [user_msg]

        answer = self._run_turn(chat.id, owner, user_msg)
        try:
            messages.append(self._store.append_message(chat.id, Sender.MODEL, answer))
        except PersistenceError:
            logger.exception("Failed to store initial model message for new chat %s", chat.id)

        self._titles.schedule(chat.id, owner, user_msg.content)
        return chat, messages

    def list_chats(self, owner: str) -> list[Chat]:
        _require_owner(owner)
        return self._store.list_chats(owner)

    def get_chat_details(
        self,
        chat_id: str,
        owner: str,
        *,
        limit: int = DETAILS_PAGE_SIZE,
        offset: int = 0,
    ) -> tuple[Chat, list[Message]]:
        """Return a chat and a page of its messages, oldest first."""
        _require_owner(owner)
        if limit <= 0:
            raise ValidationError("limit must be positive")
        if offset < 0:
            raise ValidationError("offset cannot be negative")

        chat = self._require_chat(chat_id, owner)
        return chat, self._store.all_messages(chat_id, limit=limit, offset=offset)

    def post_message(self, chat_id: str, owner: str, content: str) -> Message:
        """Run one turn and return the persisted model reply."""
        _require_owner(owner)
        self._validate_content(content)

        chat = self._require_chat(chat_id, owner)
        user_msg = self._persist_inbound(chat_id, content)

        answer = self._run_turn(chat_id, owner, user_msg)
        try:
            model_msg = self._store.append_message(chat_id, Sender.MODEL, answer)
        except PersistenceError:
            logger.exception("Failed to store model message for chat %s; user message %s has no reply", chat_id, user_msg.id)
            raise

        if not chat.has_title:
            self._schedule_title(chat_id, owner)
        return model_msg

    def set_message_feedback(self, message_id: str, owner: str, negative: bool) -> None:
        _require_owner(owner)
        if self._store.set_feedback(message_id, owner, negative) == 0:
            raise NotFoundError(f"message {message_id} not found")

    # -- internals ------------------------------------------------------------

    def _validate_content(self, content: str) -> None:
        if not content or not content.strip():
            raise ValidationError("message content cannot be empty")
        if len(content) > self.max_message_chars:
            raise ValidationError(f"message content exceeds {self.max_message_chars} characters")

    def _require_chat(self, chat_id: str, owner: str) -> Chat:
        chat = self._store.get_chat(chat_id, owner)
        if chat is None:
            raise NotFoundError(f"chat {chat_id} not found")
        return chat

    def _persist_inbound(self, chat_id: str, content: str) -> Message:
        try:
            return self._store.append_message(chat_id, Sender.USER, content)
        except PersistenceError:
            logger.exception("Failed to store user message for chat %s", chat_id)
            raise

    def _run_turn(self, chat_id: str, owner: str, inbound: Message) -> str:
        state: dict[str, Any] = self._graph.invoke(
            create_initial_turn_state(chat_id, owner, inbound.content, inbound.id)
        )
        logger.info(
            "Turn for chat %s finished (%s, %d history message(s), context %s)",
            chat_id,
            state["outcome"].value,
            len(state["history"]),
            "found" if state["context"] else "empty",
        )
        return state["answer"]

    def _schedule_title(self, chat_id: str, owner: str) -> None:
        """Seed title derivation with the chat's first user message."""
        try:
            messages = self._store.all_messages(chat_id, limit=TITLE_SEED_SCAN, offset=0)
        except PersistenceError:
            logger.warning("Could not load messages to title chat %s", chat_id, exc_info=True)
            return

        seed = next((m.content for m in messages if m.sender == Sender.USER), "")
        if seed:
            self._titles.schedule(chat_id, owner, seed)


def _require_owner(owner: str) -> None:
    if not owner or not owner.strip():
        raise ValidationError("owner is required")
