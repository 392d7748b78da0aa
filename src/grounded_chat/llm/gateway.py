"""LLM gateway — the only place that calls embedding and chat models.

Every failure of the underlying client (transport, quota, timeout) is
re-raised as :class:`~grounded_chat.errors.GatewayError`; a successful
call that yields no usable text raises
:class:`~grounded_chat.errors.EmptyResponseError` so callers can pick a
different fallback.

Dependency-injection note
-------------------------
Models are created lazily from the global settings unless passed in;
tests hand in LangChain's fake chat / embedding models instead.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from langchain_core.messages import HumanMessage

from grounded_chat.errors import EmptyResponseError, GatewayError
from grounded_chat.llm.prompts import build_title_prompt

if TYPE_CHECKING:
    from collections.abc import Sequence

    from langchain_core.embeddings import Embeddings
    from langchain_core.language_models import BaseChatModel
    from langchain_core.messages import BaseMessage

logger = logging.getLogger(__name__)

TITLE_STRIP_CHARS = "\"'\n\r\t ."


def message_text(message: Any) -> str:
    """Concatenate the text parts of a chat-model response."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content

    parts: list[str] = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
        else:
            logger.warning("Model response part was not text: %r", type(part).__name__)
    return "".join(parts)


def clean_title(raw: str) -> str:
    """Strip surrounding quotes, whitespace and trailing periods."""
    return raw.strip(TITLE_STRIP_CHARS)


class LLMGateway:
    """Embedding + generation facade.

    Parameters
    ----------
    chat_model:
        Model used for chat completions.
    title_model:
        Model used for title summaries (defaults to a short, low-token
        variant of the chat model).
    embeddings:
        Embedding model used for chunks and queries.
    """

    def __init__(
        self,
        chat_model: BaseChatModel | None = None,
        *,
        title_model: BaseChatModel | None = None,
        embeddings: Embeddings | None = None,
    ) -> None:
        self._chat_model = chat_model
        self._title_model = title_model
        self._embeddings = embeddings

    # -- lazy clients ---------------------------------------------------------

    @property
    def chat_model(self) -> BaseChatModel:
        if self._chat_model is None:
            from grounded_chat.llm.client import get_chat_model

            self._chat_model = get_chat_model()
        return self._chat_model

    @property
    def title_model(self) -> BaseChatModel:
        if self._title_model is None:
            if self._chat_model is not None:
                self._title_model = self._chat_model
            else:
                from grounded_chat.llm.client import get_title_model

                self._title_model = get_title_model()
        return self._title_model

    @property
    def embeddings(self) -> Embeddings:
        if self._embeddings is None:
            from grounded_chat.llm.client import get_embeddings

            self._embeddings = get_embeddings()
        return self._embeddings

    # -- public API -----------------------------------------------------------

    def embed(self, text: str) -> list[float]:
        """Return the embedding of *text*."""
        try:
            vector = self.embeddings.embed_query(text)
        except Exception as exc:
            raise GatewayError(f"embedding request failed: {exc}") from exc

        if not vector:
            raise GatewayError("no embedding data received")

        values = [float(v) for v in vector]
        if not all(math.isfinite(v) for v in values):
            raise GatewayError("embedding contains NaN or infinite values")
        return values

    def complete(self, messages: Sequence[BaseMessage]) -> str:
        """Run a chat completion over *messages* and return its text.

        The last message must be the user's turn.
        """
        if not messages:
            raise GatewayError("prompt is empty, cannot run chat completion")
        if not isinstance(messages[-1], HumanMessage):
            raise GatewayError("last prompt message is not from the user, cannot run chat completion")

        try:
            response = self.chat_model.invoke(list(messages))
        except Exception as exc:
            raise GatewayError(f"chat completion failed: {exc}") from exc

        answer = message_text(response)
        if not answer.strip():
            raise EmptyResponseError("chat completion returned no text")
        return answer

    def summarize_title(self, seed: str) -> str:
        """Return a 3-5 word title for a conversation about *seed*."""
        try:
            response = self.title_model.invoke(build_title_prompt(seed))
        except Exception as exc:
            raise GatewayError(f"title generation failed: {exc}") from exc

        title = clean_title(message_text(response))
        if not title:
            raise EmptyResponseError("title generation returned an empty string")
        return title
