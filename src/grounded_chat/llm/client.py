"""Model client initialisation — single place to swap providers.

Chat models always speak the OpenAI protocol:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **Any OpenAI-compatible server** (vLLM, LiteLLM, …) — set
   ``LLM_BASE_URL``; ``ChatOpenAI`` works unchanged.

Embeddings come from OpenAI by default, or from a local
sentence-transformer when ``EMBEDDING_PROVIDER=huggingface``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from grounded_chat.config import settings

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def _connection_kwargs() -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    if settings.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", settings.llm_base_url)
        kwargs["base_url"] = settings.llm_base_url
        # Local servers don't need a real key; the client requires a non-empty value.
        kwargs["api_key"] = settings.openai_api_key or "EMPTY"
    else:
        kwargs["api_key"] = settings.openai_api_key
    return kwargs


def get_chat_model(
    *,
    model: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    timeout: float | None = None,
) -> ChatOpenAI:
    """Return a configured chat model.

    *timeout* bounds the whole call in seconds; it defaults to
    ``settings.generation_timeout``.
    """
    kwargs: dict[str, Any] = {
        "model": model or settings.llm_model_name,
        "temperature": settings.llm_temperature if temperature is None else temperature,
        "timeout": settings.generation_timeout if timeout is None else timeout,
        # No retries: a retried timeout would outlive the bound
        "max_retries": 0,
        **_connection_kwargs(),
    }
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    return ChatOpenAI(**kwargs)


def get_title_model() -> ChatOpenAI:
    """Short, slightly creative completions for chat titles."""
    return get_chat_model(
        model=settings.title_model_name or settings.llm_model_name,
        temperature=settings.title_temperature,
        max_tokens=settings.title_max_tokens,
    )


def get_embeddings() -> Embeddings:
    """Return the configured embedding model."""
    if settings.embedding_provider == "huggingface":
        # Imported lazily: sentence-transformers pulls in torch.
        from langchain_huggingface import HuggingFaceEmbeddings

        return HuggingFaceEmbeddings(model_name=settings.embedding_model)

    return OpenAIEmbeddings(model=settings.embedding_model, **_connection_kwargs())
