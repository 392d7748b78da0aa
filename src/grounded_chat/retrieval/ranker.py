"""Similarity ranking and context assembly.

This module is the **primary public interface** for retrieval. It scores
every chunk of the current index snapshot against a query embedding,
keeps those above a similarity threshold, and concatenates the best few
into the context block handed to the chat model.

Usage::

    from grounded_chat.retrieval.ranker import RetrievalRanker

    ranker  = RetrievalRanker(index_handle, gateway)
    context = ranker.get_relevant_context("How many people use TikTok daily?")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from grounded_chat.config import settings
from grounded_chat.errors import GroundedChatError
from grounded_chat.retrieval.index import IndexHandle
from grounded_chat.retrieval.models import ScoredChunk
from grounded_chat.retrieval.similarity import cosine_similarity

if TYPE_CHECKING:
    from collections.abc import Sequence

    from grounded_chat.llm.gateway import LLMGateway

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n"


class RetrievalRanker:
    """Brute-force cosine ranker over an :class:`IndexHandle`.

    Parameters
    ----------
    index:
        Handle whose current snapshot is ranked on every call.
    gateway:
        Used to embed query text in :meth:`get_relevant_context`. May be
        ``None`` when only pre-computed embeddings are ranked.
    top_k:
        Maximum number of chunks that make it into the context.
    similarity_threshold:
        Minimum cosine similarity; chunks below it are discarded.
    """

    def __init__(
        self,
        index: IndexHandle,
        gateway: LLMGateway | None = None,
        *,
        top_k: int = settings.top_k,
        similarity_threshold: float = settings.similarity_threshold,
    ) -> None:
        self._index = index
        self._gateway = gateway
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold

    # -- public API -----------------------------------------------------------

    def rank(self, query_embedding: Sequence[float]) -> list[ScoredChunk]:
        """Return chunks passing the threshold, best first, at most ``top_k``.

        Ties keep the index order (Python's sort is stable), so repeated
        calls against the same snapshot return identical lists.
        """
        snapshot = self._index.snapshot()
        if len(snapshot.rankable) < len(snapshot):
            logger.debug(
                "Skipping %d chunk(s) without a usable embedding",
                len(snapshot) - len(snapshot.rankable),
            )

        scored: list[ScoredChunk] = []
        for chunk in snapshot.rankable:
            try:
                similarity = cosine_similarity(query_embedding, chunk.embedding)  # type: ignore[arg-type]
            except ValueError as exc:
                logger.warning("Error calculating similarity for chunk %s: %s. Skipping.", chunk.id, exc)
                continue
            if similarity >= self.similarity_threshold:
                scored.append(ScoredChunk(chunk=chunk, similarity=similarity))

        scored.sort(key=lambda s: s.similarity, reverse=True)
        return scored[: self.top_k]

    def build_context(self, query_embedding: Sequence[float]) -> str:
        """Concatenate the text of the ranked chunks; ``""`` when none qualify."""
        ranked = self.rank(query_embedding)
        if not ranked:
            logger.info(
                "No relevant chunks found for query (similarity threshold: %.2f)",
                self.similarity_threshold,
            )
            return ""

        logger.info("Retrieved %d relevant chunk(s) for query", len(ranked))
        return "".join(s.chunk.text + CONTEXT_SEPARATOR for s in ranked).rstrip()

    def get_relevant_context(self, query: str) -> str:
        """Embed *query* and return its context block.

        An index without embedded chunks short-circuits to ``""`` without calling the
        gateway. Embedding failures propagate as
        :class:`~grounded_chat.errors.GatewayError`.
        """
        if not self._index.snapshot().rankable:
            logger.info("No embedded chunks available for context retrieval")
            return ""
        if self._gateway is None:
            raise GroundedChatError("RetrievalRanker has no gateway to embed query text")

        query_embedding = self._gateway.embed(query)
        return self.build_context(query_embedding)
