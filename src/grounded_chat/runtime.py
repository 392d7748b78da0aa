"""Service wiring shared by the HTTP app and the CLI.

:func:`build_runtime` creates every collaborator once from the global
settings and loads the chunk index from persistence, mirroring a model
server's ``load()`` step. Pass explicit ``store`` / ``gateway`` objects
to run against fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from grounded_chat.chat.service import ChatService
from grounded_chat.chat.titles import TitleScheduler
from grounded_chat.config import Settings, settings as default_settings
from grounded_chat.ingestion.pipeline import IngestionPipeline, RateLimiter
from grounded_chat.llm.gateway import LLMGateway
from grounded_chat.retrieval.index import IndexHandle
from grounded_chat.retrieval.ranker import RetrievalRanker
from grounded_chat.store.base import ChatStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Every long-lived collaborator of a running service."""

    settings: Settings
    store: ChatStore
    gateway: LLMGateway
    index: IndexHandle
    ranker: RetrievalRanker
    titles: TitleScheduler
    chat_service: ChatService

    def ingestion_pipeline(self) -> IngestionPipeline:
        """Pipeline that reloads this runtime's index when it finishes."""
        return IngestionPipeline(
            self.store,
            self.gateway,
            self.index,
            rate_limiter=RateLimiter(self.settings.embed_interval_seconds),
        )

    def close(self) -> None:
        """Wait for background title tasks, then release the store."""
        self.titles.shutdown(wait=True)
        self.store.close()


def build_runtime(
    config: Settings | None = None,
    *,
    store: ChatStore | None = None,
    gateway: LLMGateway | None = None,
    load_index: bool = True,
) -> Runtime:
    """Create and wire all collaborators."""
    config = config or default_settings

    if store is None:
        from grounded_chat.store.sql_store import SQLChatStore

        store = SQLChatStore(config.database_url)
    gateway = gateway or LLMGateway()

    index = IndexHandle()
    if load_index:
        snapshot = index.reload(store)
        logger.info("Chunk index initialised with %d chunk(s)", len(snapshot))

    ranker = RetrievalRanker(
        index,
        gateway,
        top_k=config.top_k,
        similarity_threshold=config.similarity_threshold,
    )
    titles = TitleScheduler(store, gateway, max_workers=config.title_workers)
    chat_service = ChatService(
        store,
        ranker,
        gateway,
        titles,
        history_size=config.history_size,
        max_message_chars=config.max_message_chars,
    )
    return Runtime(
        settings=config,
        store=store,
        gateway=gateway,
        index=index,
        ranker=ranker,
        titles=titles,
        chat_service=chat_service,
    )
