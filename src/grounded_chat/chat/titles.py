"""Background title derivation.

Titles are best-effort enrichment: a task is submitted to a thread pool
and nobody waits for it. Failures are logged and dropped; the chat
simply stays untitled until a later turn schedules another attempt.

Overlapping tasks for one chat are not serialised. The store update is
a compare-and-set on "title unset", so the first committed title wins
and later tasks affect zero rows.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING

from grounded_chat.config import settings
from grounded_chat.errors import GatewayError, PersistenceError

if TYPE_CHECKING:
    from grounded_chat.llm.gateway import LLMGateway
    from grounded_chat.store.base import ChatStore

logger = logging.getLogger(__name__)


class TitleScheduler:
    """Fire-and-forget executor for chat title derivation.

    Parameters
    ----------
    store:
        Where the derived title is written.
    gateway:
        Produces the title text.
    max_workers:
        Size of the background thread pool.
    """

    def __init__(
        self,
        store: ChatStore,
        gateway: LLMGateway,
        *,
        max_workers: int = settings.title_workers,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="chat-title")

    def schedule(self, chat_id: str, owner: str, seed: str) -> Future[str | None]:
        """Submit a derivation task and return immediately.

        The returned future is only for tests and shutdown; request
        handlers ignore it.
        """
        future = self._executor.submit(self.derive_title, chat_id, owner, seed)
        future.add_done_callback(_log_unexpected_failure)
        return future

    def derive_title(self, chat_id: str, owner: str, seed: str) -> str | None:
        """Generate and store a title; return it, or ``None`` when nothing was saved."""
        logger.info("Attempting to generate title for chat %s", chat_id)
        try:
            title = self._gateway.summarize_title(seed)
        except GatewayError as exc:
            logger.warning("Failed to generate title for chat %s: %s", chat_id, exc)
            return None

        try:
            affected = self._store.set_title(chat_id, owner, title, only_if_unset=True)
        except PersistenceError as exc:
            logger.warning("Failed to save generated title %r for chat %s: %s", title, chat_id, exc)
            return None

        if affected == 0:
            logger.info("Title %r not saved: chat %s is gone, not owned by %s, or already titled", title, chat_id, owner)
            return None

        logger.info("Generated and saved title %r for chat %s", title, chat_id)
        return title

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def _log_unexpected_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Title derivation task crashed", exc_info=exc)
