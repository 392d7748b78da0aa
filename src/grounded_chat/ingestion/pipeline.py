"""Ingestion pipeline — parse, clear, embed, store, reload.

State machine::

    IDLE ─► PARSING ─► CLEARING ─► EMBEDDING ─► DONE
                │           │            │
                └───────────┴────────────┴────► FAILED

Replacing the chunk set is destructive and not transactional: once
``CLEARING`` has run, a crash before ``DONE`` leaves only the chunks
embedded so far. The run logs this instead of hiding it; re-running the
ingestion restores a complete set.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel

from grounded_chat.config import settings
from grounded_chat.errors import GatewayError, PersistenceError
from grounded_chat.ingestion.loader import ParsedTable, load_table_file, parse_table_rows

if TYPE_CHECKING:
    from grounded_chat.llm.gateway import LLMGateway
    from grounded_chat.retrieval.index import IndexHandle
    from grounded_chat.store.base import ChatStore

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10


class IngestionState(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    CLEARING = "clearing"
    EMBEDDING = "embedding"
    DONE = "done"
    FAILED = "failed"


class IngestionReport(BaseModel):
    """Summary of one ingestion run."""

    state: IngestionState
    rows_parsed: int = 0
    rows_skipped: int = 0
    chunks_ingested: int = 0
    chunks_failed: int = 0

    def __str__(self) -> str:  # noqa: D105
        return (
            f"{self.state.value}: {self.chunks_ingested}/{self.rows_parsed} chunks ingested "
            f"({self.chunks_failed} failed, {self.rows_skipped} rows skipped)"
        )


class RateLimiter:
    """Enforce a minimum interval between consecutive calls.

    The first :meth:`wait` returns immediately; every later one sleeps
    until *min_interval* seconds have passed since the previous call
    started.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None

    def wait(self) -> None:
        if self._last is not None:
            remaining = self.min_interval - (self._clock() - self._last)
            if remaining > 0:
                self._sleep(remaining)
        self._last = self._clock()


class IngestionPipeline:
    """Replace the persisted chunk set from a table source.

    Parameters
    ----------
    store:
        Persistence backend that owns the chunk rows.
    gateway:
        Used to embed every row.
    index:
        Handle reloaded from *store* once the run finishes.
    rate_limiter:
        Paces embedding calls; defaults to
        ``settings.embed_interval_seconds``.
    """

    def __init__(
        self,
        store: ChatStore,
        gateway: LLMGateway,
        index: IndexHandle,
        *,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._index = index
        self._limiter = rate_limiter or RateLimiter(settings.embed_interval_seconds)
        self.state = IngestionState.IDLE

    def ingest_file(self, path: str | Path) -> IngestionReport:
        """Run the pipeline over a Markdown table file."""
        self.state = IngestionState.PARSING
        try:
            table = load_table_file(path)
        except Exception:
            self.state = IngestionState.FAILED
            raise
        return self._run(table)

    def ingest_text(self, content: str) -> IngestionReport:
        """Run the pipeline over table text already in memory."""
        self.state = IngestionState.PARSING
        return self._run(parse_table_rows(content))

    # -- internals ------------------------------------------------------------

    def _run(self, table: ParsedTable) -> IngestionReport:
        report = IngestionReport(
            state=self.state,
            rows_parsed=len(table.rows),
            rows_skipped=table.skipped,
        )

        if not table.rows:
            logger.warning(
                "No chunks generated from data source. Ensure it is a Markdown table with content rows."
            )
            return self._finish(report, IngestionState.DONE)

        logger.info("Generated %d raw chunks from table. Now embedding...", len(table.rows))

        self.state = IngestionState.CLEARING
        try:
            self._store.clear_chunks()
        except PersistenceError:
            logger.exception("Failed to clear existing data chunks")
            self._finish(report, IngestionState.FAILED)
            raise

        self.state = IngestionState.EMBEDDING
        try:
            for i, row in enumerate(table.rows, 1):
                if self._embed_and_store(i, row):
                    report.chunks_ingested += 1
                else:
                    report.chunks_failed += 1
                if report.chunks_ingested and report.chunks_ingested % PROGRESS_EVERY == 0:
                    logger.info("Ingested %d/%d chunks...", report.chunks_ingested, len(table.rows))
        except BaseException:
            logger.error(
                "Ingestion aborted after clearing: only %d of %d chunks are stored",
                report.chunks_ingested,
                len(table.rows),
            )
            self._finish(report, IngestionState.FAILED)
            raise

        logger.info("Successfully ingested %d chunks.", report.chunks_ingested)
        return self._finish(report, IngestionState.DONE)

    def _embed_and_store(self, position: int, row: str) -> bool:
        self._limiter.wait()
        try:
            embedding = self._gateway.embed(row)
        except GatewayError as exc:
            logger.warning('Failed to generate embedding for chunk %d ("%.50s..."): %s. Skipping.', position, row, exc)
            return False

        try:
            self._store.add_chunk(row, embedding)
        except PersistenceError as exc:
            logger.warning("Failed to store data chunk %d: %s. Skipping.", position, exc)
            return False
        return True

    def _finish(self, report: IngestionReport, state: IngestionState) -> IngestionReport:
        self.state = state
        report.state = state
        try:
            self._index.reload(self._store)
        except PersistenceError:
            logger.exception("Failed to reload chunk index after ingestion")
            if state is IngestionState.DONE:
                self.state = report.state = IngestionState.FAILED
                raise
        return report
