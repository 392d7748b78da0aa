"""In-memory chunk index and the handle that swaps it.

A :class:`ChunkIndex` is an immutable snapshot. Ingestion never edits a
snapshot in place; it builds a new one and hands it to
:meth:`IndexHandle.swap`, so concurrent readers keep ranking against a
complete snapshot until the reference changes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from grounded_chat.retrieval.models import Chunk

if TYPE_CHECKING:
    from grounded_chat.store.base import ChatStore

logger = logging.getLogger(__name__)


class ChunkIndex:
    """Ordered, read-only collection of chunks sharing one embedding size.

    Parameters
    ----------
    chunks:
        Chunks in insertion order.
    dimension:
        Embedding length of the snapshot, ``None`` when no chunk has one.
    """

    __slots__ = ("_chunks", "_dimension", "_rankable")

    def __init__(self, chunks: tuple[Chunk, ...] = (), dimension: int | None = None) -> None:
        self._chunks = chunks
        self._dimension = dimension
        self._rankable = tuple(
            c for c in chunks if c.has_embedding and (dimension is None or len(c.embedding) == dimension)
        )

    @classmethod
    def from_chunks(cls, chunks: Iterable[Chunk]) -> ChunkIndex:
        """Build a snapshot, taking the dimension from the first embedded chunk.

        Chunks whose embedding length disagrees are kept but never ranked.
        """
        ordered = tuple(chunks)
        dimension: int | None = None
        for chunk in ordered:
            if not chunk.has_embedding:
                continue
            if dimension is None:
                dimension = len(chunk.embedding)
            elif len(chunk.embedding) != dimension:
                logger.warning(
                    "Chunk %s has a %d-dim embedding in a %d-dim index; excluding it from ranking",
                    chunk.id,
                    len(chunk.embedding),
                    dimension,
                )
        return cls(ordered, dimension)

    @property
    def dimension(self) -> int | None:
        return self._dimension

    @property
    def rankable(self) -> tuple[Chunk, ...]:
        """Chunks that carry a usable embedding, in index order."""
        return self._rankable

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[Chunk]:
        return iter(self._chunks)

    def __bool__(self) -> bool:
        return bool(self._chunks)

    def __repr__(self) -> str:
        return f"ChunkIndex(size={len(self._chunks)}, rankable={len(self._rankable)}, dim={self._dimension})"


class IndexHandle:
    """Owner of the current :class:`ChunkIndex` snapshot.

    Readers call :meth:`snapshot` once per query and work on that object;
    writers publish a fully built replacement through :meth:`swap`.
    """

    def __init__(self, index: ChunkIndex | None = None) -> None:
        self._index = index if index is not None else ChunkIndex()
        self._lock = threading.Lock()

    def snapshot(self) -> ChunkIndex:
        return self._index

    def swap(self, index: ChunkIndex) -> ChunkIndex:
        """Publish *index* and return the snapshot it replaced."""
        with self._lock:
            previous = self._index
            self._index = index
        logger.info("Chunk index swapped: %r -> %r", previous, index)
        return previous

    def reload(self, store: ChatStore) -> ChunkIndex:
        """Load every persisted chunk from *store* and swap it in."""
        index = ChunkIndex.from_chunks(store.all_chunks())
        if not index:
            logger.warning(
                "Chunk index is empty. Ensure data has been ingested with the current embedding model."
            )
        self.swap(index)
        return index
