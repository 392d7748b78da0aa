"""
Retrieval — in-memory similarity index, ranking, and context assembly.

Public surface
--------------
- :class:`RetrievalRanker` — turns a query into a context string.
- :class:`ChunkIndex` / :class:`IndexHandle` — immutable snapshot and its swappable owner.
- :class:`Chunk`, :class:`ScoredChunk` — data models.
- :func:`cosine_similarity`, :func:`dot_product`, :func:`l2_norm` — vector math.
"""

from grounded_chat.retrieval.index import ChunkIndex, IndexHandle
from grounded_chat.retrieval.models import Chunk, ScoredChunk
from grounded_chat.retrieval.ranker import RetrievalRanker
from grounded_chat.retrieval.similarity import cosine_similarity, dot_product, l2_norm

__all__ = [
    "Chunk",
    "ChunkIndex",
    "IndexHandle",
    "RetrievalRanker",
    "ScoredChunk",
    "cosine_similarity",
    "dot_product",
    "l2_norm",
]
