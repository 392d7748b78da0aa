"""Domain models for indexed chunks and ranking results."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Chunk(BaseModel):
    """A unit of ingested source text paired with its embedding.

    Attributes
    ----------
    id:
        Storage handle of the chunk (``None`` before it is persisted).
    text:
        The raw text inserted into prompts when the chunk is selected.
    embedding:
        Dense vector for *text*. ``None`` when the vector is missing or
        could not be deserialized; such chunks are never ranked.
    """

    model_config = ConfigDict(frozen=True)

    id: int | str | None = None
    text: str
    embedding: list[float] | None = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class ScoredChunk(BaseModel):
    """A chunk together with its similarity to the current query."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    similarity: float
