"""Vector math over plain ``list[float]`` embeddings."""

from __future__ import annotations

import math
from collections.abc import Sequence

from grounded_chat.errors import DimensionMismatchError, EmptyVectorError, NonFiniteVectorError


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the dot product of two equal-length vectors."""
    if len(a) != len(b):
        raise DimensionMismatchError(f"vector dimensions differ: {len(a)} != {len(b)}")
    return math.fsum(x * y for x, y in zip(a, b))


def l2_norm(a: Sequence[float]) -> float:
    """Return the Euclidean length of *a*."""
    return math.sqrt(math.fsum(x * x for x in a))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between *a* and *b*, in ``[-1, 1]``.

    Raises
    ------
    EmptyVectorError
        If either vector has no components.
    DimensionMismatchError
        If the vectors have different lengths.
    NonFiniteVectorError
        If a NaN or infinite component makes the score undefined.

    A zero-magnitude vector has no direction; its similarity to anything
    is reported as ``0.0`` instead of dividing by zero.
    """
    if len(a) == 0 or len(b) == 0:
        raise EmptyVectorError("vectors cannot be empty")
    dot = dot_product(a, b)

    norm_a = l2_norm(a)
    norm_b = l2_norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = dot / (norm_a * norm_b)
    if not math.isfinite(similarity):
        raise NonFiniteVectorError("similarity is undefined for vectors with NaN or infinite components")
    return max(-1.0, min(1.0, similarity))
