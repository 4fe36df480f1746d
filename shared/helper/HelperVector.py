"""Vector helpers shared by the embedding pipeline and the knowledge services."""

import hashlib
import json
import math


def zero_vector(dimensions: int) -> list[float]:
    """Return a vector of ``dimensions`` zeros."""
    return [0.0] * dimensions


def is_valid_vector(vector) -> bool:
    """True if ``vector`` is a non-empty sequence of finite real numbers."""
    if not isinstance(vector, (list, tuple)) or not vector:
        return False
    for value in vector:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value):
            return False
    return True


def fit_dimensions(vector: list[float], dimensions: int) -> list[float]:
    """Bring a vector to exactly ``dimensions`` components.

    Longer vectors are mean-pooled into ``dimensions`` consecutive buckets
    and L2-normalised; shorter vectors are zero-padded. Vectors that
    already have the right length are returned as a float copy.

    Args:
        vector (list[float]): The provider output.
        dimensions (int): Target length.

    Returns:
        list[float]: A vector of length ``dimensions``.
    """
    size = len(vector)
    if size == dimensions:
        return [float(v) for v in vector]
    if size < dimensions:
        return [float(v) for v in vector] + [0.0] * (dimensions - size)

    # bucket boundaries spread the remainder so every component is used
    pooled: list[float] = []
    for i in range(dimensions):
        start = (i * size) // dimensions
        end = ((i + 1) * size) // dimensions
        bucket = vector[start:end]
        pooled.append(sum(bucket) / len(bucket))

    magnitude = math.sqrt(sum(v * v for v in pooled))
    if magnitude == 0:
        return pooled
    return [v / magnitude for v in pooled]


def compute_embedding_checksum(embedding: list[float]) -> str:
    """SHA-256 hex digest of the compact JSON form of a vector.

    Deterministic for identical vectors; used for integrity auditing only.

    Returns:
        str: 64 lowercase hexadecimal characters.
    """
    data = json.dumps([float(v) for v in embedding], separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(data).hexdigest()
