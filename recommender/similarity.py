from collections.abc import Iterable, Sequence

import numpy as np
from numpy.typing import NDArray

from recommender.vectors import VectorRecord


def cosine_similarity(a: VectorRecord, b: VectorRecord) -> float:
    """Cosine of the angle between two records, in [-1, 1].

    Returns 0.0 when either norm is unavailable.
    """
    if not a.norm or not b.norm:
        return 0.0

    similarity = float(np.dot(a.vector, b.vector)) / (a.norm * b.norm)
    return min(1.0, max(-1.0, similarity))


def rank(query: VectorRecord, records: Iterable[VectorRecord]) -> list[VectorRecord]:
    """Order records by descending similarity to the query.

    The sort is stable, so equally similar records keep their relative order.
    """
    return sorted(records, key=lambda record: cosine_similarity(query, record), reverse=True)


def stack_vectors(
    records: Sequence[VectorRecord], dimensionality: int | None = None
) -> NDArray[np.float64]:
    """Unit-normalised matrix with one row per record, built once per corpus."""
    if not records:
        return np.empty((0, dimensionality or 0))

    matrix = np.vstack([record.vector for record in records])
    norms = np.array([record.norm for record in records])
    matrix = matrix / norms[:, np.newaxis]
    matrix.setflags(write=False)
    return matrix


def scan_knn(
    query: VectorRecord,
    k: int,
    records: Sequence[VectorRecord],
    matrix: NDArray[np.float64],
) -> list[VectorRecord]:
    """Exact top-k by cosine similarity against a matrix from stack_vectors."""
    if k <= 0:
        raise ValueError(f"k must be a positive integer, got {k}")
    if not records:
        return []

    similarities = (matrix @ query.vector) / query.norm

    # Stable argsort on the negated scores keeps ties in corpus order
    top_indices = np.argsort(-similarities, kind="stable")[:k]

    return [records[i] for i in top_indices]
