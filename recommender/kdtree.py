import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

from numpy.typing import NDArray

from recommender.similarity import rank
from recommender.vectors import Corpus, DimensionalityMismatchError, VectorRecord, make_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class IndexNode:
    pivot: VectorRecord
    axis: int
    left: "IndexNode | None" = None
    right: "IndexNode | None" = None


@dataclass(frozen=True, eq=False)
class Index:
    """Immutable k-d tree over a corpus snapshot."""

    root: IndexNode | None
    dimensionality: int | None
    size: int = 0


def build_tree(
    records: Sequence[VectorRecord], depth: int = 0
) -> IndexNode | None:
    """Recursively split records at the median of a cycling axis.

    Every call sorts its whole input, which makes construction
    O(n·D·log²n). The index is built once at startup so this is accepted;
    a selection-based median would bring it down to O(n·D·log n).
    """
    if not records:
        return None

    axis = depth % records[0].dimensionality
    ordered = sorted(records, key=lambda record: record.vector[axis])
    median = len(ordered) // 2

    return IndexNode(
        pivot=ordered[median],
        axis=axis,
        left=build_tree(ordered[:median], depth + 1),
        right=build_tree(ordered[median + 1 :], depth + 1),
    )


def build_index(corpus: Corpus) -> Index:
    """Build an Index from a corpus snapshot."""
    started = time.perf_counter()
    root = build_tree(list(corpus.values()))
    logger.info(
        "Built index over %d records (dimensionality=%s) in %.2fs",
        len(corpus),
        corpus.dimensionality,
        time.perf_counter() - started,
    )
    return Index(root=root, dimensionality=corpus.dimensionality, size=len(corpus))


def search_knn(
    query: Sequence[float] | NDArray | VectorRecord, k: int, index: Index
) -> list[VectorRecord]:
    """Approximate k nearest neighbors of the query by cosine similarity.

    Branches are pruned on the raw per-axis coordinate gap, so a pruned
    branch may still hold a more similar record than the ones returned.
    """
    if k <= 0:
        raise ValueError(f"k must be a positive integer, got {k}")

    if not isinstance(query, VectorRecord):
        query = make_record("query", "", query)
    if index.dimensionality is not None and query.dimensionality != index.dimensionality:
        raise DimensionalityMismatchError(index.dimensionality, query.dimensionality)

    if index.root is None:
        return []

    candidates: list[VectorRecord] = []
    _search_node(query, k, index.root, candidates)
    return rank(query, candidates)[:k]


def _search_node(
    query: VectorRecord,
    k: int,
    node: IndexNode | None,
    candidates: list[VectorRecord],
) -> None:
    if node is None:
        return

    candidates.append(node.pivot)

    if len(candidates) > 2 * k:
        candidates[:] = rank(query, candidates)[:k]

    axis = node.axis
    diff = query.vector[axis] - node.pivot.vector[axis]

    near, far = (node.left, node.right) if diff < 0 else (node.right, node.left)

    _search_node(query, k, near, candidates)

    # Bound is the axis coordinate of the last buffered candidate
    bound = candidates[-1].vector[axis]
    if len(candidates) < k or diff == 0 or abs(diff) < bound:
        _search_node(query, k, far, candidates)
