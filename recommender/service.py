import logging
from dataclasses import dataclass
from typing import Literal

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field

from config import settings
from recommender.kdtree import Index, build_index, search_knn
from recommender.similarity import cosine_similarity, scan_knn, stack_vectors
from recommender.vectors import Corpus, VectorRecord

logger = logging.getLogger(__name__)


class MovieNotFoundError(LookupError):
    """Raised when no stored title matches the query."""

    def __init__(self, query: str) -> None:
        super().__init__(f"Movie not found: {query}")
        self.query = query


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    limit: int = Field(default_factory=lambda: settings.default_limit, gt=0)


@dataclass(frozen=True)
class Match:
    id: str
    title: str
    similarity: float


@dataclass(frozen=True, eq=False)
class SearchService:
    """Title lookup and similarity ranking over an immutable index."""

    corpus: Corpus
    index: Index
    records: tuple[VectorRecord, ...] = ()
    matrix: NDArray[np.float64] | None = None
    search_mode: Literal["tree", "scan"] = "tree"

    def find(self, query: str) -> VectorRecord | None:
        """Return the first record whose label contains the query, ignoring case."""
        needle = query.lower()
        for record in self.corpus.values():
            if needle in record.label.lower():
                return record
        return None

    def similar_to(self, record: VectorRecord, limit: int) -> list[Match]:
        if self.search_mode == "scan":
            neighbors = scan_knn(record, limit, self.records, self.matrix)
        else:
            neighbors = search_knn(record, limit, self.index)

        return [
            Match(id=neighbor.id, title=neighbor.label, similarity=cosine_similarity(record, neighbor))
            for neighbor in neighbors
        ]

    def search(self, request: SearchRequest) -> tuple[VectorRecord, list[Match]]:
        record = self.find(request.query)
        if record is None:
            logger.info("No movie found for query: %s", request.query)
            raise MovieNotFoundError(request.query)

        return record, self.similar_to(record, request.limit)


def build_service(corpus: Corpus, search_mode: Literal["tree", "scan"] | None = None) -> SearchService:
    """Index a corpus snapshot and wrap it in a SearchService.

    In scan mode the normalised corpus matrix is stacked here, once.
    """
    search_mode = search_mode or settings.search_mode
    records = tuple(corpus.values())
    matrix = stack_vectors(records, corpus.dimensionality) if search_mode == "scan" else None

    return SearchService(
        corpus=corpus,
        index=build_index(corpus),
        records=records,
        matrix=matrix,
        search_mode=search_mode,
    )


def format_matches(record: VectorRecord, matches: list[Match]) -> str:
    """Render ranked matches as a markdown list."""
    if not matches:
        return f"No similar movies found for **{record.label}**."

    lines = [f"Movies similar to **{record.label}**:", ""]
    for position, match in enumerate(matches, start=1):
        lines.append(f"{position}. {match.title} ({match.similarity:.3f})")
    return "\n".join(lines)
