from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

NORM_EPSILON = 1e-10


class DimensionalityMismatchError(ValueError):
    """Raised when a vector's length differs from the corpus dimensionality."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected a vector of length {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True, eq=False)
class VectorRecord:
    id: str
    label: str
    vector: NDArray[np.float64]
    norm: float

    @property
    def dimensionality(self) -> int:
        return len(self.vector)


def vector_norm(vector: NDArray[np.float64]) -> float:
    """Euclidean magnitude, floored so zero vectors never divide by zero."""
    norm = float(np.sqrt(np.dot(vector, vector)))
    return norm or NORM_EPSILON


def as_vector(values: Sequence[float] | NDArray) -> NDArray[np.float64]:
    """Copy values into a read-only 1-D float64 array."""
    vector = np.array(values, dtype=np.float64)
    if vector.ndim != 1:
        raise ValueError(f"Expected a 1-D vector, got shape {vector.shape}")
    vector.setflags(write=False)
    return vector


def make_record(
    record_id: str, label: str, values: Sequence[float] | NDArray
) -> VectorRecord:
    """Build a record, computing its norm exactly once."""
    vector = as_vector(values)
    return VectorRecord(id=record_id, label=label, vector=vector, norm=vector_norm(vector))


class Corpus(Mapping[str, VectorRecord]):
    """Read-only mapping of record id to VectorRecord with a fixed dimensionality."""

    def __init__(
        self,
        records: Iterable[VectorRecord] = (),
        dimensionality: int | None = None,
    ) -> None:
        self._records: dict[str, VectorRecord] = {}
        for record in records:
            if dimensionality is None:
                dimensionality = record.dimensionality
            elif record.dimensionality != dimensionality:
                raise DimensionalityMismatchError(dimensionality, record.dimensionality)
            if record.id in self._records:
                raise ValueError(f"Duplicate record id: {record.id}")
            self._records[record.id] = record
        self._dimensionality = dimensionality

    @property
    def dimensionality(self) -> int | None:
        return self._dimensionality

    @classmethod
    def from_vectors(
        cls,
        vectors: Mapping[str, Sequence[float] | NDArray],
        labels: Mapping[str, str] | None = None,
        dimensionality: int | None = None,
    ) -> "Corpus":
        labels = labels or {}
        records = (
            make_record(record_id, labels.get(record_id, record_id), values)
            for record_id, values in vectors.items()
        )
        return cls(records, dimensionality=dimensionality)

    def __getitem__(self, record_id: str) -> VectorRecord:
        return self._records[record_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Corpus(size={len(self)}, dimensionality={self.dimensionality})"
