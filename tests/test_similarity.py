import numpy as np
import pytest

from recommender.similarity import cosine_similarity, rank, scan_knn, stack_vectors
from recommender.vectors import (
    NORM_EPSILON,
    Corpus,
    DimensionalityMismatchError,
    VectorRecord,
    make_record,
)


def test_norm_is_precomputed():
    """Test that a record's norm is its Euclidean magnitude."""
    record = make_record("m1", "Movie", [3.0, 4.0])
    assert record.norm == pytest.approx(5.0)


def test_zero_vector_norm_is_floored():
    """Test that all-zero vectors get a small positive norm."""
    record = make_record("zero", "Zero", [0.0, 0.0, 0.0])
    assert record.norm == NORM_EPSILON


def test_record_vector_is_read_only():
    record = make_record("m1", "Movie", [1.0, 2.0])
    with pytest.raises(ValueError):
        record.vector[0] = 5.0


def test_self_similarity_is_one():
    """Test that a nonzero record is perfectly similar to itself."""
    rng = np.random.default_rng(7)
    for i in range(20):
        record = make_record(str(i), "", rng.normal(size=1094))
        assert cosine_similarity(record, record) == pytest.approx(1.0, abs=1e-6)


def test_similarity_range():
    """Test that similarity always falls within [-1, 1]."""
    rng = np.random.default_rng(11)
    records = [make_record(str(i), "", rng.normal(size=16)) for i in range(15)]
    records.append(make_record("zero", "", np.zeros(16)))

    for a in records:
        for b in records:
            assert -1.0 <= cosine_similarity(a, b) <= 1.0


def test_opposite_vectors():
    a = make_record("a", "", [1.0, 0.0, 0.0])
    b = make_record("b", "", [-2.0, 0.0, 0.0])
    assert cosine_similarity(a, b) == pytest.approx(-1.0)


def test_zero_vector_similarity_is_zero():
    a = make_record("a", "", [1.0, 2.0])
    zero = make_record("zero", "", [0.0, 0.0])
    assert cosine_similarity(a, zero) == 0.0


def test_missing_norm_similarity_is_zero():
    """Test the fallback when a norm is unavailable."""
    a = make_record("a", "", [1.0, 2.0])
    unnormed = VectorRecord(id="b", label="", vector=np.array([1.0, 2.0]), norm=0.0)
    assert cosine_similarity(a, unnormed) == 0.0


def test_rank_orders_by_similarity():
    query = make_record("q", "", [1.0, 0.0])
    near = make_record("near", "", [0.9, 0.1])
    far = make_record("far", "", [0.0, 1.0])
    opposite = make_record("opposite", "", [-1.0, 0.0])

    ranked = rank(query, [far, opposite, near])
    assert [r.id for r in ranked] == ["near", "far", "opposite"]


def test_scan_knn_is_exact():
    query = make_record("q", "", [1.0, 0.0, 0.0])
    records = [
        make_record("M2", "", [0.0, 1.0, 0.0]),
        make_record("M3", "", [0.9, 0.1, 0.0]),
        make_record("M4", "", [-1.0, 0.0, 0.0]),
        make_record("M1", "", [1.0, 0.0, 0.0]),
    ]

    results = scan_knn(query, 2, records, stack_vectors(records))
    assert [r.id for r in results] == ["M1", "M3"]


def test_stack_vectors_rows_are_unit_length():
    records = [make_record("a", "", [3.0, 4.0]), make_record("zero", "", [0.0, 0.0])]
    matrix = stack_vectors(records)

    assert matrix.shape == (2, 2)
    assert np.linalg.norm(matrix[0]) == pytest.approx(1.0)
    assert not matrix[1].any()


def test_stack_vectors_empty():
    assert stack_vectors([], dimensionality=4).shape == (0, 4)
    assert scan_knn(make_record("q", "", [1.0, 0.0, 0.0, 0.0]), 3, [], stack_vectors([], 4)) == []


def test_scan_knn_rejects_non_positive_k():
    query = make_record("q", "", [1.0])
    with pytest.raises(ValueError):
        scan_knn(query, 0, [query], stack_vectors([query]))


def test_corpus_rejects_mismatched_dimensionality():
    """Test that a corpus refuses records of different lengths."""
    with pytest.raises(DimensionalityMismatchError):
        Corpus.from_vectors({"a": [1.0, 0.0], "b": [1.0, 0.0, 0.0]})


def test_corpus_rejects_declared_dimensionality_mismatch():
    with pytest.raises(DimensionalityMismatchError):
        Corpus.from_vectors({"a": [1.0, 0.0]}, dimensionality=3)


def test_corpus_mapping():
    corpus = Corpus.from_vectors({"a": [1.0, 0.0], "b": [0.0, 1.0]}, labels={"a": "Alpha"})

    assert len(corpus) == 2
    assert corpus.dimensionality == 2
    assert corpus["a"].label == "Alpha"
    assert corpus["b"].label == "b"
    assert set(corpus) == {"a", "b"}


def test_empty_corpus_has_no_dimensionality():
    corpus = Corpus()
    assert len(corpus) == 0
    assert corpus.dimensionality is None
