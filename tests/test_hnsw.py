"""Tests for ann_index.hnsw: HNSWIndex."""

import logging
import threading

import numpy as np
import pytest

from ann_index import HNSWIndex, HNSWParams, Neighbor


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def index(params):
    return HNSWIndex(dimension=3, params=params)


def _random_vectors(count, dimension, seed=0):
    rng = np.random.default_rng(seed)
    return rng.normal(size=(count, dimension)).astype(np.float32)


def _build(vectors, params):
    index = HNSWIndex(dimension=vectors.shape[1], params=params)
    for i, vector in enumerate(vectors):
        index.add(vector, i)
    return index


def _brute_force(vectors, query, k):
    normalized = vectors / np.linalg.norm(vectors, axis=1, keepdims=True)
    sims = normalized @ (query / np.linalg.norm(query))
    return list(np.argsort(-sims)[:k])


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestEmptyIndex:
    def test_search_empty(self, index):
        assert index.search([1.0, 0.0, 0.0], k=5) == []
        assert index.is_empty
        assert index.entry_point is None
        assert index.max_level == -1

    def test_invalid_dimension(self):
        with pytest.raises(ValueError):
            HNSWIndex(dimension=0)


class TestAdd:
    def test_first_add_sets_entry_point(self, index):
        index.add([1.0, 0.0, 0.0], 0)
        assert len(index) == 1
        assert index.entry_point == 0
        assert not index.is_empty

    def test_dimension_mismatch(self, index):
        with pytest.raises(ValueError, match="shape"):
            index.add([1.0, 0.0], 0)
        assert len(index) == 0

    def test_ids_must_be_sequential(self, index):
        index.add([1.0, 0.0, 0.0], 0)
        with pytest.raises(ValueError, match="sequential"):
            index.add([0.0, 1.0, 0.0], 5)

    def test_non_finite_rejected(self, index):
        with pytest.raises(ValueError, match="non-finite"):
            index.add([float("nan"), 0.0, 0.0], 0)

    def test_vectors_stored_normalized(self, index):
        index.add([3.0, 4.0, 0.0], 0)
        np.testing.assert_allclose(index.get_vector(0), [0.6, 0.8, 0.0], rtol=1e-6)

    def test_get_vector_unknown_id(self, index):
        with pytest.raises(IndexError):
            index.get_vector(0)

    def test_grows_past_initial_capacity(self, params):
        vectors = _random_vectors(50, 4)
        index = _build(vectors, params)

        assert len(index) == 50
        assert index.stats()["capacity"] >= 50
        for i in (0, 17, 49):
            expected = vectors[i] / np.linalg.norm(vectors[i])
            np.testing.assert_allclose(index.get_vector(i), expected, rtol=1e-5)

    def test_layer_statistics(self, params):
        index = _build(_random_vectors(100, 4), params)
        stats = index.stats()

        assert stats["count"] == 100
        assert stats["layer_sizes"][0] == 100
        assert max(stats["layer_sizes"]) == index.max_level


class TestSearch:
    def test_concrete_scenario(self, index):
        index.add([1.0, 0.0, 0.0], 0)
        index.add([0.0, 1.0, 0.0], 1)
        index.add([0.9, 0.1, 0.0], 2)

        hits = index.search([1.0, 0.0, 0.0], k=2)

        assert [h.internal_id for h in hits] == [0, 2]
        assert hits[0].similarity == pytest.approx(1.0, abs=1e-5)
        assert hits[1].similarity == pytest.approx(0.9 / np.sqrt(0.82), abs=1e-5)

    def test_returns_neighbors(self, index):
        index.add([1.0, 0.0, 0.0], 0)
        hit = index.search([1.0, 0.0, 0.0], k=1)[0]
        assert isinstance(hit, Neighbor)

    def test_self_is_top_result(self, params):
        vectors = _random_vectors(200, 16, seed=1)
        index = _build(vectors, params)

        for i in range(0, 200, 10):
            hits = index.search(vectors[i], k=1, ef=64)
            assert hits[0].internal_id == i
            assert hits[0].similarity == pytest.approx(1.0, abs=1e-5)

    def test_recall_against_brute_force(self, params):
        vectors = _random_vectors(300, 12, seed=2)
        queries = _random_vectors(20, 12, seed=3)
        index = _build(vectors, params)

        found = 0
        for query in queries:
            expected = set(_brute_force(vectors, query, 10))
            actual = {h.internal_id for h in index.search(query, k=10, ef=100)}
            found += len(expected & actual)

        assert found / (10 * len(queries)) >= 0.9

    def test_results_sorted_by_similarity(self, params):
        vectors = _random_vectors(100, 8, seed=4)
        index = _build(vectors, params)

        sims = [h.similarity for h in index.search(vectors[0], k=20)]
        assert sims == sorted(sims, reverse=True)

    def test_len_at_most_k(self, params):
        vectors = _random_vectors(60, 8, seed=5)
        index = _build(vectors, params)

        for k in (1, 5, 17, 60):
            assert len(index.search(vectors[3], k=k)) <= k

    def test_fewer_points_than_k(self, index):
        for i, vector in enumerate([[1, 0, 0], [0, 1, 0], [0, 0, 1], [1, 1, 0], [0, 1, 1]]):
            index.add(vector, i)
        assert len(index.search([1.0, 0.0, 0.0], k=10)) == 5

    def test_non_positive_k(self, index):
        index.add([1.0, 0.0, 0.0], 0)
        assert index.search([1.0, 0.0, 0.0], k=0) == []

    def test_ties_broken_by_insertion_order(self, index):
        for i in range(4):
            index.add([0.0, 1.0, 0.0], i)
        hits = index.search([0.0, 1.0, 0.0], k=4)
        assert [h.internal_id for h in hits] == [0, 1, 2, 3]

    def test_same_direction_at_different_scales_ties(self, index):
        for i, scale in enumerate([1.0, 0.5, 7.0, 1e3, 1e-3]):
            index.add([1.0 * scale, 2.0 * scale, 3.0 * scale], i)

        hits = index.search([1.0, 2.0, 3.0], k=5)

        assert [h.internal_id for h in hits] == [0, 1, 2, 3, 4]
        assert all(h.similarity <= 1.0 for h in hits)
        assert all(h.similarity == pytest.approx(1.0, abs=1e-6) for h in hits)

    def test_similarity_stays_in_range(self, params):
        vectors = _random_vectors(50, 8, seed=9)
        index = _build(vectors, params)

        for query in (vectors[0], -vectors[0], vectors[0] * 1e6):
            for hit in index.search(query, k=50):
                assert -1.0 <= hit.similarity <= 1.0

    def test_query_dimension_checked(self, index):
        index.add([1.0, 0.0, 0.0], 0)
        with pytest.raises(ValueError):
            index.search([1.0, 0.0], k=1)

    def test_set_ef(self, index):
        index.set_ef(100)
        assert index.ef_search == 100
        with pytest.raises(ValueError):
            index.set_ef(0)


class TestZeroVectors:
    def test_zero_query_scores_zero(self, index, caplog):
        index.add([1.0, 0.0, 0.0], 0)
        index.add([0.0, 1.0, 0.0], 1)

        with caplog.at_level(logging.WARNING, logger="ann_index.hnsw"):
            hits = index.search([0.0, 0.0, 0.0], k=2)

        assert len(hits) == 2
        assert all(h.similarity == pytest.approx(0.0) for h in hits)
        assert "Zero-magnitude query" in caplog.text

    def test_zero_stored_vector(self, index, caplog):
        with caplog.at_level(logging.WARNING, logger="ann_index.hnsw"):
            index.add([0.0, 0.0, 0.0], 0)
        index.add([1.0, 0.0, 0.0], 1)

        hits = index.search([1.0, 0.0, 0.0], k=2)
        assert [h.internal_id for h in hits] == [1, 0]
        assert hits[1].similarity == pytest.approx(0.0)
        assert "Zero-magnitude vector" in caplog.text


class TestExtremeMagnitudes:
    @pytest.mark.parametrize("vector", [
        [1e-25, 0.0, 0.0],
        [1e-40, 2e-40, 0.0],
        [1e30, 1e30, 0.0],
        [1e39, 0.0, 1e39],
    ])
    def test_vector_is_its_own_top_match(self, index, vector):
        index.add([0.0, 1.0, 0.0], 0)
        index.add(vector, 1)

        hits = index.search(vector, k=1)

        assert hits[0].internal_id == 1
        assert hits[0].similarity == pytest.approx(1.0, abs=1e-5)

    def test_tiny_vector_is_not_stored_as_zero(self, index):
        index.add([1e-25, 0.0, 0.0], 0)
        assert index.get_vector(0).tolist() == [1.0, 0.0, 0.0]


class TestConcurrency:
    def test_search_during_inserts(self, params):
        vectors = _random_vectors(400, 8, seed=6)
        index = HNSWIndex(dimension=8, params=params)
        index.add(vectors[0], 0)
        errors = []
        done = threading.Event()

        def writer():
            try:
                for i in range(1, len(vectors)):
                    index.add(vectors[i], i)
            except Exception as exc:
                errors.append(exc)
            finally:
                done.set()

        def reader():
            try:
                while not done.is_set():
                    hits = index.search(vectors[0], k=5)
                    assert hits and all(0 <= h.internal_id < len(vectors) for h in hits)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(index) == 400

    def test_insert_visible_after_return(self, params):
        index = HNSWIndex(dimension=8, params=params)
        vectors = _random_vectors(100, 8, seed=7)
        for i, vector in enumerate(vectors):
            index.add(vector, i)
            hits = index.search(vector, k=1, ef=64)
            assert hits[0].internal_id == i
