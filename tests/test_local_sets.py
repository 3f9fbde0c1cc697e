"""
Tests for local sets, nearest enemies and the u/h counts.

Run with: pytest tests/test_local_sets.py -v
"""

import numpy as np
import pytest

from mlis.local_sets import (NO_ENEMY, compute_local_sets, enemy_matrix, harmfulness,
                             usefulness)


@pytest.fixture
def line():
    # Class 0 at 0, 1, 2 and class 1 at 10, 11
    X = np.array([[0.0], [1.0], [2.0], [10.0], [11.0]])
    y = np.array([0, 0, 0, 1, 1])
    return X, y


class TestLocalSets:
    """Test local-set contents on a hand-computed example."""

    def test_local_sets_and_enemies(self, line):
        X, y = line
        local_sets, enemies = compute_local_sets(X, y)

        expected = [[1, 2], [0, 2], [0, 1], [4], [3]]
        for ls, exp in zip(local_sets, expected):
            np.testing.assert_array_equal(ls, exp)
        np.testing.assert_array_equal(enemies, [3, 3, 3, 2, 2])

    def test_instance_never_in_own_local_set(self):
        rng = np.random.default_rng(7)
        X = rng.normal(size=(25, 2))
        y = rng.integers(0, 3, size=25)
        local_sets, _ = compute_local_sets(X, y)
        for i, ls in enumerate(local_sets):
            assert i not in ls

    def test_no_enemy(self):
        """A single class: no enemies, every local set holds all the others."""
        X = np.array([[0.0], [1.0], [3.0]])
        local_sets, enemies = compute_local_sets(X, np.zeros(3, dtype=int))

        np.testing.assert_array_equal(enemies, [NO_ENEMY] * 3)
        np.testing.assert_array_equal(local_sets[1], [0, 2])


class TestCounts:
    """Test usefulness and harmfulness."""

    def test_counts(self, line):
        X, y = line
        local_sets, enemies = compute_local_sets(X, y)
        np.testing.assert_array_equal(usefulness(local_sets, 5), [2, 2, 2, 1, 1])
        np.testing.assert_array_equal(harmfulness(enemies, 5), [0, 0, 2, 3, 0])

    def test_empty_local_sets(self):
        empty = [np.empty(0, dtype=int)] * 3
        np.testing.assert_array_equal(usefulness(empty, 3), [0, 0, 0])
        np.testing.assert_array_equal(harmfulness(np.full(3, NO_ENEMY), 3), [0, 0, 0])


class TestEnemyMatrix:
    """Test class-based and Hamming-based enemies."""

    def test_class_vector(self):
        E = enemy_matrix(np.array([0, 1, 0]))
        np.testing.assert_array_equal(E, [[False, True, False],
                                          [True, False, True],
                                          [False, True, False]])

    def test_label_matrix(self):
        Y = np.array([[1, 0, 0], [1, 1, 0], [0, 1, 1]])
        E = enemy_matrix(Y, threshold=0.5)
        assert not E[0, 1]
        assert E[0, 2] and E[1, 2]
        assert enemy_matrix(Y, threshold=0.15)[0, 1]

    def test_label_matrix_needs_threshold(self):
        with pytest.raises(ValueError):
            enemy_matrix(np.array([[1, 0], [0, 1]]))
