"""
Tests for the MLENN and MLeNN editing filters.

Run with: pytest tests/test_ml_editing.py -v
"""

import logging

import numpy as np
import pytest

from mlis.dataset import MLDataset
from mlis.ml_editing import (MLeNNFilter, MLENNFilter, imbalance_ratios, label_disagreement,
                             remove_duplicates, unique_positions)


@pytest.fixture
def with_duplicates():
    """Ten instances; rows 3, 6 and 9 repeat rows 0, 2 and 5."""
    X = np.array([[0.0], [1.0], [2.0], [0.0], [3.0], [4.0], [2.0], [5.0], [6.0], [4.0]])
    Y = np.array([[1, 0], [0, 1], [1, 1], [1, 0], [0, 1],
                  [1, 0], [1, 1], [0, 1], [1, 0], [1, 0]])
    return MLDataset(X, Y, name='duplicates')


@pytest.fixture
def staircase():
    X = np.arange(10, dtype=float).reshape(-1, 1)
    Y = np.tile([1, 0], (10, 1))
    return MLDataset(X, Y, name='staircase')


def loss_from_feature(self, dataset):
    """Stand-in for the per-instance Hamming loss: x / 10."""
    return dataset.X[:, 0] / 10


class TestDuplicates:
    """Test duplicate detection."""

    def test_unique_positions(self, with_duplicates):
        np.testing.assert_array_equal(unique_positions(with_duplicates), [0, 1, 2, 4, 5, 7, 8])

    def test_same_features_different_labels_kept(self):
        dataset = MLDataset(np.zeros((2, 1)), np.array([[1, 0], [0, 1]]))
        assert len(remove_duplicates(dataset)) == 2

    def test_mlenn_removes_exactly_the_duplicates_first(self, with_duplicates, monkeypatch):
        """With a flat loss the loop stops at once: only the dedup step acts."""
        monkeypatch.setattr(MLENNFilter, 'individual_hamming_loss',
                            lambda self, dataset: np.zeros(len(dataset)))
        filt = MLENNFilter()
        filt.reduce(with_duplicates)

        np.testing.assert_array_equal(filt.kept_, [0, 1, 2, 4, 5, 7, 8])
        assert filt.n_iterations_ == 0


class TestMLENN:
    """Test the iterative editing loop."""

    def test_removes_worst_until_mean_drops(self, staircase, monkeypatch):
        """Losses 0.0 .. 0.9; the loop stops once the mean is below 0.15 * 0.45."""
        monkeypatch.setattr(MLENNFilter, 'individual_hamming_loss', loss_from_feature)
        filt = MLENNFilter(threshold=0.15)
        filt.reduce(staircase)

        np.testing.assert_array_equal(filt.kept_, [0, 1])
        assert filt.n_iterations_ == 8

    def test_two_distinct_losses_stop_the_loop(self, staircase, monkeypatch):
        monkeypatch.setattr(MLENNFilter, 'individual_hamming_loss', loss_from_feature)
        filt = MLENNFilter(threshold=0.0)
        filt.reduce(staircase)

        np.testing.assert_array_equal(filt.kept_, [0])
        assert filt.n_iterations_ == 9

    def test_max_iterations(self, staircase, monkeypatch, caplog):
        monkeypatch.setattr(MLENNFilter, 'individual_hamming_loss', loss_from_feature)
        filt = MLENNFilter(max_iterations=3)
        with caplog.at_level(logging.WARNING):
            filt.reduce(staircase)

        np.testing.assert_array_equal(filt.kept_, np.arange(7))
        assert "max_iterations=3" in caplog.text

    def test_clean_clusters_untouched(self, clusters):
        filt = MLENNFilter(k=3)
        losses = filt.individual_hamming_loss(clusters)
        np.testing.assert_array_equal(losses, np.zeros(len(clusters)))

        assert len(filt.reduce(clusters)) == len(clusters)

    def test_learner_without_nominal_argument(self, label_rates, random_dataset):
        filt = MLENNFilter(k=3, classifier=label_rates)
        losses = filt.individual_hamming_loss(random_dataset)
        assert losses.shape == (len(random_dataset),)

        assert 1 <= len(filt.reduce(random_dataset)) <= len(random_dataset)

    def test_losses_in_range(self, random_dataset):
        losses = MLENNFilter(k=3).individual_hamming_loss(random_dataset)
        assert losses.shape == (len(random_dataset),)
        assert np.all((losses >= 0) & (losses <= 1))

    @pytest.mark.parametrize('kwargs', [{'k': 0}, {'threshold': -1.0}])
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            MLENNFilter(**kwargs)


class TestImbalance:
    """Test imbalance ratios and label disagreement."""

    def test_imbalance_ratios(self):
        Y = np.array([[1, 1, 0], [1, 1, 0], [1, 0, 0], [1, 0, 0]])
        ir, mean_ir = imbalance_ratios(Y)
        np.testing.assert_allclose(ir, [1.0, 2.0, 1.0])
        assert np.isclose(mean_ir, 1.0)

    def test_label_disagreement(self):
        assert label_disagreement(np.array([1, 0, 1]), np.array([1, 1, 0])) == 0.5

    def test_no_active_labels_agree(self):
        assert label_disagreement(np.zeros(3), np.zeros(3)) == 0.0


class TestMLeNN:
    """Test MLeNN editing."""

    def setup_method(self):
        # Majority labelset [1, 0] at 0 .. 0.4, minority [0, 1] at 5 .. 5.2,
        # and a [1, 0] instance hidden among the minority at 5.05
        X = np.array([[0.0], [0.1], [0.2], [0.3], [0.4], [5.0], [5.1], [5.2], [5.05]])
        Y = np.array([[1, 0]] * 5 + [[0, 1]] * 3 + [[1, 0]])
        self.dataset = MLDataset(X, Y, name='mlenn-ir')

    def test_removes_majority_intruder(self):
        filt = MLeNNFilter(k=3)
        filt.reduce(self.dataset)

        np.testing.assert_array_equal(filt.kept_, np.arange(8))
        np.testing.assert_array_equal(filt.minor_labels_, [1])
        np.testing.assert_array_equal(filt.major_labels_, [0])

    def test_minority_never_removed(self):
        """Swap the intruder's labels: now every neighbour agrees or it is protected."""
        Y = self.dataset.Y.copy()
        Y[-1] = [0, 1]
        dataset = MLDataset(self.dataset.X, Y)
        filt = MLeNNFilter(k=3)
        filt.reduce(dataset)

        assert len(filt.kept_) == len(dataset)

    def test_invalid_k(self):
        with pytest.raises(ValueError):
            MLeNNFilter(k=0)
