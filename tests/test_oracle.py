"""
Tests for the multi-label k-NN oracles, the PCut1 threshold and evaluate().

Run with: pytest tests/test_oracle.py -v
"""

import numpy as np
import pytest
from sklearn.base import clone

from mlis.dataset import MLDataset
from mlis.oracle import (HAMMING_LOSS, DistanceWeightedKNN, MLkNN, evaluate, fit_learner,
                         pcut1_threshold)


@pytest.fixture
def separable():
    # Label 0 on the left cluster, label 1 on the right one
    X = np.array([[0.0], [0.1], [0.2], [0.3], [5.0], [5.1], [5.2], [5.3]])
    Y = np.array([[1, 0]] * 4 + [[0, 1]] * 4)
    return MLDataset(X, Y, name='separable')


class TestMLkNN:
    """Test ML-kNN posteriors."""

    def test_posteriors(self, separable):
        """
        prior = 1/2 for both labels; with k=3 every neighbourhood is pure,
        so P(c=3 | active) = 5/8 and P(c=3 | inactive) = 1/8.
        """
        model = MLkNN(k=3).fit(separable.X, separable.Y)
        confidences = model.predict_proba(np.array([[0.05]]))
        np.testing.assert_allclose(confidences, [[5 / 6, 1 / 6]])

    def test_k_capped_by_training_size(self, separable):
        model = MLkNN(k=50).fit(separable.X, separable.Y)
        assert model.k_ == len(separable) - 1
        assert model.predict_proba(separable.X).shape == (8, 2)

    def test_sklearn_protocol(self):
        model = clone(MLkNN(k=5))
        assert model.k == 5
        assert 'k=5' in repr(model)

    def test_empty_training_set(self):
        with pytest.raises(ValueError):
            MLkNN().fit(np.empty((0, 1)), np.empty((0, 2)))


class TestDistanceWeightedKNN:
    """Test inverse-distance label averaging."""

    def test_exact_match_dominates(self):
        X = np.array([[0.0], [1.0]])
        Y = np.array([[1, 0], [0, 1]])
        model = DistanceWeightedKNN(k=2).fit(X, Y)
        np.testing.assert_allclose(model.predict_proba(np.array([[0.0]])), [[1.0, 0.0]], atol=1e-6)

    def test_equidistant_neighbours_average(self):
        X = np.array([[0.0], [2.0]])
        Y = np.array([[1, 0], [0, 1]])
        model = DistanceWeightedKNN(k=2).fit(X, Y)
        np.testing.assert_allclose(model.predict_proba(np.array([[1.0]])), [[0.5, 0.5]])

    def test_invalid_k(self):
        with pytest.raises(ValueError):
            DistanceWeightedKNN(k=0).fit(np.zeros((2, 1)), np.zeros((2, 1)))


class TestPCut1:
    """Test the cardinality-matching threshold."""

    def setup_method(self):
        self.confidences = np.array([[0.9, 0.1],
                                     [0.2, 0.8]])

    def test_midpoint(self):
        assert np.isclose(pcut1_threshold(self.confidences, 1.0), 0.5)

    def test_predict_nothing(self):
        cut = pcut1_threshold(self.confidences, 0.0)
        assert not (self.confidences >= cut).any()

    def test_predict_everything(self):
        cut = pcut1_threshold(self.confidences, 2.0)
        assert (self.confidences >= cut).all()

    def test_empty(self):
        assert pcut1_threshold(np.empty((0, 2)), 1.0) == 0.5


class TestEvaluate:
    """Test train-then-measure evaluation."""

    def test_perfect_fit(self, separable):
        result = evaluate(MLkNN(k=3), separable, separable)
        assert result[HAMMING_LOSS] == 0.0
        assert result['Exact match'] == 1.0
        assert result['Label cardinality'] == 1.0

    def test_fixed_threshold(self, separable):
        result = evaluate(MLkNN(k=3), separable, separable, threshold=0.99)
        # No confidence reaches 0.99: every active label is missed
        assert result['Threshold'] == 0.99
        assert result[HAMMING_LOSS] == 0.5

    def test_classifier_left_unfitted(self, separable):
        classifier = MLkNN(k=3)
        evaluate(classifier, separable, separable)
        assert not hasattr(classifier, 'search_')

    def test_learner_without_nominal_argument(self, label_rates, separable):
        result = evaluate(label_rates, separable, separable)
        assert 0.0 <= result[HAMMING_LOSS] <= 1.0
        assert not hasattr(label_rates, 'rates_')


class TestFitLearner:
    """Test fitting fresh clones with and without the nominal mask."""

    def test_nominal_reaches_knn(self, separable):
        nominal = np.array([True])
        model = fit_learner(MLkNN(k=1), separable.X, separable.Y, nominal)
        assert model.search_.nominal is nominal

    def test_plain_fit(self, label_rates, separable):
        model = fit_learner(label_rates, separable.X, separable.Y, np.array([False]))
        assert model is not label_rates
        np.testing.assert_allclose(model.rates_, [0.5, 0.5])
