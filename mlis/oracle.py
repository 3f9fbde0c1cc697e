"""
This file contains the multi-label k-NN learners used as evaluation
oracles, plus the evaluation entry point that the threshold calibrator
and MLENN call:
1. MLkNN (Zhang & Zhou), the default oracle
2. DistanceWeightedKNN, inverse-distance label averaging
3. pcut1_threshold, the "PCut1" confidence threshold
4. fit_learner, fit a fresh clone of any multi-label learner
5. evaluate, train on one set and measure Hamming loss on another

Both learners follow the scikit-learn estimator protocol, so the
calibrator can `clone` a fresh copy for every evaluation and log the
classifier specification through its repr. Any other estimator with
`fit(X, Y)` and a `predict_proba` returning an (n, L) confidence matrix
works as an oracle too.
"""

import inspect
from typing import Dict, Optional, Union

import numpy as np
from sklearn.base import BaseEstimator, clone

from mlis.dataset import MLDataset
from mlis.distances import LinearNNSearch, euclidean_to_all, hamming_loss

# --- Type Aliases ---
Threshold = Union[str, float]

HAMMING_LOSS = 'Hamming loss'


class MLkNN(BaseEstimator):
    """
    Multi-label k-nearest-neighbour classifier (ML-kNN).

    For every label, the posterior of the label being active is computed
    from a smoothed prior and from how many of the k nearest training
    neighbours carry the label.

    Args:
        k (int): The number of neighbours to retrieve.
        smooth (float): Laplace smoothing of the prior and the
                        conditional counts.
    """

    def __init__(self, k: int = 10, smooth: float = 1.0):
        self.k = k
        self.smooth = smooth

    def fit(self, X: np.ndarray, Y: np.ndarray,
            nominal: Optional[np.ndarray] = None) -> 'MLkNN':
        """Stores the instance base and estimates prior and conditional tables."""
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=int)
        n, n_labels = Y.shape
        if n == 0:
            raise ValueError("Cannot fit MLkNN on an empty training set")

        self.search_ = LinearNNSearch(X, nominal)
        self.Y_train_ = Y
        # Neighbours available to a training instance once it excludes itself
        self.k_ = max(0, min(self.k, n - 1))

        s = self.smooth
        self.prior_ = (s + Y.sum(axis=0)) / (2 * s + n)

        # c[i, l] = how many of i's neighbours carry label l
        counts = np.array([
            Y[self.search_.k_nearest(X[i], self.k_, exclude=i)].sum(axis=0)
            for i in range(n)
        ]).reshape(n, n_labels)

        self.cond_true_ = np.zeros((n_labels, self.k_ + 1))
        self.cond_false_ = np.zeros((n_labels, self.k_ + 1))
        for label in range(n_labels):
            active = Y[:, label] == 1
            c_true = np.bincount(counts[active, label], minlength=self.k_ + 1)
            c_false = np.bincount(counts[~active, label], minlength=self.k_ + 1)
            self.cond_true_[label] = (s + c_true) / (s * (self.k_ + 1) + c_true.sum())
            self.cond_false_[label] = (s + c_false) / (s * (self.k_ + 1) + c_false.sum())

        return self

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        """Per-label confidences in [0, 1], shape (n, L)."""
        X = np.asarray(X, dtype=float)
        n_labels = self.Y_train_.shape[1]
        confidences = np.zeros((len(X), n_labels))
        labels = np.arange(n_labels)

        for row, query in enumerate(X):
            neighbors = self.search_.k_nearest(query, self.k_)
            counts = self.Y_train_[neighbors].sum(axis=0)

            p_true = self.prior_ * self.cond_true_[labels, counts]
            p_false = (1 - self.prior_) * self.cond_false_[labels, counts]
            total = p_true + p_false
            confidences[row] = np.divide(p_true, total, out=self.prior_.copy(), where=total > 0)

        return confidences


class DistanceWeightedKNN(BaseEstimator):
    """
    Multi-label k-NN where each neighbour's label vector is weighted by
    the inverse of its distance to the query.

    Args:
        k (int): The number of neighbours to retrieve.
    """

    def __init__(self, k: int = 10):
        self.k = k

    def fit(self, X: np.ndarray, Y: np.ndarray,
            nominal: Optional[np.ndarray] = None) -> 'DistanceWeightedKNN':
        Y = np.asarray(Y, dtype=int)
        if self.k < 1:
            raise ValueError(f"k must be at least 1, got {self.k}")
        if Y.shape[0] == 0:
            raise ValueError("Cannot fit DistanceWeightedKNN on an empty training set")
        self.X_train_ = np.asarray(X, dtype=float)
        self.Y_train_ = Y
        self.nominal_ = nominal
        self.search_ = LinearNNSearch(self.X_train_, nominal)
        return self

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        confidences = np.zeros((len(X), self.Y_train_.shape[1]))

        for row, query in enumerate(X):
            neighbors = self.search_.k_nearest(query, self.k)
            distances = euclidean_to_all(query, self.X_train_[neighbors], self.nominal_)
            # Exact matches dominate without dividing by zero
            weights = 1.0 / np.maximum(distances, 1e-9)
            confidences[row] = weights @ self.Y_train_[neighbors] / weights.sum()

        return confidences


def pcut1_threshold(confidences: np.ndarray, label_cardinality: float) -> float:
    """
    Calibrates one threshold so that the number of predicted labels
    matches `label_cardinality` (usually the training set's) as closely
    as the confidences allow.
    """
    values = np.sort(np.asarray(confidences, dtype=float).ravel())
    if values.size == 0:
        return 0.5

    n_instances = confidences.shape[0]
    n_positive = int(round(label_cardinality * n_instances))
    n_positive = min(max(n_positive, 0), values.size)

    if n_positive == 0:
        # Strictly above every confidence: predict nothing
        return float(np.nextafter(values[-1], np.inf))
    if n_positive == values.size:
        return float(values[0])

    i = values.size - n_positive
    return max(float(values[i - 1] + values[i]) / 2.0, 1e-5)


def fit_learner(classifier: BaseEstimator,
                X: np.ndarray,
                Y: np.ndarray,
                nominal: Optional[np.ndarray] = None) -> BaseEstimator:
    """Fits a fresh clone; `nominal` only reaches learners whose fit accepts it."""
    model = clone(classifier)
    if 'nominal' in inspect.signature(model.fit).parameters:
        return model.fit(X, Y, nominal=nominal)
    return model.fit(X, Y)


def evaluate(classifier: BaseEstimator,
             train: MLDataset,
             test: MLDataset,
             threshold: Threshold = 'PCut1') -> Dict[str, float]:
    """
    Trains a fresh clone of `classifier` on `train` and measures it on `test`.

    Args:
        classifier (BaseEstimator): Multi-label learner with fit/predict_proba.
        train (MLDataset): Training set.
        test (MLDataset): Evaluation set.
        threshold (Threshold): 'PCut1' to calibrate on the training label
                               cardinality, or a fixed float.

    Returns:
        Dict[str, float]: 'Hamming loss', 'Exact match', 'Threshold' and
                          'Label cardinality' (of the predictions).
    """
    model = fit_learner(classifier, train.X, train.Y, train.nominal)
    confidences = model.predict_proba(test.X)

    if threshold == 'PCut1':
        cut = pcut1_threshold(confidences, train.label_cardinality())
    else:
        cut = float(threshold)

    Y_pred = (confidences >= cut).astype(int)

    return {
        HAMMING_LOSS: hamming_loss(test.Y, Y_pred),
        'Exact match': float(np.mean(np.all(test.Y == Y_pred, axis=1))) if len(test) else 0.0,
        'Threshold': cut,
        'Label cardinality': float(Y_pred.sum(axis=1).mean()) if len(test) else 0.0,
    }
