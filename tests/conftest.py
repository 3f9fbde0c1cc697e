"""
Shared fixtures: small hand-built multi-label datasets and a learner
with a plain fit(X, Y).
"""

import numpy as np
import pytest
from sklearn.base import BaseEstimator

from mlis.dataset import MLDataset


def two_clusters(per_cluster: int = 6, noise: bool = False) -> MLDataset:
    """
    Cluster A around x=0 with labels [1, 0], cluster B around x=5 with
    labels [0, 1]. With `noise`, one B-labelled instance sits inside A
    as the last row.
    """
    xs = [0.1 * i for i in range(per_cluster)] + [5 + 0.1 * i for i in range(per_cluster)]
    Y = [[1, 0]] * per_cluster + [[0, 1]] * per_cluster
    if noise:
        xs.append(0.15)
        Y.append([0, 1])
    return MLDataset(np.array(xs).reshape(-1, 1), np.array(Y), name='two-clusters')


@pytest.fixture
def clusters() -> MLDataset:
    return two_clusters()


@pytest.fixture
def noisy_clusters() -> MLDataset:
    return two_clusters(per_cluster=4, noise=True)


@pytest.fixture
def random_dataset() -> MLDataset:
    """40 instances, 2 features, 3 labels loosely tied to the features."""
    rng = np.random.default_rng(0)
    X = rng.normal(size=(40, 2))
    Y = np.column_stack([
        X[:, 0] > 0,
        X[:, 1] > 0,
        X.sum(axis=1) > 0.5,
    ]).astype(int)
    flip = rng.random(Y.shape) < 0.1
    Y[flip] = 1 - Y[flip]
    return MLDataset(X, Y, name='random')


class LabelRates(BaseEstimator):
    """Predicts every label with its training frequency. Its fit takes no nominal mask."""

    def fit(self, X, Y):
        self.rates_ = np.asarray(Y, dtype=float).mean(axis=0)
        return self

    def predict_proba(self, X):
        return np.tile(self.rates_, (len(X), 1))


@pytest.fixture
def label_rates() -> LabelRates:
    return LabelRates()
