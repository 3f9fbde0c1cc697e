"""
This file provides the distance functions and the linear nearest-neighbour
search used by the instance selection algorithms:
1. Euclidean (raw, never range-normalised) over feature vectors
2. Hamming over binary label vectors
3. LinearNNSearch, a brute-force neighbour index over a pool snapshot

Distances are never normalised by the pool's ranges, so the scale stays
the same while CNN/ENN shrink or grow the pool. Use
`mlis.io.normalize_features` beforehand when scaling is wanted.
"""

from typing import Optional

import numpy as np


def euclidean_distance(x1: np.ndarray, x2: np.ndarray,
                       nominal: Optional[np.ndarray] = None) -> float:
    """
    Calculates the Euclidean distance (L2 norm).
    d(q,x) = sqrt( sum( delta(q_f, x_f)^2 ) )

    Nominal features use the overlap metric: delta is 0 when the
    (label-encoded) values match and 1 otherwise.
    """
    diff = np.asarray(x1, dtype=float) - np.asarray(x2, dtype=float)
    if nominal is not None and nominal.any():
        diff = np.where(nominal, (diff != 0).astype(float), diff)
    return float(np.sqrt((diff ** 2).sum()))


def euclidean_to_all(target: np.ndarray, X: np.ndarray,
                     nominal: Optional[np.ndarray] = None) -> np.ndarray:
    """Distances from `target` to every row of `X`."""
    diff = X - np.asarray(target, dtype=float)
    if nominal is not None and nominal.any():
        diff = np.where(nominal, (diff != 0).astype(float), diff)
    return np.sqrt((diff ** 2).sum(axis=1))


def pairwise_euclidean(X: np.ndarray,
                       nominal: Optional[np.ndarray] = None) -> np.ndarray:
    """Full (n x n) distance matrix. O(n^2) memory."""
    diff = X[:, None, :] - X[None, :, :]
    if nominal is not None and nominal.any():
        diff = np.where(nominal, (diff != 0).astype(float), diff)
    return np.sqrt((diff ** 2).sum(axis=2))


def hamming_distance(y1: np.ndarray, y2: np.ndarray) -> int:
    """Number of labels on which two label vectors disagree."""
    return int(np.sum(np.asarray(y1) != np.asarray(y2)))


def hamming_loss(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Fraction of label predictions that disagree with the ground truth,
    averaged over labels (and over instances for 2-D input).
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if y_true.size == 0:
        return 0.0
    return float(np.mean(y_true != y_pred))


class LinearNNSearch:
    """
    Brute-force nearest-neighbour search over a fixed pool.

    The index keeps its own copy of the pool, so it never sees later
    changes: callers that add or remove pool members build a new search.
    Returned neighbours are pool positions, ordered by ascending distance
    with ties resolved by pool order.

    Args:
        X (np.ndarray): Pool feature matrix.
        nominal (Optional[np.ndarray]): Nominal feature mask.
        skip_identical (bool): Ignore pool members at distance 0 from
                               the query (duplicates of the query).
    """

    def __init__(self,
                 X: np.ndarray,
                 nominal: Optional[np.ndarray] = None,
                 skip_identical: bool = False):
        self.X: np.ndarray = np.array(X, dtype=float, copy=True)
        self.nominal: Optional[np.ndarray] = nominal
        self.skip_identical: bool = skip_identical

    def __len__(self) -> int:
        return self.X.shape[0]

    def _candidate_distances(self, target: np.ndarray,
                             exclude: Optional[int]) -> np.ndarray:
        distances = euclidean_to_all(target, self.X, self.nominal)
        if exclude is not None:
            distances[exclude] = np.inf
        if self.skip_identical:
            distances[distances == 0] = np.inf
        return distances

    def nearest(self, target: np.ndarray, exclude: Optional[int] = None) -> int:
        """Pool position of the single nearest neighbour, or -1 if none."""
        if len(self) == 0:
            return -1
        distances = self._candidate_distances(target, exclude)
        position = int(np.argmin(distances))
        if np.isinf(distances[position]):
            return -1
        return position

    def k_nearest(self, target: np.ndarray, k: int,
                  exclude: Optional[int] = None) -> np.ndarray:
        """
        Pool positions of the (at most) k nearest neighbours.

        The stable sort keeps pool order among equidistant members.
        """
        if k < 1 or len(self) == 0:
            return np.empty(0, dtype=int)
        distances = self._candidate_distances(target, exclude)
        order = np.argsort(distances, kind='stable')
        order = order[~np.isinf(distances[order])]
        return order[:k]
