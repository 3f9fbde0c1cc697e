"""
This file contains the two editing filters that work on the full
multi-label dataset without decomposition:
1. MLENNFilter  Iterative editing driven by per-instance Hamming loss
2. MLeNNFilter  Single-pass editing of non-minority instances (MLeNN)
"""

from typing import Optional, Tuple

import numpy as np
from sklearn.base import BaseEstimator

from mlis.dataset import MLDataset
from mlis.distances import LinearNNSearch
from mlis.filters import InstanceSelectionFilter
from mlis.log import get_logger
from mlis.oracle import MLkNN, fit_learner, pcut1_threshold

logger = get_logger(__name__)


def unique_positions(dataset: MLDataset) -> np.ndarray:
    """Positions (ascending) of the first occurrence of every identical row."""
    rows = np.hstack([dataset.Y.astype(float), dataset.X])
    _, first_rows = np.unique(rows, axis=0, return_index=True)
    return np.sort(first_rows)


def remove_duplicates(dataset: MLDataset) -> MLDataset:
    """Keeps the first occurrence of every identical (features, labels) row."""
    return dataset.subset(unique_positions(dataset))


# -----------------------------------------------------------------
#  MLENN
# -----------------------------------------------------------------

class MLENNFilter(InstanceSelectionFilter):
    """
    Editing multi-labeled data using the k-NN rule.

    After removing duplicates, every instance is predicted by a classifier
    trained on its k+1 nearest neighbours, and its individual Hamming loss
    is computed. While the mean loss stays above `threshold` times the
    first mean, the instances with the highest loss are removed and the
    losses recomputed.

    Args:
        k (int): Neighbours used to build each local classifier (k+1 are retrieved).
        threshold (float): Fraction of the initial mean Hamming loss at
                           which the editing stops.
        classifier (Optional[BaseEstimator]): Local learner, MLkNN by default.
        max_iterations (Optional[int]): Optional cap on the editing rounds.
    """

    tag = 'MLENN'

    def __init__(self,
                 k: int = 10,
                 threshold: float = 0.15,
                 classifier: Optional[BaseEstimator] = None,
                 max_iterations: Optional[int] = None):
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")
        self.k: int = k
        self.threshold: float = threshold
        self.classifier: BaseEstimator = classifier if classifier is not None else MLkNN()
        self.max_iterations: Optional[int] = max_iterations

    def individual_hamming_loss(self, dataset: MLDataset) -> np.ndarray:
        """Hamming loss of every instance predicted from its own neighbourhood."""
        X, Y = dataset.X, dataset.Y
        search = LinearNNSearch(X, dataset.nominal, skip_identical=True)
        confidences = np.zeros(Y.shape, dtype=float)

        for i in range(len(X)):
            neighbors = search.k_nearest(X[i], self.k + 1, exclude=i)
            # Nothing to learn from: every other instance shares i's features
            if neighbors.size == 0:
                continue
            model = fit_learner(self.classifier, X[neighbors], Y[neighbors], dataset.nominal)
            confidences[i] = model.predict_proba(X[i:i + 1])[0]

        cut = pcut1_threshold(confidences, dataset.label_cardinality())
        predictions = (confidences >= cut).astype(int)
        return (Y != predictions).mean(axis=1)

    def _select(self, dataset: MLDataset) -> np.ndarray:
        # Positions into the original dataset of the instances still alive
        alive = unique_positions(dataset)
        logger.debug(f"[MLENN] Removed {dataset.n_instances - alive.size} duplicates")

        current = dataset.subset(alive)
        stop_threshold: Optional[float] = None
        iteration = 0

        while len(current) > 1:
            losses = self.individual_hamming_loss(current)
            mean_loss = float(losses.mean())

            # Fixed once, from the first round
            if stop_threshold is None:
                stop_threshold = mean_loss * self.threshold
                logger.debug(f"[MLENN] Threshold: {stop_threshold:.4f}")

            if mean_loss < stop_threshold:
                break

            unique_losses = np.unique(losses)[::-1]
            logger.debug(f"[MLENN] Hamm loss: {unique_losses.tolist()}")
            # Removing the worst would remove everything
            if unique_losses.size == 1:
                break

            keep = losses < unique_losses[0]
            current = current.subset(np.flatnonzero(keep))
            alive = alive[keep]
            iteration += 1

            if unique_losses.size <= 2:
                break
            if self.max_iterations is not None and iteration >= self.max_iterations:
                logger.warning(f"[MLENN] Stopped after max_iterations={self.max_iterations}")
                break

        self.n_iterations_: int = iteration
        return alive


# -----------------------------------------------------------------
#  MLeNN
# -----------------------------------------------------------------

def imbalance_ratios(Y: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Imbalance ratio per label (most frequent label count / label count)
    and their mean. A label that never occurs gets IR 1.0 and does not
    add to the mean's numerator.
    """
    counts = np.asarray(Y).sum(axis=0)
    present = counts > 0
    ir = np.ones(counts.shape, dtype=float)
    ir[present] = counts.max() / counts[present]
    mean_ir = float(ir[present].sum() / counts.size) if counts.size else 0.0
    return ir, mean_ir


def label_disagreement(y1: np.ndarray, y2: np.ndarray) -> float:
    """
    Differing labels divided by the active labels of both vectors.

    Two vectors with no active label at all are treated as agreeing (0.0).
    """
    active = float(np.sum(y1) + np.sum(y2))
    if active == 0:
        return 0.0
    return float(np.sum(y1 != y2)) / active


class MLeNNFilter(InstanceSelectionFilter):
    """
    MLeNN: heuristic multi-label undersampling by editing.

    Labels whose imbalance ratio is above the mean are minority labels;
    an instance carrying any of them is never removed. Every other
    instance is compared with its k nearest neighbours (Euclidean over
    features and labels) and removed when more than k/2 + 1 of them
    disagree with it on more than `hamming_threshold` of the active labels.
    Removals take effect immediately for the rest of the pass.

    Args:
        k (int): Number of nearest neighbours.
        hamming_threshold (float): Disagreement above which a neighbour counts.
    """

    tag = 'MLeNN'

    def __init__(self, k: int = 3, hamming_threshold: float = 0.75):
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")
        self.k: int = k
        self.hamming_threshold: float = hamming_threshold

    def _select(self, dataset: MLDataset) -> np.ndarray:
        X, Y = dataset.X, dataset.Y
        ir, mean_ir = imbalance_ratios(Y)
        minor_labels = np.flatnonzero(ir > mean_ir)
        self.minor_labels_: np.ndarray = minor_labels
        self.major_labels_: np.ndarray = np.flatnonzero(ir < mean_ir)
        minority = Y[:, minor_labels].any(axis=1)

        # Neighbours are searched over features and labels together
        Z = np.hstack([X, Y.astype(float)])
        nominal = np.concatenate([dataset.nominal, np.zeros(dataset.n_labels, dtype=bool)])

        min_diffs = self.k // 2 + 1
        pool = np.arange(dataset.n_instances)
        search = LinearNNSearch(Z, nominal)

        position = 0
        while position < pool.size:
            current = pool[position]
            if minority[current]:
                position += 1
                continue

            neighbors = pool[search.k_nearest(Z[current], self.k, exclude=position)]
            n_diffs = sum(label_disagreement(Y[current], Y[j]) > self.hamming_threshold
                          for j in neighbors)

            if n_diffs > min_diffs:
                pool = np.delete(pool, position)
                search = LinearNNSearch(Z[pool], nominal)
            else:
                position += 1

        logger.debug(f"[MLeNN] Samples to delete: {dataset.n_instances - pool.size}/"
                     f"{dataset.n_instances} ({int(minority.sum())} minority)")
        return pool
