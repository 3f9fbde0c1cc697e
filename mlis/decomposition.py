"""
This file adapts a multi-label dataset to the single-label reducers.

- Binary Relevance (BR): one binary view per label, removal votes summed.
- Label Powerset (LP): one multiclass view whose class is the labelset.
- Label partitions (RAkEL-style): one LP view per disjoint label subset,
  removal votes summed as in BR.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from mlis.dataset import MLDataset, View
from mlis.log import get_logger
from mlis.reducers import ReducerFunc

logger = get_logger(__name__)


def binary_view(dataset: MLDataset, label: int) -> View:
    """Features plus the `label`-th column as a 0/1 class."""
    return dataset.X, dataset.Y[:, label].astype(int)


def labelset_transform(Y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Maps each distinct label vector to a class id.

    Ids are handed out in order of first appearance (ascending row index),
    so the transformation is deterministic.

    Returns:
        Tuple[np.ndarray, np.ndarray]:
            - The class id of every row.
            - The distinct labelsets, row `c` being the labelset of class c.
    """
    Y = np.asarray(Y, dtype=int)
    labelsets, first_rows, inverse = np.unique(Y, axis=0, return_index=True,
                                               return_inverse=True)
    inverse = np.asarray(inverse).reshape(-1)

    # np.unique sorts lexicographically; renumber by first appearance
    by_appearance = np.argsort(first_rows, kind='stable')
    renumber = np.empty_like(by_appearance)
    renumber[by_appearance] = np.arange(by_appearance.size)

    return renumber[inverse], labelsets[by_appearance]


def labelset_view(dataset: MLDataset, labels: Optional[Sequence[int]] = None) -> View:
    """Features plus the labelset id (over `labels`, default all) as class."""
    Y = dataset.Y if labels is None else dataset.Y[:, list(labels)]
    classes, _ = labelset_transform(Y)
    return dataset.X, classes


def binary_relevance_votes(dataset: MLDataset, reducer: ReducerFunc) -> np.ndarray:
    """
    Runs `reducer` once per label and counts, per instance, how many of
    the L binary views flagged it. Votes range over [0, L].
    """
    votes = np.zeros(dataset.n_instances, dtype=int)

    for label in range(dataset.n_labels):
        X, y = binary_view(dataset, label)
        votes += reducer(X, y, nominal=dataset.nominal)
        logger.debug(f"[BR] Votes after label {label}: {votes.tolist()}")

    return votes


def label_powerset_removal(dataset: MLDataset, reducer: ReducerFunc) -> np.ndarray:
    """Runs `reducer` once on the labelset view; its mask is final."""
    X, classes = labelset_view(dataset)
    logger.debug(f"[LP] Filtering view (K = {int(classes.max()) + 1}, N = {len(classes)})")
    return np.asarray(reducer(X, classes, nominal=dataset.nominal), dtype=bool)


def random_label_partition(n_labels: int, k: int, seed: int) -> List[np.ndarray]:
    """
    Splits the label indices into max(1, n_labels // k) disjoint subsets
    of (nearly) k labels each, after a seeded shuffle.
    """
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")

    rng = np.random.default_rng(seed)
    shuffled = rng.permutation(n_labels)
    n_subsets = max(1, n_labels // k)

    return [np.sort(part) for part in np.array_split(shuffled, n_subsets)]


def rakel_votes(dataset: MLDataset, reducer: ReducerFunc,
                partition: Sequence[np.ndarray]) -> np.ndarray:
    """
    Runs `reducer` on one labelset view per label subset and counts the
    removal votes. Votes range over [0, len(partition)].
    """
    votes = np.zeros(dataset.n_instances, dtype=int)

    for model, labels in enumerate(partition):
        X, classes = labelset_view(dataset, labels)
        votes += reducer(X, classes, nominal=dataset.nominal)
        logger.debug(f"[RAkEL] Model {model + 1}/{len(partition)} over labels {labels.tolist()}")

    return votes
