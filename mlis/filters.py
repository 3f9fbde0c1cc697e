"""
This file contains the multi-label instance selection filters, i.e. the
public entry points of the package. Each filter is configured in its
constructor and applied with `reduce(dataset)`, which returns a new,
smaller dataset:

1. BRFilter      Binary Relevance + vote threshold calibration
2. RAkELFilter   Label-powerset views of disjoint label subsets + votes
3. LPFilter      Label Powerset, one removal decision per instance
4. LSSmFilter    Local-set smoothing directly on the label matrix
5. LSBoFilter    Local-set border selection directly on the label matrix

The FilteredClassifier at the end reduces a training set before fitting
a multi-label learner on it.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import numpy as np
from sklearn.base import BaseEstimator

from mlis.calibration import FitnessPoint, compute_threshold, instances_under_votes
from mlis.dataset import MLDataset
from mlis.decomposition import (binary_relevance_votes, label_powerset_removal,
                                rakel_votes, random_label_partition)
from mlis.log import get_logger
from mlis.oracle import MLkNN, fit_learner
from mlis.reducers import lsbo, lssm, make_reducer

logger = get_logger(__name__)


class InstanceSelectionFilter(ABC):
    """
    Common driver of every filter: input checks, timing, the guarantee
    that at least one instance survives, and the summary log line.

    After `reduce`, `kept_` holds the positions of the retained instances
    in the input dataset and `compression_` the fraction retained.
    """

    tag: str = 'IS'

    @abstractmethod
    def _select(self, dataset: MLDataset) -> np.ndarray:
        """Positions (ascending) of the instances to keep."""

    def reduce(self, dataset: MLDataset) -> MLDataset:
        """Applies the filter and returns the reduced dataset."""
        dataset.check_not_empty()
        logger.info(f"  [{self.tag}] Filtering '{dataset.name}' "
                    f"(N={dataset.n_instances}, L={dataset.n_labels})...")
        start_time = time.time()

        kept = np.asarray(self._select(dataset), dtype=int)
        if kept.size == 0:
            logger.warning(f"  [{self.tag}] All instances have been removed, "
                           f"selected the first one instead")
            kept = np.array([0])

        self.kept_: np.ndarray = kept
        self.compression_: float = kept.size / dataset.n_instances
        self.filtering_time_: float = time.time() - start_time

        reduction_pct = (1 - self.compression_) * 100
        logger.info(f"    → {self.tag} complete. Retained {kept.size}/{dataset.n_instances} "
                    f"({reduction_pct:.1f}% reduction) in {self.filtering_time_:.2f}s")
        return dataset.subset(kept)


# -----------------------------------------------------------------
#  Binary Relevance with voting
# -----------------------------------------------------------------

class BRFilter(InstanceSelectionFilter):
    """
    Instance selection by binary relevance with voting.

    The base reducer runs once per label on a binary view; every view that
    flags an instance adds one removal vote. The vote threshold is then
    calibrated by trading the Hamming loss of `classifier` against the
    fraction of instances kept.

    Args:
        reducer (str): Base reducer name ('cnn', 'enn', 'lssm', 'lsbo',
                       'lss', 'rnge').
        reducer_params (Optional[Dict[str, Any]]): Parameters of the reducer
                                                   (e.g. {'k': 3} for ENN).
        alpha (float): Weight of the error in the fitness function.
        prop_inst_err (float): Fraction of instances used to measure error.
        seed (int): Seed of the error sample.
        min_train_size (int): Thresholds keeping fewer instances are skipped.
        classifier (Optional[BaseEstimator]): Oracle learner, MLkNN by default.
    """

    def __init__(self,
                 reducer: str = 'enn',
                 reducer_params: Optional[Dict[str, Any]] = None,
                 alpha: float = 0.95,
                 prop_inst_err: float = 0.1,
                 seed: int = 1,
                 min_train_size: int = 10,
                 classifier: Optional[BaseEstimator] = None):
        if not 0.0 <= alpha <= 1.0:
            raise ValueError(f"alpha must be in [0, 1], got {alpha}")
        if not 0.0 < prop_inst_err <= 1.0:
            raise ValueError(f"prop_inst_err must be in (0, 1], got {prop_inst_err}")

        self.reducer: str = reducer
        self.reducer_params: Dict[str, Any] = dict(reducer_params or {})
        self.alpha: float = alpha
        self.prop_inst_err: float = prop_inst_err
        self.seed: int = seed
        self.min_train_size: int = min_train_size
        self.classifier: BaseEstimator = classifier if classifier is not None else MLkNN()
        self._reducer_func = make_reducer(reducer, **self.reducer_params)

    @property
    def tag(self) -> str:
        return f"BR-{self.reducer.upper()}"

    def compute_votes(self, dataset: MLDataset) -> np.ndarray:
        """Removal votes per instance, one per binary view."""
        return binary_relevance_votes(dataset, self._reducer_func)

    def max_votes(self, dataset: MLDataset) -> int:
        return dataset.n_labels

    def _select(self, dataset: MLDataset) -> np.ndarray:
        votes = self.compute_votes(dataset)
        logger.debug(f"Final votes: {votes.tolist()}")

        threshold, points = compute_threshold(
            dataset, votes, self.max_votes(dataset),
            classifier=self.classifier,
            alpha=self.alpha,
            proportion=self.prop_inst_err,
            seed=self.seed,
            min_train_size=self.min_train_size,
        )

        self.votes_: np.ndarray = votes
        self.threshold_: int = threshold
        self.fitness_: List[FitnessPoint] = points
        logger.info(f"    [{self.tag}] Selected vote threshold {threshold}")
        return instances_under_votes(votes, threshold)


class RAkELFilter(BRFilter):
    """
    Instance selection over random label subsets.

    The labels are split into disjoint subsets of about `k` labels; the
    base reducer runs on the label-powerset view of each subset and the
    removal votes are calibrated as in BRFilter.

    Args:
        k (int): Number of labels per subset.
        m (int): Maximum number of subsets used.
        **kwargs: Any BRFilter argument.
    """

    def __init__(self, k: int = 3, m: int = 10, **kwargs):
        super().__init__(**kwargs)
        if k < 1 or m < 1:
            raise ValueError(f"k and m must be at least 1, got k={k}, m={m}")
        self.k: int = k
        self.m: int = m

    @property
    def tag(self) -> str:
        return f"RAkEL-{self.reducer.upper()}"

    def compute_votes(self, dataset: MLDataset) -> np.ndarray:
        partition = random_label_partition(dataset.n_labels, self.k, self.seed)[:self.m]
        self.partition_: List[np.ndarray] = partition
        logger.debug(f"Building {len(partition)} models of {self.k} labels")
        return rakel_votes(dataset, self._reducer_func, partition)

    def max_votes(self, dataset: MLDataset) -> int:
        # Set by compute_votes, which always runs first
        return len(self.partition_)


# -----------------------------------------------------------------
#  Label Powerset
# -----------------------------------------------------------------

class LPFilter(InstanceSelectionFilter):
    """
    Instance selection by label powerset: the base reducer runs once on
    the view whose class is the labelset, and its decision is final.

    Args:
        reducer (str): Base reducer name.
        reducer_params (Optional[Dict[str, Any]]): Parameters of the reducer.
    """

    def __init__(self, reducer: str = 'enn', reducer_params: Optional[Dict[str, Any]] = None):
        self.reducer: str = reducer
        self.reducer_params: Dict[str, Any] = dict(reducer_params or {})
        self._reducer_func = make_reducer(reducer, **self.reducer_params)

    @property
    def tag(self) -> str:
        return f"LP-{self.reducer.upper()}"

    def _select(self, dataset: MLDataset) -> np.ndarray:
        remove = label_powerset_removal(dataset, self._reducer_func)
        self.removed_: np.ndarray = remove
        return np.flatnonzero(~remove)


# -----------------------------------------------------------------
#  Local sets over the label matrix (Hamming enemies)
# -----------------------------------------------------------------

class LSSmFilter(InstanceSelectionFilter):
    """
    LSSm applied directly to multi-label data: two instances are enemies
    when their label vectors differ on more than `threshold` of the labels.

    Args:
        threshold (float): Normalised Hamming distance above which two
                           instances count as enemies.
    """

    tag = 'LSSm'

    def __init__(self, threshold: float = 0.15):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be in [0, 1], got {threshold}")
        self.threshold: float = threshold

    def _select(self, dataset: MLDataset) -> np.ndarray:
        remove = lssm(dataset.X, dataset.Y, self.threshold, dataset.nominal)
        return np.flatnonzero(~remove)


class LSBoFilter(LSSmFilter):
    """
    LSBo applied directly to multi-label data.

    Args:
        threshold (float): Enemy threshold of the LSSm pre-filter.
        threshold_lsb (float): Enemy threshold of the border selection.
    """

    tag = 'LSBo'

    def __init__(self, threshold: float = 0.15, threshold_lsb: float = 0.15):
        super().__init__(threshold)
        if not 0.0 <= threshold_lsb <= 1.0:
            raise ValueError(f"threshold_lsb must be in [0, 1], got {threshold_lsb}")
        self.threshold_lsb: float = threshold_lsb

    def _select(self, dataset: MLDataset) -> np.ndarray:
        remove = lsbo(dataset.X, dataset.Y, self.threshold, self.threshold_lsb, dataset.nominal)
        return np.flatnonzero(~remove)


# -----------------------------------------------------------------
#  Filter, then classify
# -----------------------------------------------------------------

class FilteredClassifier:
    """
    Runs a multi-label classifier on a training set that has first been
    passed through an instance selection filter. Test instances are
    never filtered.

    Args:
        selector (InstanceSelectionFilter): The filter (BR-ENN by default).
        classifier (Optional[BaseEstimator]): The learner (MLkNN by default).
    """

    def __init__(self,
                 selector: Optional[InstanceSelectionFilter] = None,
                 classifier: Optional[BaseEstimator] = None):
        self.selector = selector if selector is not None else BRFilter()
        self.classifier = classifier if classifier is not None else MLkNN()

    def fit(self, train: MLDataset) -> 'FilteredClassifier':
        reduced = self.selector.reduce(train)
        self.filtering_time_: float = self.selector.filtering_time_
        self.compression_: float = self.selector.compression_
        self.model_ = fit_learner(self.classifier, reduced.X, reduced.Y, reduced.nominal)
        return self

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        return self.model_.predict_proba(X)
