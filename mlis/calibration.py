"""
This file turns accumulated removal votes into a keep/remove decision.

Every candidate threshold t keeps the instances with fewer than t votes.
Each candidate is scored with

    f(t) = alpha * error(t) + (1 - alpha) * memory(t)

where memory is the fraction of instances kept and error is the Hamming
loss of a multi-label classifier trained on the kept instances and
tested on a seeded random sample of the original set. The threshold with
the lowest fitness wins.
"""

from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

import numpy as np
from sklearn.base import BaseEstimator

from mlis.dataset import MLDataset
from mlis.log import get_logger
from mlis.oracle import HAMMING_LOSS, MLkNN, evaluate

logger = get_logger(__name__)

# --- Type Aliases ---
Evaluator = Callable[[BaseEstimator, MLDataset, MLDataset], Dict[str, float]]


class FitnessPoint(NamedTuple):
    threshold: int
    error: float
    memory: float
    fitness: float


def random_subset(n: int, proportion: float, seed: int) -> np.ndarray:
    """
    Positions of round(proportion * n) instances (at least one) drawn
    from a permutation seeded with `seed`. Halves round up, so 25 instances
    at 0.1 give a sample of 3.
    """
    if not 0.0 < proportion <= 1.0:
        raise ValueError(f"proportion must be in (0, 1], got {proportion}")

    num = min(max(1, int(np.floor(n * proportion + 0.5))), n)
    return np.random.default_rng(seed).permutation(n)[:num]


def instances_under_votes(votes: np.ndarray, threshold: int) -> np.ndarray:
    """Positions of the instances with strictly fewer than `threshold` votes."""
    return np.flatnonzero(np.asarray(votes) < threshold)


def compute_threshold(dataset: MLDataset,
                      votes: np.ndarray,
                      max_votes: int,
                      classifier: Optional[BaseEstimator] = None,
                      alpha: float = 0.95,
                      proportion: float = 0.1,
                      seed: int = 1,
                      min_train_size: int = 10,
                      evaluator: Evaluator = evaluate) -> Tuple[int, List[FitnessPoint]]:
    """
    Scans t = 1 .. max_votes + 1 and returns the threshold of minimum fitness.

    Args:
        dataset (MLDataset): The original (unreduced) dataset.
        votes (np.ndarray): Removal votes per instance.
        max_votes (int): Largest possible vote (number of views).
        classifier (Optional[BaseEstimator]): Oracle learner, MLkNN by default.
        alpha (float): Weight of the error term in [0, 1].
        proportion (float): Fraction of instances used as the test sample.
        seed (int): Seed of the test sample.
        min_train_size (int): Candidates keeping fewer instances are skipped.
        evaluator (Evaluator): Callable returning a dict with 'Hamming loss'.

    Returns:
        Tuple[int, List[FitnessPoint]]:
            - The chosen threshold.
            - One point per evaluated candidate, in scan order.
    """
    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"alpha must be in [0, 1], got {alpha}")
    dataset.check_not_empty()
    if classifier is None:
        classifier = MLkNN()

    n = dataset.n_instances
    test_set = dataset.subset(random_subset(n, proportion, seed))

    points: List[FitnessPoint] = []
    best_threshold: Optional[int] = None
    min_fitness = np.inf

    for threshold in range(1, max_votes + 2):
        kept = instances_under_votes(votes, threshold)

        if len(kept) >= min_train_size:
            try:
                error = evaluator(classifier, dataset.subset(kept), test_set)[HAMMING_LOSS]
            except Exception as exc:
                logger.error(f"Failed to evaluate dataset '{dataset.name}' with classifier: "
                             f"{classifier!r} ({exc!r}); skipping threshold {threshold}")
                error = None

            if error is not None:
                memory = len(kept) / n
                fitness = alpha * error + (1.0 - alpha) * memory
                points.append(FitnessPoint(threshold, error, memory, fitness))
                logger.debug(f"Mem: {memory:.4f}, HammLoss: {error:.4f} "
                             f"=> Fitness for {threshold}: {fitness:.4f}")

                # Strict comparison: the lowest threshold wins ties
                if fitness < min_fitness:
                    min_fitness = fitness
                    best_threshold = threshold

        # Larger thresholds cannot keep more than the whole set
        if len(kept) == n:
            break

    if best_threshold is None:
        best_threshold = max_votes + 1
        logger.warning(f"No threshold could be evaluated on '{dataset.name}' "
                       f"(n={n}, min_train_size={min_train_size}); keeping every instance")

    return best_threshold, points
