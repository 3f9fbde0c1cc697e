"""
This file contains the from-scratch implementations of the single-label
Instance Reduction (IR) algorithms that the multi-label filters build on:
1. Condensed Nearest Neighbour (CNN)
2. Edited Nearest Neighbour (ENN)
3. Local Set-based Smoother (LSSm), also usable on a label matrix
4. Local Set Border selector (LSBo)
5. Local Set Statistic pruning (LSS)
6. Relative Neighbourhood Graph Editing (RNGE)

Every function takes a view (X, y) and returns a boolean removal mask of
length n. The inputs are never modified; algorithms that shrink or grow
a working pool do so on index lists.
"""

import functools
import inspect
from typing import Callable, Dict, List, Optional

import numpy as np

from mlis.distances import LinearNNSearch, pairwise_euclidean
from mlis.local_sets import compute_local_sets, harmfulness, usefulness
from mlis.log import get_logger
from mlis.voting import is_misclassified

logger = get_logger(__name__)

# --- Type Aliases ---
RemovalMask = np.ndarray  # bool, True = remove
ReducerFunc = Callable[..., RemovalMask]


def _n_classes(y: np.ndarray) -> int:
    return int(y.max()) + 1 if y.size else 0


# -----------------------------------------------------------------
#  Algorithm 1: Condensed Nearest Neighbour (CNN)
# -----------------------------------------------------------------

def cnn(X: np.ndarray, y: np.ndarray, nominal: Optional[np.ndarray] = None) -> RemovalMask:
    """
    Performs Hart's Condensed Nearest Neighbour (CNN) reduction.

    The store S starts with the first instance of every class. The whole
    set is scanned; the first instance whose nearest neighbour in S has a
    different class is added to S and the scan restarts from position 0.
    Instances never added to S are removed.
    """
    n = len(X)
    y = np.asarray(y, dtype=int)
    selected = np.zeros(n, dtype=bool)

    # 1. Initialize S with the first occurrence of each class, in index order
    _, first_occurrences = np.unique(y, return_index=True)
    S_indices: List[int] = sorted(int(i) for i in first_occurrences)
    selected[S_indices] = True

    search = LinearNNSearch(X[S_indices], nominal)
    additions = 0

    i = 0
    while i < n:
        if not selected[i]:
            # 2. Nearest neighbour of the i-th instance in the current S
            nearest = S_indices[search.nearest(X[i])]

            # 3. Misclassified: add it to S, rebuild the index, restart
            if y[nearest] != y[i]:
                selected[i] = True
                S_indices.append(i)
                search = LinearNNSearch(X[S_indices], nominal)
                additions += 1
                i = 0
                continue
        i += 1

    logger.debug(f"[CNN] Kept {selected.sum()}/{n} after {additions} additions")
    return ~selected


# -----------------------------------------------------------------
#  Algorithm 2: Edited Nearest Neighbour (ENN)
# -----------------------------------------------------------------

def enn(X: np.ndarray, y: np.ndarray, k: int = 3,
        nominal: Optional[np.ndarray] = None) -> RemovalMask:
    """
    Performs Wilson's Edited Nearest Neighbour (ENN) reduction.

    Instances are visited from last to first. Each one is classified by
    the majority class of its k nearest neighbours in the current pool;
    a misclassified instance leaves the pool at once, so later decisions
    only see the instances that survived so far.
    """
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")

    n = len(X)
    y = np.asarray(y, dtype=int)
    n_classes = _n_classes(y)
    remove = np.zeros(n, dtype=bool)

    pool = np.arange(n)
    search = LinearNNSearch(X, nominal)

    for i in range(n - 1, -1, -1):
        # Every index below i is still in the pool, so i sits at position i
        neighbors = pool[search.k_nearest(X[i], k, exclude=i)]

        if is_misclassified(y[i], y[neighbors], n_classes):
            remove[i] = True
            pool = np.delete(pool, i)
            search = LinearNNSearch(X[pool], nominal)

    logger.debug(f"[ENN] Removed {remove.sum()}/{n} (k={k})")
    return remove


# -----------------------------------------------------------------
#  Algorithm 3: Local Set-based Smoother (LSSm)
# -----------------------------------------------------------------

def lssm(X: np.ndarray, y: np.ndarray, threshold: float = 0.15,
         nominal: Optional[np.ndarray] = None) -> RemovalMask:
    """
    Performs LSSm noise removal.

    u(e) counts the local sets containing e (how often e helps to classify
    its neighbours) and h(e) counts the instances whose nearest enemy is e
    (how often it harms them). e is kept iff u(e) >= h(e).

    `y` can be a class vector or, for direct multi-label use, a label
    matrix; in the latter case two instances are enemies when they
    disagree on more than `threshold` of their labels.
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be in [0, 1], got {threshold}")

    n = len(X)
    local_sets, nearest_enemies = compute_local_sets(X, y, threshold, nominal)
    u = usefulness(local_sets, n)
    h = harmfulness(nearest_enemies, n)

    remove = u < h
    logger.debug(f"[LSSm] Removed {remove.sum()}/{n} (threshold={threshold})")
    return remove


# -----------------------------------------------------------------
#  Algorithm 4: Local Set Border selector (LSBo)
# -----------------------------------------------------------------

def lsbo(X: np.ndarray, y: np.ndarray, threshold: float = 0.15,
         threshold_lsb: float = 0.15,
         nominal: Optional[np.ndarray] = None) -> RemovalMask:
    """
    Performs LSBo border selection.

    1. LSSm (with `threshold`) removes the noisy instances.
    2. Local sets of the survivors are recomputed (with `threshold_lsb`).
    3. Survivors are visited by descending local-set cardinality; one is
       kept iff its local set shares no index with the local sets of the
       instances kept before it.
    """
    n = len(X)
    y = np.asarray(y)
    remove = np.ones(n, dtype=bool)

    survivors = np.flatnonzero(~lssm(X, y, threshold, nominal))
    if survivors.size == 0:
        logger.warning("[LSBo] LSSm removed every instance, keeping the first one instead")
        remove[0] = False
        return remove

    local_sets, _ = compute_local_sets(X[survivors], y[survivors], threshold_lsb, nominal)

    # Stable sort: equal cardinalities stay in index order
    cardinality = np.array([len(ls) for ls in local_sets])
    order = np.argsort(-cardinality, kind='stable')

    covered = np.zeros(survivors.size, dtype=bool)
    kept: List[int] = []
    for current in order:
        if not covered[local_sets[current]].any():
            kept.append(int(current))
            covered[local_sets[current]] = True

    if not kept:
        logger.warning("[LSBo] Empty solution, keeping the first filtered instance instead")
        kept = [0]

    remove[survivors[kept]] = False
    logger.debug(f"[LSBo] LSSm kept {survivors.size}/{n}, LSBo kept {len(kept)}")
    return remove


# -----------------------------------------------------------------
#  Algorithm 5: Local Set Statistic pruning (LSS)
# -----------------------------------------------------------------

def lss(X: np.ndarray, y: np.ndarray, nominal: Optional[np.ndarray] = None) -> RemovalMask:
    """
    u(e)/h(e) pruning on a single-label view: enemies are simply the
    instances of another class. e is kept iff u(e) >= h(e).
    """
    y = np.asarray(y)
    if y.ndim != 1:
        raise ValueError("LSS works on a single-label view; use lssm for a label matrix")

    n = len(X)
    local_sets, nearest_enemies = compute_local_sets(X, y, nominal=nominal)
    return usefulness(local_sets, n) < harmfulness(nearest_enemies, n)


# -----------------------------------------------------------------
#  Algorithm 6: Relative Neighbourhood Graph Editing (RNGE)
# -----------------------------------------------------------------

def rnge(X: np.ndarray, y: np.ndarray, order: int = 1,
         nominal: Optional[np.ndarray] = None) -> RemovalMask:
    """
    Performs graph-based editing.

    Each instance is joined to its nearest neighbour by an undirected
    edge, so an instance may end up with several graph neighbours. An
    instance misclassified by the majority of its graph neighbours is
    removed (first order). In second order the neighbour set is first
    extended with the neighbours of every same-class neighbour, and the
    instance is removed only if it is still misclassified.
    """
    if order not in (1, 2):
        raise ValueError(f"order must be 1 or 2, got {order}")

    n = len(X)
    y = np.asarray(y, dtype=int)
    n_classes = _n_classes(y)
    remove = np.zeros(n, dtype=bool)

    # 1. Build the graph
    graph = np.zeros((n, n), dtype=bool)
    if n > 1:
        distances = pairwise_euclidean(X, nominal)
        np.fill_diagonal(distances, np.inf)
        nearest = np.argmin(distances, axis=1)
        graph[np.arange(n), nearest] = True
        graph[nearest, np.arange(n)] = True

    # 2. Edit
    for i in range(n):
        neighbors = np.flatnonzero(graph[i])
        if not is_misclassified(y[i], y[neighbors], n_classes):
            continue

        if order == 1:
            remove[i] = True
            continue

        extended = [neighbors]
        for j in neighbors:
            if y[j] == y[i]:
                extended.append(np.flatnonzero(graph[j]))
        if is_misclassified(y[i], y[np.concatenate(extended)], n_classes):
            remove[i] = True

    logger.debug(f"[RNGE] Removed {remove.sum()}/{n} (order={order})")
    return remove


# -----------------------------------------------------------------
#  Dispatch
# -----------------------------------------------------------------

REDUCERS: Dict[str, ReducerFunc] = {
    'cnn': cnn,
    'enn': enn,
    'lssm': lssm,
    'lsbo': lsbo,
    'lss': lss,
    'rnge': rnge,
}


def make_reducer(name: str, **params) -> ReducerFunc:
    """
    Returns the reducer registered as `name` with its parameters bound.

    The result is called as `reducer(X, y, nominal=...)`.
    """
    if name not in REDUCERS:
        raise ValueError(f"Unknown reducer '{name}'. Available: {sorted(REDUCERS)}")

    func = REDUCERS[name]
    accepted = set(inspect.signature(func).parameters) - {'X', 'y', 'nominal'}
    unknown = set(params) - accepted
    if unknown:
        raise ValueError(f"Reducer '{name}' does not accept {sorted(unknown)}; "
                         f"valid parameters: {sorted(accepted)}")

    return functools.partial(func, **params)
