"""
This file computes local sets and nearest enemies.

The local set of an instance e is the set of instances strictly closer to
e than e's nearest enemy. Two instances are enemies when their classes
differ or, for a multi-label matrix, when the normalised Hamming distance
between their label vectors is above a threshold. The local sets feed the
usefulness/harmfulness counts of LSS, LSSm and LSBo.
"""

from typing import List, Optional, Tuple

import numpy as np

from mlis.distances import pairwise_euclidean

# --- Type Aliases ---
LocalSets = List[np.ndarray]

NO_ENEMY = -1


def enemy_matrix(y: np.ndarray, threshold: Optional[float] = None) -> np.ndarray:
    """
    Boolean (n x n) matrix, True where instances i and j are enemies.

    A 1-D `y` is a class vector (enemies have different classes). A 2-D
    `y` is a label matrix and needs `threshold`: enemies disagree on more
    than `threshold` of the labels.
    """
    y = np.asarray(y)
    if y.ndim == 1:
        return y[:, None] != y[None, :]

    if threshold is None:
        raise ValueError("A Hamming threshold is required for a label matrix")
    hamming = (y[:, None, :] != y[None, :, :]).mean(axis=2)
    return hamming > threshold


def compute_local_sets(X: np.ndarray,
                       y: np.ndarray,
                       threshold: Optional[float] = None,
                       nominal: Optional[np.ndarray] = None) -> Tuple[LocalSets, np.ndarray]:
    """
    Computes the local set and the nearest enemy of every instance.

    Returns:
        Tuple[LocalSets, np.ndarray]:
            - One index array per instance with its local set.
            - The index of each instance's nearest enemy, NO_ENEMY if the
              instance has none (its local set is then every other instance).
    """
    n = X.shape[0]
    distances = pairwise_euclidean(X, nominal)
    enemies = enemy_matrix(y, threshold)
    np.fill_diagonal(enemies, False)

    local_sets: LocalSets = []
    nearest_enemies = np.full(n, NO_ENEMY, dtype=int)

    for i in range(n):
        # 1. Nearest enemy: first minimum in index order
        enemy_distances = np.where(enemies[i], distances[i], np.inf)
        dist_near_enemy = np.inf
        if n > 1:
            candidate = int(np.argmin(enemy_distances))
            if enemies[i, candidate]:
                nearest_enemies[i] = candidate
                dist_near_enemy = enemy_distances[candidate]

        # 2. Local set: everything strictly closer than that enemy
        inside = distances[i] < dist_near_enemy
        inside[i] = False
        local_sets.append(np.flatnonzero(inside))

    return local_sets, nearest_enemies


def usefulness(local_sets: LocalSets, n: int) -> np.ndarray:
    """u(e): number of local sets that contain e."""
    members = np.concatenate(list(local_sets) + [np.empty(0, dtype=int)])
    return np.bincount(members.astype(int), minlength=n)


def harmfulness(nearest_enemies: np.ndarray, n: int) -> np.ndarray:
    """h(e): number of instances whose nearest enemy is e."""
    enemies = nearest_enemies[nearest_enemies != NO_ENEMY]
    return np.bincount(enemies, minlength=n)
