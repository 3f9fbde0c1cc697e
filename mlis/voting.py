"""
This file implements the majority vote shared by ENN, RNGE and the
label-powerset variants of the reducers.
"""

from typing import Optional, Sequence

import numpy as np

# Returned when there is nobody to vote; never equal to a real class
NO_PREDICTION = -1


def majority_vote(neighbor_classes: Sequence[int], n_classes: Optional[int] = None) -> int:
    """
    Returns the class with the strict maximum count among the neighbours.

    Classes are scanned in ascending index order and only a strictly
    larger count replaces the current winner, so ties go to the lowest
    class index. An empty neighbour set predicts NO_PREDICTION.
    """
    neighbor_classes = np.asarray(neighbor_classes, dtype=int)
    if neighbor_classes.size == 0:
        return NO_PREDICTION

    if n_classes is None:
        n_classes = int(neighbor_classes.max()) + 1
    counts = np.bincount(neighbor_classes, minlength=n_classes)

    # argmax returns the first maximum
    return int(np.argmax(counts))


def is_misclassified(target_class: int,
                     neighbor_classes: Sequence[int],
                     n_classes: Optional[int] = None) -> bool:
    """True if the neighbours' majority vote disagrees with `target_class`."""
    return majority_vote(neighbor_classes, n_classes) != int(target_class)
