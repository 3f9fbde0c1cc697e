"""
This file defines the in-memory multi-label dataset used by every
reduction algorithm in the package.

A dataset is a feature matrix X (n x d) plus a binary label matrix Y
(n x L). Row position is the unit of voting and removal, so every
operation that derives a new dataset keeps the relative order of rows.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

# --- Type Aliases ---
# (features, class vector) handed to the single-label reducers
View = Tuple[np.ndarray, np.ndarray]


class MLDataset:
    """
    Multi-label dataset: features, binary labels and a little schema.

    Args:
        X (np.ndarray): Feature matrix of shape (n, d).
        Y (np.ndarray): Label matrix of shape (n, L) with values in {0, 1}.
        nominal (Optional[np.ndarray]): Boolean mask of length d flagging
                                        label-encoded nominal features.
        feature_names (Optional[Sequence[str]]): Names of the d features.
        label_names (Optional[Sequence[str]]): Names of the L labels.
        name (str): Identity of the dataset, used in log lines.
    """

    def __init__(self,
                 X: np.ndarray,
                 Y: np.ndarray,
                 nominal: Optional[np.ndarray] = None,
                 feature_names: Optional[Sequence[str]] = None,
                 label_names: Optional[Sequence[str]] = None,
                 name: str = 'dataset'):
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y)

        if X.ndim != 2:
            raise ValueError(f"X must be a 2-D array, got shape {X.shape}")
        if Y.ndim != 2:
            raise ValueError(f"Y must be a 2-D array, got shape {Y.shape}")
        if X.shape[0] != Y.shape[0]:
            raise ValueError(f"X and Y disagree on the number of instances: "
                             f"{X.shape[0]} != {Y.shape[0]}")
        if Y.shape[1] < 1:
            raise ValueError("A multi-label dataset needs at least one label")
        if Y.size and not np.isin(Y, (0, 1)).all():
            raise ValueError("Label values must be 0 or 1")

        if nominal is None:
            nominal = np.zeros(X.shape[1], dtype=bool)
        nominal = np.asarray(nominal, dtype=bool)
        if nominal.shape != (X.shape[1],):
            raise ValueError(f"nominal mask must have length {X.shape[1]}")

        if feature_names is None:
            feature_names = [f"a_{i}" for i in range(X.shape[1])]
        if label_names is None:
            label_names = [f"label_{j}" for j in range(Y.shape[1])]
        if len(feature_names) != X.shape[1] or len(label_names) != Y.shape[1]:
            raise ValueError("Attribute names do not match the data shape")

        self.X: np.ndarray = X
        self.Y: np.ndarray = Y.astype(int)
        self.nominal: np.ndarray = nominal
        self.feature_names: List[str] = list(feature_names)
        self.label_names: List[str] = list(label_names)
        self.name: str = name

    @classmethod
    def from_array(cls,
                   data: np.ndarray,
                   n_labels: int,
                   name: str = 'dataset',
                   nominal: Optional[np.ndarray] = None) -> 'MLDataset':
        """
        Builds a dataset from one matrix whose first `n_labels` columns
        are the labels (the usual MEKA layout).
        """
        data = np.asarray(data)
        if data.ndim != 2:
            raise ValueError(f"data must be a 2-D array, got shape {data.shape}")

        n_attributes = data.shape[1]
        if not 0 < n_labels < n_attributes:
            raise ValueError(f"Invalid number of labels L={n_labels} for "
                             f"{n_attributes} attributes; expected 0 < L < {n_attributes}")

        return cls(data[:, n_labels:], data[:, :n_labels], nominal=nominal, name=name)

    # --- Shape helpers ---

    @property
    def n_instances(self) -> int:
        return self.X.shape[0]

    @property
    def n_features(self) -> int:
        return self.X.shape[1]

    @property
    def n_labels(self) -> int:
        return self.Y.shape[1]

    def __len__(self) -> int:
        return self.n_instances

    def __repr__(self) -> str:
        return (f"MLDataset(name={self.name!r}, n_instances={self.n_instances}, "
                f"n_features={self.n_features}, n_labels={self.n_labels})")

    def label_cardinality(self) -> float:
        """Average number of active labels per instance."""
        if self.n_instances == 0:
            return 0.0
        return float(self.Y.sum(axis=1).mean())

    def subset(self, indices: Sequence[int]) -> 'MLDataset':
        """Returns the rows at `indices`, in the given order."""
        indices = np.asarray(indices, dtype=int)
        return MLDataset(self.X[indices], self.Y[indices],
                         nominal=self.nominal,
                         feature_names=self.feature_names,
                         label_names=self.label_names,
                         name=self.name)

    def check_not_empty(self) -> None:
        """Raises if there is nothing to reduce."""
        if self.n_instances == 0:
            raise ValueError(f"Dataset '{self.name}' is empty; nothing to reduce")
