"""
This file handles the conversion between external tables and MLDataset:
- Loading MEKA-style .arff files (labels as a leading block of columns).
- Building a dataset from a pandas DataFrame and back.
- Imputing missing feature values (median for numeric, mode for categorical).
- Label encoding categorical features.
- Normalizing numeric features to a [0, 1] range.
"""

import re
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.io import arff
from sklearn.preprocessing import LabelEncoder, MinMaxScaler

from mlis.dataset import MLDataset
from mlis.log import get_logger

logger = get_logger(__name__)

# MEKA stores the number of labels in the relation name, e.g. "scene: -C 6"
_MEKA_LABELS = re.compile(r"-C\s+(-?\d+)")


def parse_meka_relation(relation: str) -> Tuple[str, int]:
    """
    Splits a MEKA relation name into the dataset name and the label count.

    A negative count means the labels are the last columns.
    """
    match = _MEKA_LABELS.search(relation)
    if match is None:
        raise ValueError(f"Relation '{relation}' does not declare the number of labels (-C L)")
    name = relation.strip().strip("'\"").split(':')[0].strip()
    return name, int(match.group(1))


def read_relation(filepath: str) -> str:
    """Full text of the @relation line (scipy cuts it at the first space)."""
    with open(filepath, 'r', encoding='utf-8') as f:
        for line in f:
            if line.strip().lower().startswith('@relation'):
                return line.strip()[len('@relation'):].strip()
    raise ValueError(f"No @relation line found in {filepath}")


def load_arff(filepath: str, n_labels: Optional[int] = None) -> MLDataset:
    """
    Loads an .arff file into an MLDataset.

    When `n_labels` is not given, it is read from the MEKA relation name.
    Byte strings loaded by scipy are decoded into 'utf-8' strings first.
    """
    data, _ = arff.loadarff(filepath)
    df = pd.DataFrame(data)

    for col in df.columns:
        if df[col].dtype == object:
            df[col] = df[col].str.decode('utf-8')

    relation = read_relation(filepath)
    name = relation.strip("'\"").split(':')[0].strip()
    if n_labels is None:
        name, n_labels = parse_meka_relation(relation)

    if n_labels >= 0:
        label_columns = list(df.columns[:n_labels])
    else:
        label_columns = list(df.columns[n_labels:])

    if not 0 < len(label_columns) < len(df.columns):
        raise ValueError(f"Invalid number of labels L={n_labels} for {len(df.columns)} attributes")

    logger.info(f"[IO] Loaded '{name}' from {filepath}: {len(df)} instances, "
                f"{len(label_columns)} labels")
    return from_frame(df, label_columns, name=name)


def identify_column_types(df: pd.DataFrame, label_columns: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Separates the feature columns into numeric and categorical lists."""
    numeric_cols = []
    categorical_cols = []

    for col in df.columns:
        if col in label_columns:
            continue
        if pd.api.types.is_numeric_dtype(df[col]):
            numeric_cols.append(col)
        else:
            categorical_cols.append(col)

    return numeric_cols, categorical_cols


def handle_missing_values(df: pd.DataFrame, numeric_cols: List[str], categorical_cols: List[str]) -> pd.DataFrame:
    """
    Imputes missing feature values.
    - Numeric: Uses median, which is more robust to outliers than the mean.
    - Categorical: Uses mode (most frequent value).
    """
    df = df.copy()

    for col in numeric_cols:
        if df[col].isnull().any():
            df[col] = df[col].fillna(df[col].median())

    for col in categorical_cols:
        # scipy reads a missing nominal value as '?'
        df[col] = df[col].replace('?', np.nan)
        if df[col].isnull().any():
            df[col] = df[col].fillna(df[col].mode()[0])

    return df


def from_frame(df: pd.DataFrame, label_columns: Sequence[str], name: str = 'dataset') -> MLDataset:
    """
    Builds an MLDataset from a DataFrame. Every column not listed in
    `label_columns` is a feature; categorical features are label encoded
    and flagged as nominal.
    """
    label_columns = list(label_columns)
    missing = [col for col in label_columns if col not in df.columns]
    if missing:
        raise ValueError(f"Label columns not found: {missing}")

    numeric_cols, categorical_cols = identify_column_types(df, label_columns)
    df = handle_missing_values(df, numeric_cols, categorical_cols)

    feature_cols = [col for col in df.columns if col not in label_columns]
    features = df[feature_cols].copy()
    for col in categorical_cols:
        features[col] = LabelEncoder().fit_transform(features[col].astype(str))

    nominal = np.array([col in categorical_cols for col in feature_cols], dtype=bool)
    Y = df[label_columns].astype(float).astype(int).to_numpy()

    return MLDataset(features.to_numpy(dtype=float), Y,
                     nominal=nominal,
                     feature_names=[str(c) for c in feature_cols],
                     label_names=[str(c) for c in label_columns],
                     name=name)


def to_frame(dataset: MLDataset) -> pd.DataFrame:
    """Labels first, then features, one row per instance."""
    labels = pd.DataFrame(dataset.Y, columns=dataset.label_names)
    features = pd.DataFrame(dataset.X, columns=dataset.feature_names)
    return pd.concat([labels, features], axis=1)


def normalize_features(dataset: MLDataset) -> MLDataset:
    """
    Scales the numeric features to [0, 1]. Nominal features and labels are
    left untouched; a constant column becomes 0.
    """
    X = dataset.X.copy()
    numeric = ~dataset.nominal

    if numeric.any() and dataset.n_instances > 0:
        X[:, numeric] = MinMaxScaler(feature_range=(0, 1)).fit_transform(X[:, numeric])

    return MLDataset(X, dataset.Y,
                     nominal=dataset.nominal,
                     feature_names=dataset.feature_names,
                     label_names=dataset.label_names,
                     name=dataset.name)
