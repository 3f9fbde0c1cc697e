"""
Multi-label instance selection: reduce a multi-label training set with
single-label reducers (CNN, ENN, LSSm, LSBo, LSS, RNGE) through binary
relevance or label powerset decomposition, or edit it directly with the
MLENN and MLeNN filters.
"""

from mlis.config import build_filter
from mlis.dataset import MLDataset
from mlis.filters import (BRFilter, FilteredClassifier, LPFilter, LSBoFilter,
                          LSSmFilter, RAkELFilter)
from mlis.io import load_arff
from mlis.log import get_logger, setup_logging
from mlis.ml_editing import MLeNNFilter, MLENNFilter

__version__ = '0.1.0'

__all__ = [
    'MLDataset',
    'BRFilter',
    'RAkELFilter',
    'LPFilter',
    'LSSmFilter',
    'LSBoFilter',
    'MLENNFilter',
    'MLeNNFilter',
    'FilteredClassifier',
    'build_filter',
    'load_arff',
    'setup_logging',
    'get_logger',
]
