"""
This file holds the default configuration of every filter and the
factories that build filters and oracle classifiers by name.

`build_filter('br', alpha=0.9)` starts from DEFAULTS['br'] and applies
the overrides; unknown filter or option names are rejected.
"""

from typing import Any, Dict, Type, Union

from sklearn.base import BaseEstimator

from mlis.filters import (BRFilter, InstanceSelectionFilter, LPFilter, LSBoFilter,
                          LSSmFilter, RAkELFilter)
from mlis.ml_editing import MLeNNFilter, MLENNFilter
from mlis.oracle import DistanceWeightedKNN, MLkNN

_BR_DEFAULTS: Dict[str, Any] = {
    'reducer': 'enn',
    'reducer_params': {},
    'alpha': 0.95,
    'prop_inst_err': 0.1,
    'seed': 1,
    'min_train_size': 10,
    'classifier': None,
}

DEFAULTS: Dict[str, Dict[str, Any]] = {
    'br': dict(_BR_DEFAULTS),
    'rakel': {**_BR_DEFAULTS, 'k': 3, 'm': 10},
    'lp': {
        'reducer': 'enn',
        'reducer_params': {},
    },
    'lssm': {
        'threshold': 0.15,
    },
    'lsbo': {
        'threshold': 0.15,
        'threshold_lsb': 0.15,
    },
    'mlenn': {
        'k': 10,
        'threshold': 0.15,
        'classifier': None,
        'max_iterations': None,
    },
    'mlenn_ir': {
        'k': 3,
        'hamming_threshold': 0.75,
    },
}

FILTERS: Dict[str, Type[InstanceSelectionFilter]] = {
    'br': BRFilter,
    'rakel': RAkELFilter,
    'lp': LPFilter,
    'lssm': LSSmFilter,
    'lsbo': LSBoFilter,
    'mlenn': MLENNFilter,
    'mlenn_ir': MLeNNFilter,
}

CLASSIFIERS: Dict[str, Type[BaseEstimator]] = {
    'mlknn': MLkNN,
    'weighted_knn': DistanceWeightedKNN,
}


def build_classifier(name: str, **params) -> BaseEstimator:
    """Instantiates the oracle classifier registered as `name`."""
    if name not in CLASSIFIERS:
        raise ValueError(f"Unknown classifier '{name}'. Available: {sorted(CLASSIFIERS)}")
    return CLASSIFIERS[name](**params)


def build_filter(name: str, **overrides) -> InstanceSelectionFilter:
    """
    Builds the filter registered as `name` from its defaults and `overrides`.

    A 'classifier' option may be given as a registered classifier name.
    """
    if name not in FILTERS:
        raise ValueError(f"Unknown filter '{name}'. Available: {sorted(FILTERS)}")

    unknown = set(overrides) - set(DEFAULTS[name])
    if unknown:
        raise ValueError(f"Filter '{name}' does not accept {sorted(unknown)}; "
                         f"valid options: {sorted(DEFAULTS[name])}")

    options = {**DEFAULTS[name], **overrides}
    classifier: Union[str, BaseEstimator, None] = options.get('classifier')
    if isinstance(classifier, str):
        options['classifier'] = build_classifier(classifier)

    return FILTERS[name](**options)
