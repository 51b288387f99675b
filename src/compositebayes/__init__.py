"""
compositebayes package
----------------------

Composite Bayesian models: adaptively bin a continuous label, train one
naive Bayes classifier per bin, and score new samples against every bin.
"""

from __future__ import annotations

from ._version import __version__
from .bayesian import FIVE_FOLD, LEAVE_ONE_OUT, BayesianClassifier, Classifier
from .binning import assign_bins, bin_sizes
from .config import CompositeConfig
from .density import DensityCurve, density_curve
from .entries import Entry, EntryCollection, split_holdout
from .exceptions import InsufficientDataError, InvalidConfigurationError, ModelError
from .features import FeatureExtractor, HashedNGramExtractor
from .metrics import calculate_youden_j, off_by_n, roc_auc_score
from .model import BinPrediction, CompositeModel, prediction_confidence
from .segmentation import SegmentSearch
from .subsample import diverse_subsample

__all__ = [
    "__version__",
    "BayesianClassifier",
    "BinPrediction",
    "Classifier",
    "CompositeConfig",
    "CompositeModel",
    "DensityCurve",
    "Entry",
    "EntryCollection",
    "FeatureExtractor",
    "FIVE_FOLD",
    "HashedNGramExtractor",
    "InsufficientDataError",
    "InvalidConfigurationError",
    "LEAVE_ONE_OUT",
    "ModelError",
    "SegmentSearch",
    "assign_bins",
    "bin_sizes",
    "calculate_youden_j",
    "density_curve",
    "diverse_subsample",
    "off_by_n",
    "prediction_confidence",
    "roc_auc_score",
    "split_holdout",
]
