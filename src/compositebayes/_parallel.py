"""
Process-pool helpers for the embarrassingly parallel loops: scoring cut
point candidates and training the per-bin classifiers.

Workers are module-level functions so they pickle cleanly; every task only
carries plain feature tuples and labels.
"""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor
from multiprocessing import cpu_count
from typing import Callable, List, Optional, Sequence

__all__ = ["_roc_worker", "_fit_worker", "parallel_map"]


def _roc_worker(args):
    """Fit one classifier and return its cross-validated ROC-AUC."""
    classifier_cls, params, feature_sets, labels, kind = args
    clf = classifier_cls(**params)
    clf.fit(feature_sets, labels)
    return clf.cross_validate(kind)


def _fit_worker(args):
    """Fit and cross-validate one classifier; returns the fitted model."""
    classifier_cls, params, feature_sets, labels, kind = args
    clf = classifier_cls(**params)
    clf.fit(feature_sets, labels)
    clf.cross_validate(kind)
    return clf


def parallel_map(func: Callable, tasks: Sequence, n_jobs: Optional[int] = 1) -> List:
    if n_jobs == 1 or len(tasks) <= 1:
        return [func(t) for t in tasks]
    max_workers = n_jobs
    if max_workers in (None, -1):
        max_workers = max(1, cpu_count() - 1)
    max_workers = min(int(max_workers), len(tasks))
    with ProcessPoolExecutor(max_workers=max_workers) as ex:
        return list(ex.map(func, tasks))
