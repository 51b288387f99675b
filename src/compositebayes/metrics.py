"""
Metrics used by the classifiers and by ensemble validation.

ROC-AUC is computed from average ranks so the result matches
scikit-learn's binary ROC AUC without building the full curve.
"""

from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np
import pandas as pd

__all__ = [
    "calculate_youden_j",
    "roc_auc_score",
    "best_youden_threshold",
    "off_by_n",
]


def calculate_youden_j(
    y_true: Iterable[int] | np.ndarray,
    y_pred: Iterable[int] | np.ndarray,
) -> float:
    """
    Compute Youden's J statistic (sensitivity + specificity - 1).

    Parameters
    ----------
    y_true :
        Ground truth labels in {0, 1}.
    y_pred :
        Predicted labels in {0, 1}.
    """
    yt = np.asarray(y_true, dtype=bool)
    yp = np.asarray(y_pred, dtype=bool)

    tp = np.sum(yt & yp)
    tn = np.sum(~yt & ~yp)
    fp = np.sum(~yt & yp)
    fn = np.sum(yt & ~yp)

    sens = tp / (tp + fn) if (tp + fn) > 0 else 0.0
    spec = tn / (tn + fp) if (tn + fp) > 0 else 0.0
    return float(sens + spec - 1.0)


def _rankdata_average(a: np.ndarray) -> np.ndarray:
    """Tie-aware ranking with averaging; helper for ROC AUC."""
    order = np.argsort(a, kind="mergesort")
    ranks = np.empty_like(order, dtype=np.float64)
    i = 0
    n = a.size
    while i < n:
        j = i + 1
        while j < n and a[order[j]] == a[order[i]]:
            j += 1
        ranks[order[i:j]] = 0.5 * (i + j - 1) + 1.0
        i = j
    return ranks


def roc_auc_score(
    y_true: Iterable[int] | np.ndarray,
    y_score: Iterable[float] | np.ndarray,
) -> float:
    """
    Area under the ROC curve for binary labels (Mann-Whitney U form).

    Raises ``ValueError`` when only one class is present.
    """
    y = np.asarray(y_true, dtype=np.int64)
    scores = np.asarray(y_score, dtype=np.float64)
    if y.shape != scores.shape:
        raise ValueError("y_true and y_score must have the same shape.")
    if not np.isin(y, (0, 1)).all():
        raise ValueError("roc_auc_score currently supports binary labels {0,1}.")

    pos = int(np.sum(y == 1))
    neg = int(np.sum(y == 0))
    if pos == 0 or neg == 0:
        raise ValueError("roc_auc_score is undefined when only one class is present.")

    ranks = _rankdata_average(scores)
    u = np.sum(ranks[y == 1]) - pos * (pos + 1) / 2.0
    return float(u / (pos * neg))


def best_youden_threshold(
    y_true: Iterable[int] | np.ndarray,
    y_score: Iterable[float] | np.ndarray,
) -> Tuple[float, float]:
    """
    Scan thresholds between consecutive distinct scores and return the
    ``(threshold, J)`` pair maximising Youden's J for ``score >= threshold``.
    """
    y_bool = np.asarray(y_true, dtype=bool)
    t = np.asarray(y_score, dtype=np.float64)
    vals = np.unique(t)
    if vals.size == 0:
        return 0.0, 0.0
    mids = 0.5 * (vals[:-1] + vals[1:])
    thr_candidates = np.r_[vals[0] - 1e-9, mids, vals[-1] + 1e-9]
    best_j, best_thr = -np.inf, float(thr_candidates[0])
    for thr in thr_candidates:
        j = calculate_youden_j(y_bool, t >= thr)
        if j > best_j:
            best_j, best_thr = j, float(thr)
    return best_thr, float(best_j)


def off_by_n(matrix: np.ndarray | Iterable[Iterable[int]]) -> pd.DataFrame:
    """
    Summarise a ``[true][predicted]`` bin matrix by prediction distance.

    Returns a frame indexed by distance ``d`` (0 = exact hit) with columns

    count :
        Number of entries predicted ``d`` bins away from their true bin.
    portion :
        Cumulative fraction of entries predicted within ``d`` bins.
    random :
        Cumulative fraction expected from uniformly random guessing:
        ``1/nbins`` for d=0 and ``2 (nbins - d) / nbins**2`` beyond.
    enrichment :
        ``portion / random``.
    """
    mat = np.asarray(matrix, dtype=np.int64)
    if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
        raise ValueError("matrix must be square.")
    nbins = mat.shape[0]

    i, j = np.indices(mat.shape)
    counts = np.bincount(np.abs(i - j).ravel(), weights=mat.ravel(), minlength=nbins)
    counts = counts.astype(np.int64)

    total = int(mat.sum())
    portion = counts / total if total > 0 else np.zeros(nbins, dtype=np.float64)
    d = np.arange(nbins)
    random = np.where(d == 0, 1.0 / nbins, 2.0 * (nbins - d) / (nbins * nbins))

    cum_portion = np.cumsum(portion)
    cum_random = np.cumsum(random)
    return pd.DataFrame(
        {
            "count": counts,
            "portion": cum_portion,
            "random": cum_random,
            "enrichment": cum_portion / cum_random,
        },
        index=pd.Index(d, name="distance"),
    )
