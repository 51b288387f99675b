"""
Laplacian-corrected naive Bayes over sparse binary features.

This is the classifier the segment search and the per-bin ensemble are
built from. Each feature id present in a sample adds a log-odds weight

    log((A_f + 1) / (T_f * P + 1))

where ``A_f`` counts positive training samples containing the feature,
``T_f`` all training samples containing it, and ``P`` is the positive base
rate. Features never seen during training contribute nothing.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Protocol, Sequence, runtime_checkable

import numpy as np
from sklearn.model_selection import KFold

from ._math import _laplacian_contribution
from .features import normalise_features
from .metrics import best_youden_threshold, roc_auc_score

__all__ = [
    "Classifier",
    "BayesianClassifier",
    "LEAVE_ONE_OUT",
    "FIVE_FOLD",
]

LEAVE_ONE_OUT = "leave_one_out"
FIVE_FOLD = "five_fold"


@runtime_checkable
class Classifier(Protocol):
    """Binary classifier over sorted integer feature sets."""

    feature_kind: Optional[str]

    def fit(self, feature_sets: Sequence[Sequence[int]], labels: Iterable[bool]) -> "Classifier":
        ...

    def predict_raw(self, features: Sequence[int]) -> float:
        ...

    def scale_predictor(self, raw: float) -> float:
        ...

    def predict(self, features: Sequence[int]) -> float:
        ...

    def cross_validate(self, kind: str = FIVE_FOLD) -> float:
        ...


class BayesianClassifier:
    """
    Naive Bayes with Laplacian correction, plus exact leave-one-out and
    five-fold cross-validation.

    Parameters
    ----------
    feature_kind :
        Tag naming the feature extractor the model was trained with; used to
        refuse mixing incompatible models.
    random_state :
        Seed for the five-fold shuffle.

    Attributes (after fit)
    ----------------------
    index_ : dict mapping feature id -> column
    contrib_ : per-column log-odds weight
    threshold_, spread_ : calibration of :meth:`scale_predictor`
    rocauc_ : ROC-AUC from the last :meth:`cross_validate` call
    """

    def __init__(
        self,
        feature_kind: Optional[str] = None,
        random_state: int = 42,
        verbose: bool = False,
    ) -> None:
        self.feature_kind = feature_kind
        self.random_state = int(random_state)
        self.verbose = bool(verbose)
        self.rocauc_: Optional[float] = None

    # ------------------------------------------------------------------ #
    # Fitting
    # ------------------------------------------------------------------ #

    def fit(
        self,
        feature_sets: Sequence[Sequence[int]],
        labels: Iterable[bool],
    ) -> "BayesianClassifier":
        rows = [normalise_features(f) for f in feature_sets]
        y = np.asarray(list(labels), dtype=bool)
        if y.ndim != 1 or y.shape[0] != len(rows):
            raise ValueError("feature_sets and labels must have the same length.")
        if not rows:
            raise ValueError("Cannot fit a classifier without samples.")

        index: Dict[int, int] = {}
        cols: List[np.ndarray] = []
        for row in rows:
            cols.append(np.fromiter((index.setdefault(f, len(index)) for f in row),
                                    dtype=np.int64, count=len(row)))
        p = len(index)
        lengths = np.array([c.size for c in cols], dtype=np.int64)
        flat = np.concatenate(cols) if p > 0 else np.zeros(0, dtype=np.int64)
        owner = np.repeat(np.arange(len(rows)), lengths)

        self.index_ = index
        self.n_samples_ = len(rows)
        self.n_active_ = int(np.sum(y))
        self.in_total_ = np.bincount(flat, minlength=p).astype(np.float64)
        self.in_active_ = np.bincount(flat, weights=y[owner].astype(np.float64), minlength=p)
        self.base_rate_ = self.n_active_ / self.n_samples_
        self.contrib_ = _laplacian_contribution(self.in_active_, self.in_total_, self.base_rate_)

        self._rows = rows
        self._cols = cols
        self._y = y

        train_raw = np.array([float(np.sum(self.contrib_[c])) for c in cols], dtype=np.float64)
        self._calibrate(train_raw, y)
        return self

    def _calibrate(self, raw: np.ndarray, y: np.ndarray) -> None:
        # Youden-optimal threshold -> 0.5, mean(pos) - mean(neg) -> unit width
        if y.all() or not y.any():
            self.threshold_ = float(np.mean(raw))
            self.spread_ = 0.0
            self.youden_ = 0.0
            return
        thr, j = best_youden_threshold(y, raw)
        self.threshold_ = thr
        self.spread_ = max(0.0, float(np.mean(raw[y]) - np.mean(raw[~y])))
        self.youden_ = j

    def _check_fitted(self) -> None:
        if not hasattr(self, "contrib_"):
            raise RuntimeError("fit must be called before predict.")

    # ------------------------------------------------------------------ #
    # Prediction
    # ------------------------------------------------------------------ #

    def predict_raw(self, features: Sequence[int]) -> float:
        self._check_fitted()
        total = 0.0
        for f in features:
            col = self.index_.get(int(f))
            if col is not None:
                total += self.contrib_[col]
        return float(total)

    def scale_predictor(self, raw: float) -> float:
        """Calibrated score; nominally within [0, 1], not clipped."""
        self._check_fitted()
        if self.spread_ <= 0.0:
            return 1.0 if raw >= self.threshold_ else 0.0
        return float(0.5 + (raw - self.threshold_) / self.spread_)

    def predict(self, features: Sequence[int]) -> float:
        return self.scale_predictor(self.predict_raw(features))

    def decision_function(self, feature_sets: Sequence[Sequence[int]]) -> np.ndarray:
        return np.array([self.predict_raw(f) for f in feature_sets], dtype=np.float64)

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def cross_validate(self, kind: str = FIVE_FOLD) -> float:
        """Out-of-sample ROC-AUC by leave-one-out or five-fold validation."""
        self._check_fitted()
        if kind == LEAVE_ONE_OUT:
            scores = self._leave_one_out_scores()
        elif kind == FIVE_FOLD:
            scores = self._kfold_scores(5)
        else:
            raise ValueError(f"Unsupported validation '{kind}'. Use '{LEAVE_ONE_OUT}' or '{FIVE_FOLD}'.")

        self.rocauc_ = roc_auc_score(self._y.astype(int), scores)
        if self.verbose:
            print(f"[bayes] {kind}: n={self.n_samples_} actives={self.n_active_} ROC={self.rocauc_:.4f}")
        return self.rocauc_

    def _leave_one_out_scores(self) -> np.ndarray:
        # removing one sample only changes the counts of its own features
        n = self.n_samples_
        scores = np.empty(n, dtype=np.float64)
        for i, (c, lab) in enumerate(zip(self._cols, self._y)):
            rate = (self.n_active_ - int(lab)) / (n - 1) if n > 1 else 0.0
            w = _laplacian_contribution(self.in_active_[c] - float(lab), self.in_total_[c] - 1.0, rate)
            scores[i] = float(np.sum(w))
        return scores

    def _kfold_scores(self, k: int) -> np.ndarray:
        n = self.n_samples_
        splitter = KFold(n_splits=min(k, n), shuffle=True, random_state=self.random_state)
        scores = np.empty(n, dtype=np.float64)
        for train_idx, test_idx in splitter.split(np.arange(n)):
            fold = type(self)(**dict(self.get_params(), verbose=False))
            fold.fit([self._rows[i] for i in train_idx], self._y[train_idx])
            for i in test_idx:
                scores[i] = fold.predict_raw(self._rows[i])
        return scores

    # ------------------------------------------------------------------ #
    # Parameter helpers
    # ------------------------------------------------------------------ #

    def get_params(self, deep: bool = True) -> Dict[str, object]:
        return {
            "feature_kind": self.feature_kind,
            "random_state": self.random_state,
            "verbose": self.verbose,
        }

    def set_params(self, **params) -> "BayesianClassifier":
        for key, value in params.items():
            if key not in ("feature_kind", "random_state", "verbose"):
                raise ValueError(f"Unknown parameter '{key}'.")
            setattr(self, key, value)
        return self
