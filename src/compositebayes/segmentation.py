"""
Adaptive choice of cut points ("segments") over a continuous label.

Every midpoint between two distinct values of a diversified subsample is a
candidate cut. Candidates are ranked by a desirability that combines

  * how well a classifier separates "above" from "below" the cut
    (leave-one-out ROC-AUC, min-max normalised across candidates),
  * how deep the cut sits in a valley of the smoothed value density,
  * how balanced the two sides are over the full entry set.

The best candidate becomes the first segment; further segments are added
greedily from the next best candidates, each judged by how separable the
two new sub-bins it creates are.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence, Tuple, Type

import numpy as np
import pandas as pd

from ._math import _minmax_scale
from ._parallel import _roc_worker, parallel_map
from .bayesian import LEAVE_ONE_OUT, BayesianClassifier
from .binning import assign_bins, insert_segment
from .config import CompositeConfig
from .density import density_curve
from .entries import Entry
from .exceptions import InsufficientDataError
from .subsample import diverse_subsample

__all__ = [
    "SegmentSearch",
    "cutpoint_candidates",
    "score_cutpoint",
    "partition_roc",
    "min_bin_size",
]


def min_bin_size(fraction: float, num: int) -> int:
    """Smallest permitted bin population; never below one entry."""
    return max(1, int(math.ceil(float(fraction) * num)))


def cutpoint_candidates(values: Sequence[float]) -> np.ndarray:
    """Midpoints between adjacent distinct values, ascending."""
    vals = np.unique(np.asarray(values, dtype=np.float64))
    return 0.5 * (vals[:-1] + vals[1:])


def score_cutpoint(
    entries: Sequence[Entry],
    threshold: float,
    classifier_cls: Type = BayesianClassifier,
    **params,
) -> float:
    """Leave-one-out ROC-AUC of ``value >= threshold`` over ``entries``."""
    return _roc_worker((
        classifier_cls,
        params,
        [e.features for e in entries],
        [e.value >= threshold for e in entries],
        LEAVE_ONE_OUT,
    ))


def partition_roc(
    lower: Sequence[Entry],
    upper: Sequence[Entry],
    classifier_cls: Type = BayesianClassifier,
    **params,
) -> float:
    """Leave-one-out ROC-AUC of telling ``upper`` (true) from ``lower`` (false)."""
    return _roc_worker(_partition_task(lower, upper, classifier_cls, params))


def _partition_task(lower, upper, classifier_cls, params):
    return (
        classifier_cls,
        params,
        [e.features for e in lower] + [e.features for e in upper],
        [False] * len(lower) + [True] * len(upper),
        LEAVE_ONE_OUT,
    )


class SegmentSearch:
    """
    Determine the cut points for a set of entries.

    Parameters
    ----------
    config :
        Search parameters; see :class:`~compositebayes.config.CompositeConfig`.
    classifier_cls, classifier_params :
        Classifier used to estimate separability and its constructor
        arguments.

    Attributes (after fit)
    ----------------------
    segments_ : tuple of ascending cut points
    primary_segment_ : the single best cut, chosen before refinement
    cutpoints_ : DataFrame of ranked candidates (cut, roc, curvature,
        ratio, desirability)
    subset_ : indices of the entries used for cut point scoring
    refinement_ : list of (cut, roc, accepted) per refinement round
    """

    def __init__(
        self,
        config: Optional[CompositeConfig] = None,
        classifier_cls: Type = BayesianClassifier,
        classifier_params: Optional[Dict[str, object]] = None,
    ) -> None:
        self.config = config if config is not None else CompositeConfig()
        self.classifier_cls = classifier_cls
        self.classifier_params = dict(classifier_params or {})

    # ------------------------------------------------------------------ #
    # Search
    # ------------------------------------------------------------------ #

    def fit(self, entries: Sequence[Entry]) -> "SegmentSearch":
        cfg = self.config
        entries = tuple(entries)
        num = len(entries)
        if num == 0:
            raise InsufficientDataError("No entries provided.")
        if num < cfg.min_bins:
            raise InsufficientDataError(
                f"Min bins={cfg.min_bins} and # entries={num}: not enough entries to segment."
            )

        values = np.array([e.value for e in entries], dtype=np.float64)
        subset = self._diversify_indices(entries)
        sub_values = values[subset]
        sub_features = [entries[i].features for i in subset]

        cuts = cutpoint_candidates(sub_values)
        if cuts.size < cfg.min_bins:
            raise InsufficientDataError(
                f"Unable to find reasonable number of cut points ({cuts.size} < {cfg.min_bins})."
            )
        if cfg.verbose:
            print(f"[segments] {num} entries, subset={subset.size}, candidates={cuts.size}")

        # separability of each candidate over the whole subsample
        tasks = [
            (self.classifier_cls, self.classifier_params, sub_features, sub_values >= c, LEAVE_ONE_OUT)
            for c in cuts
        ]
        roc = np.asarray(parallel_map(_roc_worker, tasks, cfg.n_jobs), dtype=np.float64)
        roc_norm = _minmax_scale(roc, flat=1.0)

        curve = density_curve(sub_values, npt=cfg.density_points,
                              padding=cfg.density_padding, width=cfg.kernel_width)
        curvature = np.array([curve.curvature_at(c) for c in cuts], dtype=np.float64)

        # population on each side, measured over all entries
        min_size = min_bin_size(cfg.min_bin_fraction, num)
        sorted_values = np.sort(values)
        below = np.searchsorted(sorted_values, cuts, side="left")
        above = num - below
        keep = (above >= min_size) & (below >= min_size)
        if int(np.sum(keep)) < cfg.min_bins:
            raise InsufficientDataError(
                f"Unable to find reasonable number of cut points: {int(np.sum(keep))} leave "
                f"at least {min_size} entries on each side."
            )

        cuts, roc, roc_norm, curvature = cuts[keep], roc[keep], roc_norm[keep], curvature[keep]
        above, below = above[keep], below[keep]
        ratio = np.maximum((above + 1.0) / (below + 1.0), (below + 1.0) / (above + 1.0))
        ratio_max = np.sort(ratio)[int(0.9 * ratio.size)]
        if ratio_max > 0:
            ratio = ratio / ratio_max

        # lower is better
        desire = (1.0 - roc_norm) + (1.0 - curvature) + ratio
        order = np.argsort(desire, kind="stable")

        self.cutpoints_ = pd.DataFrame({
            "cut": cuts[order],
            "roc": roc[order],
            "curvature": curvature[order],
            "ratio": ratio[order],
            "desirability": desire[order],
        })
        self.subset_ = subset
        self.curve_ = curve

        ranked = [float(c) for c in cuts[order]]
        self.primary_segment_ = ranked[0]
        pool = ranked[1:1 + cfg.max_candidates]
        if cfg.verbose:
            print(f"[segments] primary cut={self.primary_segment_:.4g} "
                  f"(desirability={desire[order[0]]:.4f}), pool={len(pool)}")

        self.refinement_: List[Tuple[float, float, bool]] = []
        self.segments_ = self._refine(entries, values, (self.primary_segment_,), pool)
        return self

    def _refine(
        self,
        entries: Tuple[Entry, ...],
        values: np.ndarray,
        segments: Tuple[float, ...],
        pool: List[float],
    ) -> Tuple[float, ...]:
        cfg = self.config
        min_size = min_bin_size(cfg.min_bin_fraction, len(entries))

        while pool and len(segments) < cfg.max_bins - 1:
            trials = []
            survivors = []
            for cand in pool:
                newseg, idx = insert_segment(segments, cand)
                _, bins = assign_bins(newseg, values)
                if min(b.size for b in bins) < min_size:
                    continue
                survivors.append(cand)
                lower = self._diversify([entries[i] for i in bins[idx]])
                upper = self._diversify([entries[i] for i in bins[idx + 1]])
                trials.append((cand, newseg, lower, upper))
            pool = survivors
            if not trials:
                break

            tasks = [_partition_task(lo, up, self.classifier_cls, self.classifier_params)
                     for _, _, lo, up in trials]
            rocs = parallel_map(_roc_worker, tasks, cfg.n_jobs)
            best = int(np.argmax(rocs))
            cand, newseg, _, _ = trials[best]
            best_roc = float(rocs[best])

            if len(segments) > 1 and best_roc < cfg.min_roc_split:
                self.refinement_.append((cand, best_roc, False))
                if cfg.verbose:
                    print(f"[segments] stop: best split cut={cand:.4g} ROC={best_roc:.4f} "
                          f"< {cfg.min_roc_split}")
                break

            self.refinement_.append((cand, best_roc, True))
            segments = newseg
            pool.remove(cand)
            if cfg.verbose:
                print(f"[segments] added cut={cand:.4g} ROC={best_roc:.4f} -> {len(segments) + 1} bins")

        return segments

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _diversify_indices(self, entries: Sequence[Entry]) -> np.ndarray:
        cfg = self.config
        if len(entries) <= cfg.cluster_subsize:
            return np.arange(len(entries))
        return diverse_subsample(entries, cfg.cluster_subsize,
                                 scan_window=cfg.scan_window, recent_window=cfg.recent_window)

    def _diversify(self, entries: List[Entry]) -> List[Entry]:
        return [entries[i] for i in self._diversify_indices(entries)]
