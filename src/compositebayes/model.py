"""
Composite model: partition a continuous label into bins and train one
one-vs-rest classifier per bin.

Typical use::

    model = CompositeModel()
    for features, value in training:
        model.add_entry(features, value)
    model.calculate()
    scores = model.predict_bins(new_features)

Values are assumed to be "energy-like" rather than exponential; quantities
such as concentrations should be log-transformed before they are added.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Type

import numpy as np
import pandas as pd

from ._parallel import _fit_worker, parallel_map
from .bayesian import FIVE_FOLD, BayesianClassifier
from .binning import assign_bins, check_segments
from .config import MAX_BINS_CEILING, MIN_BINS_FLOOR, CompositeConfig
from .entries import Entry, EntryCollection
from .exceptions import InsufficientDataError, InvalidConfigurationError
from .features import FeatureExtractor
from .metrics import off_by_n
from .segmentation import SegmentSearch, min_bin_size

__all__ = ["CompositeModel", "BinPrediction", "prediction_confidence"]


def prediction_confidence(scores: Sequence[float]) -> Tuple[int, float]:
    """
    Best bin and its confidence: with every score clamped to [0, 1],
    ``best * best / sum``. A lone decisive score keeps its value; competing
    bins pull it down in proportion.
    """
    pred = np.asarray(scores, dtype=np.float64)
    best = int(np.argmax(pred))
    clamped = np.clip(pred, 0.0, 1.0)
    score = float(clamped[best])
    if score > 0:
        score *= score / float(np.sum(clamped))
    return best, score


@dataclass(frozen=True)
class BinPrediction:
    scores: np.ndarray
    best_bin: int
    confidence: float
    low: float
    high: float


class CompositeModel:
    """
    Piecewise classifier ensemble over a continuous label.

    Parameters
    ----------
    config :
        Bin counts and search parameters.
    classifier_cls :
        Classifier type trained for each bin (and during segment search).
    extractor :
        Optional feature extractor, enabling :meth:`add_sample` and
        :meth:`predict_sample` on raw samples.

    Attributes (after calculate)
    ----------------------------
    models_ : tuple of per-bin classifiers
    validation_matrix_ : ndarray [true bin][predicted bin] over training
    bin_index_ : bin of every training entry
    search_ : the :class:`SegmentSearch` run, when segments were computed
    """

    def __init__(
        self,
        config: Optional[CompositeConfig] = None,
        *,
        classifier_cls: Type = BayesianClassifier,
        extractor: Optional[FeatureExtractor] = None,
    ) -> None:
        self.config = config if config is not None else CompositeConfig()
        self.classifier_cls = classifier_cls
        self.extractor = extractor

        self._entries = EntryCollection()
        self._segments: Optional[Tuple[float, ...]] = None
        # computed segments are dropped when entries change, supplied ones kept
        self._supplied = False
        self.min_val = float("nan")
        self.max_val = float("nan")
        self.models_: Optional[Tuple[object, ...]] = None
        self.validation_matrix_: Optional[np.ndarray] = None
        self.search_: Optional[SegmentSearch] = None

    # ------------------------------------------------------------------ #
    # Reconstruction
    # ------------------------------------------------------------------ #

    @classmethod
    def from_boundaries(
        cls,
        boundaries: Sequence[float],
        models: Sequence[object],
        config: Optional[CompositeConfig] = None,
        *,
        classifier_cls: Type = BayesianClassifier,
        extractor: Optional[FeatureExtractor] = None,
    ) -> "CompositeModel":
        """
        Rebuild a finished model from :attr:`boundaries` (cuts capped by the
        min/max training values) and the per-bin classifiers of an earlier
        model. The classifier list is copied shallowly.
        """
        bound = np.asarray(boundaries, dtype=np.float64)
        nbins = len(models)
        if bound.ndim != 1 or bound.size < MIN_BINS_FLOOR + 1 or bound.size != nbins + 1:
            raise InvalidConfigurationError(
                f"Invalid parameters: boundary length={bound.size}, model length={nbins}"
            )
        for m in models:
            if not isinstance(m, classifier_cls):
                raise InvalidConfigurationError(
                    f"Expected {classifier_cls.__name__} models, got {type(m).__name__}."
                )
        kinds = {getattr(m, "feature_kind", None) for m in models}
        if len(kinds) > 1:
            raise InvalidConfigurationError(f"Models were trained on different features: {sorted(map(str, kinds))}")
        if extractor is not None and kinds != {extractor.kind}:
            raise InvalidConfigurationError(
                f"Models use features {kinds.pop()!r}, extractor provides {extractor.kind!r}."
            )

        model = cls(config, classifier_cls=classifier_cls, extractor=extractor)
        model._segments = check_segments(bound[1:-1])
        model._supplied = True
        model.min_val = float(bound[0])
        model.max_val = float(bound[-1])
        model.models_ = tuple(models)
        return model

    # ------------------------------------------------------------------ #
    # Entries
    # ------------------------------------------------------------------ #

    def add_entry(self, features: Iterable[int], value: float, sample=None) -> Entry:
        self._entries_changed()
        return self._entries.add(features, value, sample)

    def add_sample(self, sample, value: float) -> Entry:
        """Extract features from a raw sample and add it."""
        return self.add_entry(self._extract(sample), value, sample)

    def extend(self, entries: Iterable[Entry]) -> None:
        self._entries_changed()
        self._entries.extend(entries)

    @property
    def num_entries(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return self._entries.freeze()

    # ------------------------------------------------------------------ #
    # Bin counts and segments
    # ------------------------------------------------------------------ #

    @property
    def min_bins(self) -> int:
        return self.config.min_bins

    @min_bins.setter
    def min_bins(self, nbins: int) -> None:
        self.config.set_params(min_bins=max(MIN_BINS_FLOOR, int(nbins)))

    @property
    def max_bins(self) -> int:
        return self.config.max_bins

    @max_bins.setter
    def max_bins(self, nbins: int) -> None:
        self.config.set_params(max_bins=min(MAX_BINS_CEILING, int(nbins)))

    def set_num_bins(self, nbins: int) -> None:
        self.config.set_num_bins(nbins)

    @property
    def segments(self) -> Optional[Tuple[float, ...]]:
        return self._segments

    @segments.setter
    def segments(self, seg: Optional[Iterable[float]]) -> None:
        self._segments = None if seg is None else check_segments(seg)
        self._supplied = seg is not None

    @property
    def num_bins(self) -> int:
        return 0 if self._segments is None else len(self._segments) + 1

    @property
    def model_count(self) -> int:
        return 0 if self.models_ is None else len(self.models_)

    @property
    def boundaries(self) -> np.ndarray:
        """Segments capped by the min/max training values (length nbins + 1)."""
        if self._segments is None:
            raise RuntimeError("Segments are not defined yet.")
        return np.array([self.min_val, *self._segments, self.max_val], dtype=np.float64)

    def assigned_bins(self) -> List[np.ndarray]:
        """Indices of the current entries grouped per bin."""
        self._require_segments()
        _, bins = assign_bins(self._segments, [e.value for e in self.entries])
        return bins

    def bin_sizes(self) -> np.ndarray:
        return np.array([b.size for b in self.assigned_bins()], dtype=np.int64)

    # ------------------------------------------------------------------ #
    # Calculation
    # ------------------------------------------------------------------ #

    def determine_segments(self) -> Tuple[float, ...]:
        """
        Compute cut points from the current entries. Called by
        :meth:`calculate` when no segments were supplied; may be called
        beforehand to inspect or adjust them.
        """
        return self._determine_segments(self._entries.freeze())

    def _determine_segments(self, entries: Tuple[Entry, ...]) -> Tuple[float, ...]:
        search = SegmentSearch(self.config, self.classifier_cls, self._classifier_params())
        search.fit(entries)
        self.search_ = search
        self._segments = search.segments_
        self._supplied = False
        return self._segments

    def calculate(self) -> "CompositeModel":
        """
        Build the bins, one classifier per bin, and the training validation
        matrix. Any later change to entries or segments needs a full rerun.
        """
        cfg = self.config
        entries = self._entries.freeze()
        num = len(entries)
        if num == 0:
            raise InsufficientDataError("No entries provided.")
        if num < cfg.min_bins:
            raise InsufficientDataError(
                f"Min bins={cfg.min_bins} and # entries={num}: not enough entries to build bins."
            )
        values = np.array([e.value for e in entries], dtype=np.float64)
        if self._segments is None:
            self._determine_segments(entries)
        elif self._supplied:
            self._check_supplied_segments(values)

        self.min_val = float(np.min(values))
        self.max_val = float(np.max(values))

        bin_idx, bins = assign_bins(self._segments, values)
        nbins = len(bins)
        feature_sets = [e.features for e in entries]

        tasks = [
            (self.classifier_cls, self._classifier_params(), feature_sets, bin_idx == k, FIVE_FOLD)
            for k in range(nbins)
        ]
        self.models_ = tuple(parallel_map(_fit_worker, tasks, cfg.n_jobs))
        if cfg.verbose:
            for k, m in enumerate(self.models_):
                print(f"[ensemble] bin={k} size={bins[k].size} ROC={getattr(m, 'rocauc_', float('nan')):.4f}")

        self.bin_index_ = bin_idx
        self.validation_matrix_ = self._matrix(feature_sets, bin_idx)
        return self

    def _check_supplied_segments(self, values: np.ndarray) -> None:
        num = values.size
        nseg = len(self._segments)
        if nseg >= num - 1:
            raise InvalidConfigurationError(
                f"Provided {num} entries and {nseg} segments: too many segments for the data."
            )
        if nseg == 0:
            raise InvalidConfigurationError("At least one segment is required.")
        cfg = self.config
        if not cfg.min_bins <= nseg + 1 <= cfg.max_bins:
            raise InvalidConfigurationError(
                f"Segments {list(self._segments)} give {nseg + 1} bins; "
                f"between {cfg.min_bins} and {cfg.max_bins} required."
            )
        _, bins = assign_bins(self._segments, values)
        smallest = min(b.size for b in bins)
        min_size = min_bin_size(self.config.min_bin_fraction, num)
        if smallest < min_size:
            raise InvalidConfigurationError(
                f"Segments {list(self._segments)} leave a bin with {smallest} entries; "
                f"at least {min_size} required."
            )

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def _matrix(self, feature_sets: Sequence[Sequence[int]], true_bins: np.ndarray) -> np.ndarray:
        nbins = self.model_count
        matrix = np.zeros((nbins, nbins), dtype=np.int64)
        for features, want in zip(feature_sets, true_bins):
            got = int(np.argmax(self._scores(features)))
            matrix[int(want), got] += 1
        return matrix

    def validate(self, entries: Iterable[Entry]) -> np.ndarray:
        """Validation matrix [true bin][predicted bin] for a held-out set."""
        self._require_models()
        entries = list(entries)
        true_bins, _ = assign_bins(self._segments, [e.value for e in entries])
        return self._matrix([e.features for e in entries], true_bins)

    def off_by_n(self, matrix: Optional[np.ndarray] = None) -> pd.DataFrame:
        """Off-by-N table for ``matrix`` (default: the training matrix)."""
        if matrix is None:
            if self.validation_matrix_ is None:
                raise RuntimeError("calculate must be called before off_by_n.")
            matrix = self.validation_matrix_
        return off_by_n(matrix)

    # ------------------------------------------------------------------ #
    # Prediction
    # ------------------------------------------------------------------ #

    def _scores(self, features: Sequence[int]) -> np.ndarray:
        return np.array([m.scale_predictor(m.predict_raw(features)) for m in self.models_],
                        dtype=np.float64)

    def predict_bins(self, features: Iterable[int]) -> np.ndarray:
        """Calibrated score per bin; mostly within [0, 1], highest wins."""
        self._require_models()
        return self._scores(tuple(features))

    def predict_sample(self, sample) -> np.ndarray:
        return self.predict_bins(self._extract(sample))

    def bin_range(self, k: int) -> Tuple[float, float]:
        bound = self.boundaries
        return float(bound[k]), float(bound[k + 1])

    def predict_summary(self, features: Iterable[int]) -> BinPrediction:
        scores = self.predict_bins(features)
        best, confidence = prediction_confidence(scores)
        low, high = self.bin_range(best)
        return BinPrediction(scores=scores, best_bin=best, confidence=confidence, low=low, high=high)

    def predict_frame(self, feature_sets: Iterable[Iterable[int]]) -> pd.DataFrame:
        """One row per sample: per-bin scores, best bin, confidence and range."""
        rows = []
        for features in feature_sets:
            summary = self.predict_summary(features)
            row = {f"bin{k}": float(s) for k, s in enumerate(summary.scores)}
            row.update(best_bin=summary.best_bin, confidence=summary.confidence,
                       range_low=summary.low, range_high=summary.high)
            rows.append(row)
        columns = [f"bin{k}" for k in range(self.model_count)] + [
            "best_bin", "confidence", "range_low", "range_high"]
        return pd.DataFrame(rows, columns=columns)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _classifier_params(self) -> Dict[str, object]:
        return {
            "feature_kind": None if self.extractor is None else self.extractor.kind,
            "random_state": self.config.random_state,
        }

    def _extract(self, sample) -> Tuple[int, ...]:
        if self.extractor is None:
            raise RuntimeError("No feature extractor configured; pass feature ids instead.")
        return tuple(self.extractor.extract(sample))

    def _entries_changed(self) -> None:
        if not self._supplied:
            self._segments = None
            self.search_ = None

    def _require_segments(self) -> None:
        if self._segments is None:
            raise RuntimeError("Segments are not defined yet.")

    def _require_models(self) -> None:
        if self.models_ is None:
            raise RuntimeError("calculate must be called before predict.")
