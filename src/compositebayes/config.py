"""
Tunable parameters for segment search and ensemble construction.

The defaults reproduce the behaviour the composite models were calibrated
with; most callers only ever touch the bin counts.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Dict

from .exceptions import InvalidConfigurationError

__all__ = ["CompositeConfig", "MIN_BINS_FLOOR", "MAX_BINS_CEILING"]

# fewer than three bins defeats the purpose of a composite model
MIN_BINS_FLOOR = 3
MAX_BINS_CEILING = 20


@dataclass
class CompositeConfig:
    """
    Parameters for :class:`~compositebayes.model.CompositeModel`.

    Parameters
    ----------
    min_bins, max_bins :
        Allowed number of bins. ``min_bins`` is raised to at least 3 and
        ``max_bins`` capped at 20; both may be equal, but ``max_bins``
        below ``min_bins`` is refused.
    cluster_subsize :
        Largest subset handed to the classifier while estimating cut point
        separability; bigger sets are reduced by the diversity subsampler.
    max_candidates :
        Size of the refinement pool taken from the ranked cut points.
    min_roc_split :
        Refinement stops once the best split of a new pair of bins scores
        below this ROC-AUC (the first extra segment is always accepted).
    min_bin_fraction :
        No bin may hold fewer than ``ceil(min_bin_fraction * n)`` entries.
    density_points, density_padding, kernel_width :
        Resolution of the smoothed value density, the padding added on each
        side of the value range, and the kernel width factor.
    scan_window, recent_window :
        Subsampler look-ahead per sampling position, and how many recent
        picks the diversity comparison is made against.
    n_jobs :
        1 scores candidates sequentially; -1 or None uses a process pool
        sized to the machine, any other value a pool of that size.
    """

    min_bins: int = 3
    max_bins: int = 8
    cluster_subsize: int = 100
    max_candidates: int = 50
    min_roc_split: float = 0.55
    min_bin_fraction: float = 0.05
    density_points: int = 1000
    density_padding: float = 1.0
    kernel_width: float = 0.1
    scan_window: int = 10
    recent_window: int = 10
    n_jobs: int | None = 1
    random_state: int = 42
    verbose: bool = False

    def __post_init__(self) -> None:
        self.min_bins = max(MIN_BINS_FLOOR, int(self.min_bins))
        self.max_bins = min(MAX_BINS_CEILING, int(self.max_bins))
        self._check()

    def _check(self) -> None:
        if self.max_bins < self.min_bins:
            raise InvalidConfigurationError(
                f"max_bins={self.max_bins} is below min_bins={self.min_bins}."
            )
        if not 0.0 <= float(self.min_bin_fraction) < 0.5:
            raise InvalidConfigurationError(
                f"min_bin_fraction must be in [0, 0.5), got {self.min_bin_fraction}."
            )
        if int(self.cluster_subsize) < 2:
            raise InvalidConfigurationError("cluster_subsize must be at least 2.")
        if int(self.density_points) < 5:
            raise InvalidConfigurationError("density_points must be at least 5.")
        if int(self.scan_window) < 1 or int(self.recent_window) < 1:
            raise InvalidConfigurationError("scan_window and recent_window must be positive.")
        if int(self.max_candidates) < 0:
            raise InvalidConfigurationError("max_candidates must not be negative.")

    # ------------------------------------------------------------------ #
    # Parameter helpers
    # ------------------------------------------------------------------ #

    def set_num_bins(self, nbins: int) -> "CompositeConfig":
        nbins = min(MAX_BINS_CEILING, max(MIN_BINS_FLOOR, int(nbins)))
        self.min_bins = nbins
        self.max_bins = nbins
        return self

    def get_params(self) -> Dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def set_params(self, **params) -> "CompositeConfig":
        known = {f.name for f in fields(self)}
        for key in params:
            if key not in known:
                raise InvalidConfigurationError(f"Unknown parameter '{key}'.")
        # validated on a copy so a refused change leaves self untouched
        checked = replace(self, **params)
        for f in fields(self):
            setattr(self, f.name, getattr(checked, f.name))
        return self
