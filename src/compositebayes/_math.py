"""
Low-level numerical helpers used throughout the compositebayes package.

The functions in this module are intentionally lightweight so they can be
imported by the subsampler, the density analyser and the segment search
without creating cyclic dependencies.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

__all__ = [
    "_tanimoto",
    "_minmax_scale",
    "_interpolate",
    "_laplacian_contribution",
]


def _tanimoto(fp1: Sequence[int], fp2: Sequence[int]) -> float:
    """
    Tanimoto coefficient |A & B| / |A | B| for two sorted, duplicate-free
    feature lists, computed with a single merge-style walk.

    Two empty lists have a coefficient of 0.
    """
    sz1, sz2 = len(fp1), len(fp2)
    i1 = i2 = 0
    shared = total = 0
    while i1 < sz1 and i2 < sz2:
        v1, v2 = fp1[i1], fp2[i2]
        if v1 == v2:
            shared += 1
            i1 += 1
            i2 += 1
        elif v1 < v2:
            i1 += 1
        else:
            i2 += 1
        total += 1
    total += (sz1 - i1) + (sz2 - i2)
    if total == 0:
        return 0.0
    return shared / total


def _minmax_scale(a: np.ndarray, flat: float = 0.0) -> np.ndarray:
    """
    Map ``a`` linearly onto [0, 1]. A constant array has no spread to
    normalise, so every element becomes ``flat``.
    """
    a = np.asarray(a, dtype=np.float64)
    lo, hi = float(np.min(a)), float(np.max(a))
    if hi <= lo:
        return np.full_like(a, float(flat))
    return (a - lo) / (hi - lo)


def _interpolate(y: np.ndarray, x: float) -> float:
    """Linear read of ``y`` at fractional index ``x``, clamped at both ends."""
    if x < 0:
        return float(y[0])
    if x >= len(y) - 1:
        return float(y[-1])
    ix = int(np.floor(x))
    rx = x - ix
    return float(y[ix] * (1.0 - rx) + y[ix + 1] * rx)


def _laplacian_contribution(
    in_active: np.ndarray | float,
    in_total: np.ndarray | float,
    base_rate: float,
) -> np.ndarray | float:
    """Laplacian-corrected log-odds weight of a binary feature."""
    return np.log((in_active + 1.0) / (in_total * base_rate + 1.0))
