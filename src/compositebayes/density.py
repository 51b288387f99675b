"""
Smoothed density of a set of values and its normalised curvature.

Every value is drawn as a unit-area Gaussian on a fixed grid; the second
derivative of the sum is high in the valleys between modes, which is where
cut points are most natural.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from ._math import _interpolate, _minmax_scale

__all__ = ["DensityCurve", "density_curve"]


def _plot_gaussian(y: np.ndarray, x: float, sigma: float) -> None:
    """Add a unit-area Gaussian centred at grid position ``x`` onto ``y``."""
    k = 1.0 / np.sqrt(2.0 * np.pi * sigma * sigma)
    a = 1.0 / (2.0 * sigma * sigma)
    d = np.arange(y.size, dtype=np.float64) - x
    v = k * np.exp(-d * d * a)
    y += v

    total = float(np.sum(v))
    if total < 0.99:
        # mass that fell off the grid goes to the nearer edge
        if 2.0 * x < y.size:
            y[0] += 1.0 - total
        else:
            y[-1] += 1.0 - total


@dataclass(frozen=True)
class DensityCurve:
    low: float
    high: float
    height: np.ndarray
    deriv1: np.ndarray
    deriv2: np.ndarray
    curvature: np.ndarray

    @property
    def npt(self) -> int:
        return int(self.height.size)

    def position(self, value: float) -> float:
        return (float(value) - self.low) / (self.high - self.low) * self.npt

    def height_at(self, value: float) -> float:
        return _interpolate(self.height, self.position(value))

    def curvature_at(self, value: float) -> float:
        """Normalised second derivative at ``value``: 1 = deepest valley."""
        return _interpolate(self.curvature, self.position(value))


def density_curve(
    values: Iterable[float],
    npt: int = 1000,
    padding: float = 1.0,
    width: float = 0.1,
) -> DensityCurve:
    """
    Build the density over ``[min - padding, max + padding]`` sampled at
    ``npt`` points, with kernel width ``width / (high - low) * npt`` samples.

    The derivatives are plain centred differences (unscaled); only the
    second derivative is min-max normalised, into ``curvature``.
    """
    vals = np.asarray(list(values), dtype=np.float64)
    if vals.size == 0:
        raise ValueError("Cannot build a density curve without values.")
    low = float(np.min(vals)) - float(padding)
    high = float(np.max(vals)) + float(padding)
    if not high > low:
        raise ValueError("Value range is empty; use a positive padding.")

    sigma = float(width) / (high - low) * npt
    height = np.zeros(npt, dtype=np.float64)
    for v in vals:
        _plot_gaussian(height, (v - low) / (high - low) * npt, sigma)

    deriv1 = np.zeros(npt, dtype=np.float64)
    deriv2 = np.zeros(npt, dtype=np.float64)
    deriv1[1:npt - 1] = height[2:] - height[:npt - 2]
    deriv2[2:npt - 2] = deriv1[3:npt - 1] - deriv1[1:npt - 3]

    return DensityCurve(
        low=low,
        high=high,
        height=height,
        deriv1=deriv1,
        deriv2=deriv2,
        curvature=_minmax_scale(deriv2, flat=0.0),
    )
