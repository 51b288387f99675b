"""Mapping values onto bins delimited by sorted cut points."""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

import numpy as np

from .exceptions import InvalidConfigurationError

__all__ = ["assign_bins", "bin_sizes", "insert_segment", "check_segments"]


def check_segments(segments: Iterable[float]) -> Tuple[float, ...]:
    """Return ``segments`` as a tuple, refusing unsorted or duplicate cuts."""
    seg = tuple(float(s) for s in segments)
    arr = np.asarray(seg, dtype=np.float64)
    if not np.all(np.isfinite(arr)):
        raise InvalidConfigurationError("Segments must be finite numbers.")
    if arr.size > 1 and not np.all(np.diff(arr) > 0):
        raise InvalidConfigurationError(f"Segments must be strictly ascending: {list(seg)}")
    return seg


def assign_bins(
    segments: Sequence[float],
    values: Iterable[float],
) -> Tuple[np.ndarray, List[np.ndarray]]:
    """
    Bin index of each value, plus the indices grouped per bin.

    A value's bin is the number of cuts it is greater than or equal to, so
    bin 0 is ``v < seg[0]`` and bin k is ``seg[k-1] <= v < seg[k]``.
    """
    seg = np.asarray(segments, dtype=np.float64)
    vals = np.asarray(list(values), dtype=np.float64)
    idx = np.searchsorted(seg, vals, side="right")
    bins = [np.flatnonzero(idx == b) for b in range(seg.size + 1)]
    return idx, bins


def bin_sizes(segments: Sequence[float], values: Iterable[float]) -> np.ndarray:
    idx, _ = assign_bins(segments, values)
    return np.bincount(idx, minlength=len(segments) + 1)


def insert_segment(segments: Sequence[float], cut: float) -> Tuple[Tuple[float, ...], int]:
    """
    Insert ``cut`` in sorted position; returns the new cuts and the index of
    the lower of the two bins the cut divides.
    """
    pos = int(np.searchsorted(np.asarray(segments, dtype=np.float64), cut, side="left"))
    newseg = tuple(segments[:pos]) + (float(cut),) + tuple(segments[pos:])
    return newseg, pos
