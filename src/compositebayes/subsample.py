"""
Diversity subsampling of entries.

Reduces a large entry list to a smaller one that samples the value range
evenly while preferring structurally dissimilar picks, so that building a
classifier for every candidate cut point stays affordable.
"""

from __future__ import annotations

from collections import deque
from typing import Sequence

import numpy as np

from ._math import _tanimoto
from .entries import Entry

__all__ = ["diverse_subsample"]


def diverse_subsample(
    entries: Sequence[Entry],
    size: int,
    *,
    scan_window: int = 10,
    recent_window: int = 10,
) -> np.ndarray:
    """
    Pick at most ``size`` entries spread across the value range.

    The lowest- and highest-valued entries are always chosen. The rest come
    from repeated passes over ``size // 5`` evenly spaced positions in value
    order; at each position the next ``scan_window`` slots (extended until an
    unpicked entry turns up) are searched for the entry with the lowest mean
    Tanimoto similarity to the last ``recent_window`` picks. A pass that adds
    nothing ends the search early.

    Returns
    -------
    Ascending indices into ``entries``.
    """
    num = len(entries)
    size = int(size)
    if size < 2:
        raise ValueError("size must be at least 2 to hold the value extremes.")
    if size >= num:
        return np.arange(num)

    values = np.array([e.value for e in entries], dtype=np.float64)
    order = np.argsort(values, kind="mergesort")
    picked = np.zeros(num, dtype=bool)
    picked[order[0]] = True
    picked[order[-1]] = True

    # positions (in value order) of the most recent picks
    recent = deque([0, num - 1], maxlen=int(recent_window))
    count = 2

    npass = max(2, size // 5)
    inv_pass = 1.0 / (npass - 1)
    while count < size:
        anything = False
        for n in range(npass):
            if count >= size:
                break
            mid = max(1, int(np.floor((n - 0.5) * num * inv_pass + 0.5)))
            best, lowest = -1, 0.0
            i = mid
            while i < num and (i < mid + scan_window or best < 0):
                if not picked[order[i]]:
                    fp = entries[order[i]].features
                    diff = sum(_tanimoto(entries[order[r]].features, fp) for r in recent) / len(recent)
                    if best < 0 or diff < lowest:
                        best, lowest = i, diff
                i += 1
            if best < 0:
                continue

            picked[order[best]] = True
            recent.append(best)
            count += 1
            anything = True
        if not anything:
            break

    return np.flatnonzero(picked)
