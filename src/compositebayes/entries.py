"""
Training entries and the builder that accumulates them.

Entries are gathered one at a time, then frozen into an immutable snapshot
for the duration of a single calculation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Sequence, Tuple

import numpy as np

from .features import normalise_features

__all__ = ["Entry", "EntryCollection", "split_holdout"]


@dataclass(frozen=True)
class Entry:
    """A feature set (sorted unique ids) and its continuous label."""

    features: Tuple[int, ...]
    value: float
    sample: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "features", normalise_features(self.features))
        object.__setattr__(self, "value", float(self.value))


class EntryCollection:
    """Builder for :class:`Entry` lists; see :meth:`freeze`."""

    def __init__(self, entries: Iterable[Entry] = ()) -> None:
        self._entries: List[Entry] = list(entries)

    def add(self, features: Iterable[int], value: float, sample: Any = None) -> Entry:
        entry = Entry(tuple(features), value, sample)
        self._entries.append(entry)
        return entry

    def append(self, entry: Entry) -> None:
        self._entries.append(entry)

    def extend(self, entries: Iterable[Entry]) -> None:
        self._entries.extend(entries)

    def clear(self) -> None:
        self._entries.clear()

    def freeze(self) -> Tuple[Entry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, idx: int) -> Entry:
        return self._entries[idx]

    def __iter__(self):
        return iter(self._entries)


def split_holdout(
    entries: Sequence[Entry],
    fraction: float,
    random_state: int = 1,
) -> Tuple[List[Entry], List[Entry]]:
    """
    Move a random ``fraction`` of ``entries`` into a testing list.

    Entries are drawn one at a time with a seeded generator, and drawing
    stops early so that the training list never shrinks to 10 or fewer.

    Returns
    -------
    training, testing
    """
    if not 0.0 <= float(fraction) <= 1.0:
        raise ValueError("fraction must be within [0, 1].")
    training = list(entries)
    testing: List[Entry] = []
    to_move = int(round(float(fraction) * len(training)))
    rng = np.random.default_rng(random_state)
    while to_move > 0 and len(training) > 10:
        testing.append(training.pop(int(rng.integers(len(training)))))
        to_move -= 1
    return training, testing
