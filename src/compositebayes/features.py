"""
Feature extraction: turning a raw sample into a sorted set of integer ids.

The composite model only ever sees the ids, so any deterministic extractor
can be plugged in; :class:`HashedNGramExtractor` is the reference one.
"""

from __future__ import annotations

import zlib
from typing import Iterable, Protocol, Tuple, runtime_checkable

__all__ = ["FeatureExtractor", "HashedNGramExtractor", "normalise_features"]


@runtime_checkable
class FeatureExtractor(Protocol):
    kind: str

    def extract(self, sample) -> Tuple[int, ...]:
        ...


def normalise_features(features: Iterable[int]) -> Tuple[int, ...]:
    """Sorted, duplicate-free tuple of ints."""
    return tuple(sorted({int(f) for f in features}))


def _signed32(h: int) -> int:
    return h - (1 << 32) if h >= (1 << 31) else h


class HashedNGramExtractor:
    """
    Hash every character n-gram of length 1..``n`` of a string sample into
    a signed 32-bit id (CRC32), giving a sparse binary fingerprint.

    Parameters
    ----------
    n :
        Longest n-gram.
    lowercase :
        Fold case before hashing.
    """

    def __init__(self, n: int = 3, lowercase: bool = False) -> None:
        if int(n) < 1:
            raise ValueError("n must be at least 1.")
        self.n = int(n)
        self.lowercase = bool(lowercase)

    @property
    def kind(self) -> str:
        return f"ngram{self.n}{'-lc' if self.lowercase else ''}"

    def extract(self, sample) -> Tuple[int, ...]:
        if not isinstance(sample, str):
            raise TypeError(f"Expected a string sample, got {type(sample).__name__}.")
        text = sample.lower() if self.lowercase else sample
        ids = set()
        for k in range(1, self.n + 1):
            for i in range(len(text) - k + 1):
                gram = text[i:i + k].encode("utf-8")
                ids.add(_signed32(zlib.crc32(gram) & 0xFFFFFFFF))
        return tuple(sorted(ids))
