import numpy as np
import pytest

from compositebayes import Entry


def gap_entries():
    """Ten entries with a clear gap between 5 and 16 (low/high share features)."""
    entries = []
    for i, v in enumerate([1, 2, 3, 4, 5, 16, 17, 18, 19, 20]):
        group = (1, 2, 3) if v < 10 else (4, 5, 6)
        entries.append(Entry(group + (100 + i,), v))
    return entries


def modal_entries(n=130, seed=7):
    """
    Three value modes; each mode has its own feature pool, drawn with some
    noise, plus a few features shared by everything.
    """
    rng = np.random.default_rng(seed)
    centres = (2.0, 6.0, 10.0)
    entries = []
    for i in range(n):
        mode = i % 3
        value = centres[mode] + rng.normal(0.0, 0.6)
        own = [1000 * (mode + 1) + int(k) for k in rng.choice(12, size=6, replace=False)]
        noise = [int(k) for k in rng.choice(40, size=3, replace=False)]
        entries.append(Entry(own + noise + [9999], value))
    return entries


@pytest.fixture
def gap_data():
    return gap_entries()


@pytest.fixture
def modal_data():
    return modal_entries()
