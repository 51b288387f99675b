"""
Quickstart example for the compositebayes package.

Builds a composite model from synthetic fingerprints whose features depend
on which of three value regimes a sample comes from. Run with:

    python examples/quickstart.py
"""

from __future__ import annotations

import numpy as np

from compositebayes import CompositeConfig, CompositeModel, split_holdout
from compositebayes.entries import Entry


def synthetic_entries(n: int = 120, seed: int = 0):
    rng = np.random.default_rng(seed)
    entries = []
    for i in range(n):
        regime = i % 3
        value = rng.normal(loc=3.0 * regime, scale=0.5)
        own = 100 * (regime + 1) + rng.choice(10, size=4, replace=False)
        noise = rng.choice(1000, size=3, replace=False) + 5000
        entries.append(Entry(tuple(own) + tuple(noise), value))
    return entries


def main() -> None:
    training, testing = split_holdout(synthetic_entries(), 0.2)

    model = CompositeModel(CompositeConfig(max_bins=5, verbose=True))
    model.extend(training)
    model.calculate()

    print("segments:", model.segments)
    print("bin sizes:", model.bin_sizes().tolist())
    print("training off-by-N:\n", model.off_by_n())
    print("held-out off-by-N:\n", model.off_by_n(model.validate(testing)))

    summary = model.predict_summary(testing[0].features)
    print(f"true value={testing[0].value:.3f} -> bin {summary.best_bin} "
          f"[{summary.low:.3f}, {summary.high:.3f}] confidence={summary.confidence:.3f}")


if __name__ == "__main__":
    main()
