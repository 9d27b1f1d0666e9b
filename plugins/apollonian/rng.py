"""
Deterministic Random Source

Seeded integer generator with explicit reset. Every stochastic choice in a
run (initial curvatures, per-circle colors, reveal shuffle) is drawn from an
instance of this class, so one seed reproduces the whole animation.

Instances are cheap and are NOT shared between render threads: each frame
render builds its own generator reset to the run's seed.
"""

import numpy as np


class DeterministicRandom:
    """Seeded random integers backed by numpy's PCG64 generator."""

    def __init__(self, seed=0):
        self.seed = None
        self._rng = None
        self.reset(seed)

    def reset(self, seed):
        """Restart the sequence from `seed` (any int, negatives allowed)."""
        self.seed = int(seed)
        self._rng = np.random.default_rng(self.seed % (1 << 64))

    def random_integer(self, lo, hi):
        """Uniform integer in [lo, hi], both ends inclusive."""
        return int(self._rng.integers(lo, hi, endpoint=True))

    def random_color(self):
        """Random (r, g, b) triple, each channel in [0, 255]."""
        r, g, b = self._rng.integers(0, 255, size=3, endpoint=True)
        return int(r), int(g), int(b)

    def shuffle(self, items):
        """Fisher-Yates shuffle of a list, in place. Returns the list."""
        n = len(items)
        while n > 1:
            n -= 1
            k = self.random_integer(0, n)
            items[k], items[n] = items[n], items[k]
        return items
