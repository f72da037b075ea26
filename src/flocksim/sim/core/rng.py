from __future__ import annotations

import random


class DeterministicRng:
    def __init__(self, seed: int | None):
        self._random = random.Random(seed)

    def next_int(self, low: int, high: int) -> int:
        """Uniform integer in the closed range ``[low, high]``."""
        return self._random.randint(low, high)
