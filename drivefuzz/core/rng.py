"""
Seeded random source for reproducible fuzz runs.
"""

import math
import random
from typing import Optional


class SeededRandomSource:
    """
    Deterministic bounded-integer generator.

    String seeds go through random.Random's SHA-512 seeding, so the same seed
    yields the same sequence on every platform. A failing run is reproduced
    from its seed and iteration count alone.
    """

    def __init__(self, seed: str) -> None:
        self.seed = seed
        self.draws = 0
        self._rng = random.Random(seed)

    def random_int(self, n: float) -> Optional[int]:
        """
        Draw a uniform integer in [0, floor(n)].

        Returns:
            The drawn value, or None when n < 0 (empty domain). An empty
            domain does not consume a draw.
        """
        bound = math.floor(n)
        if bound < 0:
            return None
        self.draws += 1
        return self._rng.randint(0, bound)

    def below(self, n: float) -> int:
        """
        Draw from the half-open range [0, ceil(n)), or 0 if it is empty.
        """
        value = self.random_int(math.ceil(n) - 1)
        return 0 if value is None else value

    def __repr__(self) -> str:
        return f"SeededRandomSource(seed={self.seed!r}, draws={self.draws})"
