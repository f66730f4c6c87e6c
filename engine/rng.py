from typing import Sequence, TypeVar
import numpy as np

T = TypeVar("T")


class DRNG:
    """Deterministic Random Number Generator wrapper."""

    def __init__(self, seed: int):
        self.seed = seed
        self.g = np.random.Generator(np.random.PCG64(seed))

    def choice(self, items: Sequence[T]) -> T:
        """Return one element of a non-empty sequence, uniformly."""
        if not items:
            raise ValueError("choice() from an empty sequence")
        return items[int(self.g.integers(len(items)))]
