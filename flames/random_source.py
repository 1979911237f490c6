"""
Uniform random sources for the generator and the chaos game.

Anything with a numpy-style ``random(size=None)`` method returning draws in
[0, 1) will do; ``numpy.random.Generator`` satisfies it as is.
"""
from typing import Iterable, Optional, Protocol, Union

import numpy as np


class RandomSource(Protocol):
    def random(self, size: Optional[int] = None) -> Union[float, np.ndarray]:
        ...


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(seed)


# float64 draws above this round up to 1.0 when cast to float32
ONE_BELOW = np.nextafter(np.float32(1.0), np.float32(0.0))


def unit(rng: RandomSource) -> np.float32:
    return np.minimum(np.float32(rng.random()), ONE_BELOW)


def units(rng: RandomSource, n: int) -> np.ndarray:
    draws = np.asarray(rng.random(n), dtype=np.float32).reshape(n)
    return np.minimum(draws, ONE_BELOW)


class ScriptedRandom:
    """Replays a fixed list of draws, wrapping around at the end."""

    def __init__(self, values: Iterable[float]):
        self.values = [float(v) for v in values]
        if not self.values:
            raise ValueError("ScriptedRandom needs at least one value.")
        if any(not (0.0 <= v < 1.0) for v in self.values):
            raise ValueError("scripted draws must lie in [0, 1).")
        self.pos = 0
        self.drawn = 0

    def _next(self) -> float:
        v = self.values[self.pos]
        self.pos = (self.pos + 1) % len(self.values)
        self.drawn += 1
        return v

    def random(self, size: Optional[int] = None):
        if size is None:
            return self._next()
        return np.array([self._next() for _ in range(int(size))], dtype=np.float64)
