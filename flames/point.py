"""
2-D points and affine coefficients.

Components may be float32 scalars or equally shaped float32 arrays; in the
latter case a Point holds one coordinate per independent chain.
"""
from dataclasses import dataclass
from typing import NamedTuple, Sequence

import numpy as np


class Affine(NamedTuple):
    """x' = a*x + b*y + c, y' = d*x + e*y + f"""
    a: float
    b: float
    c: float
    d: float
    e: float
    f: float

    @classmethod
    def identity(cls) -> "Affine":
        return cls(*np.array([1.0, 0.0, 0.0, 0.0, 1.0, 0.0], dtype=np.float32))

    @classmethod
    def stack(cls, coeffs: Sequence["Affine"]) -> "Affine":
        arr = np.array([tuple(c) for c in coeffs], dtype=np.float32).reshape(-1, 6)
        return cls(*(arr[:, k] for k in range(6)))

    def take(self, idx: np.ndarray) -> "Affine":
        return Affine(*(np.asarray(v)[idx] for v in self))


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    # let numpy scalars/arrays defer to __rmul__ instead of broadcasting over us
    __array_ufunc__ = None

    def affine(self, coeffs: Affine) -> "Point":
        a, b, c, d, e, f = coeffs
        return Point(a * self.x + b * self.y + c, d * self.x + e * self.y + f)

    def __add__(self, other: "Point") -> "Point":
        if not isinstance(other, Point):
            return NotImplemented
        return Point(self.x + other.x, self.y + other.y)

    def __mul__(self, scalar) -> "Point":
        if isinstance(scalar, Point):
            return NotImplemented
        return Point(scalar * self.x, scalar * self.y)

    __rmul__ = __mul__

    def is_finite(self):
        return np.isfinite(self.x) & np.isfinite(self.y)
