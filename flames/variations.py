"""
Variation catalog for fractal flames (Draves & Reckase, "The Fractal Flame
Algorithm").

Every variation is a pure function of a preprocessed point. ``preprocess``
computes the radius, angle and the trigonometry shared between variations
once per function application; ``blend`` sums the weighted variations.

Note: the angle is ``atan2(x, y)`` (x first), the convention the flame
formulas are written against.
"""
from dataclasses import dataclass, fields
from enum import IntEnum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .point import Affine, Point
from .random_source import RandomSource, unit, units

PI = np.float32(np.pi)


# ---------- Per-entry parameters ----------
def _stack(cls, items):
    return cls(*(np.array([getattr(it, f.name) for it in items], dtype=np.float32)
                 for f in fields(cls)))


def _take(obj, idx):
    return type(obj)(*(np.asarray(getattr(obj, f.name))[idx] for f in fields(obj)))


@dataclass(frozen=True)
class Blob:
    low: float
    high: float
    waves: float


@dataclass(frozen=True)
class Pdj:
    a: float
    b: float
    c: float
    d: float


@dataclass(frozen=True)
class Fan:
    x: float
    y: float


@dataclass(frozen=True)
class Curl:
    c1: float
    c2: float


@dataclass(frozen=True)
class Params:
    """Random parameters of the parametric variations, drawn once per entry."""
    blob: Blob
    pdj: Pdj
    fan: Fan
    curl: Curl

    @classmethod
    def draw(cls, rng: RandomSource) -> "Params":
        low = unit(rng)
        high = low + unit(rng)
        waves = np.floor(unit(rng) * np.float32(8.0))
        pdj = [np.float32(3.0) * unit(rng) for _ in range(4)]
        fan = [unit(rng) for _ in range(2)]
        curl = [unit(rng) for _ in range(2)]
        return cls(Blob(low, high, waves), Pdj(*pdj), Fan(*fan), Curl(*curl))

    @classmethod
    def zeros(cls) -> "Params":
        z = np.float32(0.0)
        return cls(Blob(z, z, z), Pdj(z, z, z, z), Fan(z, z), Curl(z, z))

    @classmethod
    def stack(cls, params: Sequence["Params"]) -> "Params":
        return cls(
            _stack(Blob, [p.blob for p in params]),
            _stack(Pdj, [p.pdj for p in params]),
            _stack(Fan, [p.fan for p in params]),
            _stack(Curl, [p.curl for p in params]),
        )

    def take(self, idx: np.ndarray) -> "Params":
        return Params(_take(self.blob, idx), _take(self.pdj, idx),
                      _take(self.fan, idx), _take(self.curl, idx))

    def as_dict(self) -> Dict[str, float]:
        out = {}
        for group in fields(self):
            sub = getattr(self, group.name)
            for f in fields(sub):
                out[f"{group.name}_{f.name}"] = float(getattr(sub, f.name))
        return out


# ---------- Preprocessing ----------
@dataclass(frozen=True)
class PreProc:
    coeffs: Affine
    params: Params
    rng: Optional[RandomSource]
    x: np.ndarray
    y: np.ndarray
    r: np.ndarray
    r_inv: np.ndarray
    r2: np.ndarray
    r2_inv: np.ndarray
    theta: np.ndarray
    sinx: np.ndarray
    siny: np.ndarray
    cosy: np.ndarray
    tany: np.ndarray
    sint: np.ndarray
    cost: np.ndarray
    sinr: np.ndarray
    cosr: np.ndarray
    sinr2: np.ndarray
    cosr2: np.ndarray
    sintr_sum: np.ndarray
    costr_sum: np.ndarray
    sintr_diff: np.ndarray
    costr_diff: np.ndarray
    sintr_prod: np.ndarray
    costr_prod: np.ndarray
    sinpr: np.ndarray
    cospr: np.ndarray
    sinpy: np.ndarray
    cospy: np.ndarray


def preprocess(p: Point, coeffs: Affine, params: Params,
               rng: Optional[RandomSource] = None) -> PreProc:
    # zero radius is not guarded: r_inv / r2_inv become inf
    x = np.asarray(p.x, dtype=np.float32)
    y = np.asarray(p.y, dtype=np.float32)
    r2 = x * x + y * y
    r = np.sqrt(r2)
    theta = np.arctan2(x, y)
    return PreProc(
        coeffs=coeffs,
        params=params,
        rng=rng,
        x=x,
        y=y,
        r=r,
        r_inv=np.float32(1.0) / r,
        r2=r2,
        r2_inv=np.float32(1.0) / r2,
        theta=theta,
        sinx=np.sin(x),
        siny=np.sin(y),
        cosy=np.cos(y),
        tany=np.tan(y),
        sint=np.sin(theta),
        cost=np.cos(theta),
        sinr=np.sin(r),
        cosr=np.cos(r),
        sinr2=np.sin(r2),
        cosr2=np.cos(r2),
        sintr_sum=np.sin(theta + r),
        costr_sum=np.cos(theta + r),
        sintr_diff=np.sin(theta - r),
        costr_diff=np.cos(theta - r),
        sintr_prod=np.sin(theta * r),
        costr_prod=np.cos(theta * r),
        sinpr=np.sin(PI * r),
        cospr=np.cos(PI * r),
        sinpy=np.sin(PI * y),
        cospy=np.cos(PI * y),
    )


# ---------- Variations ----------
def linear(p: PreProc) -> Point:
    return Point(p.x, p.y)


def sinusoidal(p: PreProc) -> Point:
    return Point(p.sinx, p.siny)


def spherical(p: PreProc) -> Point:
    return p.r2_inv * Point(p.x, p.y)


def swirl(p: PreProc) -> Point:
    return Point(p.x * p.sinr2 - p.y * p.cosr2, p.x * p.cosr2 + p.y * p.sinr2)


def horseshoe(p: PreProc) -> Point:
    return p.r_inv * Point((p.x - p.y) * (p.x + p.y), 2.0 * p.x * p.y)


def polar(p: PreProc) -> Point:
    return Point(p.theta / PI, p.r - 1.0)


def handkerchief(p: PreProc) -> Point:
    return Point(p.r * p.sintr_sum, p.r * p.costr_diff)


def heart(p: PreProc) -> Point:
    return Point(p.r * p.sintr_prod, -p.r * p.costr_prod)


def disc(p: PreProc) -> Point:
    return (p.theta / PI) * Point(p.sinpr, p.cospr)


def spiral(p: PreProc) -> Point:
    return p.r_inv * Point(p.cost + p.sinr, p.sint - p.cosr)


def hyperbolic(p: PreProc) -> Point:
    return Point(p.sint * p.r_inv, p.r * p.cost)


def diamond(p: PreProc) -> Point:
    return Point(p.sint * p.cosr, p.cost * p.sinr)


def ex(p: PreProc) -> Point:
    p03 = p.sintr_sum * p.sintr_sum * p.sintr_sum
    p13 = p.costr_diff * p.costr_diff * p.costr_diff
    return p.r * Point(p03 + p13, p03 - p13)


def julia(p: PreProc) -> Point:
    # omega is a fresh coin flip on every call, not fixed per entry
    if p.rng is None:
        raise ValueError("julia variation needs a random source.")
    shape = np.shape(p.x)
    u = unit(p.rng) if shape == () else units(p.rng, int(np.prod(shape))).reshape(shape)
    omega = np.where(u < 0.5, np.float32(-1.0), np.float32(1.0))
    sqrtr = np.sqrt(p.r)
    half = p.theta / 2.0 + omega
    return sqrtr * Point(np.cos(half), np.sin(half))


def bent(p: PreProc) -> Point:
    x = np.where(p.x >= 0.0, p.x, 2.0 * p.x)
    y = np.where(p.y >= 0.0, p.y, p.y / 2.0)
    return Point(x, y)


def waves(p: PreProc) -> Point:
    c = p.coeffs
    sinyc2 = np.sin(p.y / (c.c * c.c))
    sinxf2 = np.sin(p.x / (c.f * c.f))
    return Point(p.x + c.b * sinyc2, p.y + c.e * sinxf2)


def fisheye(p: PreProc) -> Point:
    return (2.0 / (p.r + 1.0)) * Point(p.y, p.x)


def popcorn(p: PreProc) -> Point:
    c = p.coeffs
    return Point(p.x + c.c * np.sin(np.tan(3.0 * p.y)),
                 p.y + c.f * np.sin(np.tan(3.0 * p.x)))


def power(p: PreProc) -> Point:
    return np.power(p.r, p.sint) * Point(p.cost, p.sint)


def rings(p: PreProc) -> Point:
    c2 = p.coeffs.c * p.coeffs.c
    modulo = np.mod(p.r + c2, 2.0 * c2)
    factor = modulo - c2 + p.r * (1.0 - c2)
    return factor * Point(p.cost, p.sint)


def fan(p: PreProc) -> Point:
    t = PI * p.coeffs.c * p.coeffs.c
    modulo = np.mod(p.theta + p.coeffs.f, t)
    angle = np.where(modulo > t / 2.0, p.theta - t / 2.0, p.theta + t / 2.0)
    return p.r * Point(np.cos(angle), np.sin(angle))


def blob(p: PreProc) -> Point:
    b = p.params.blob
    p1 = b.low
    p2 = (b.high - b.low) / 2.0
    p3 = np.sin(b.waves * p.theta)
    return (p.r * (p1 + p2 * (p3 + 1.0))) * Point(p.cost, p.sint)


def pdj(p: PreProc) -> Point:
    q = p.params.pdj
    return Point(np.sin(q.a * p.y) - np.cos(q.b * p.x),
                 np.sin(q.c * p.x) - np.cos(q.d * p.y))


def fan2(p: PreProc) -> Point:
    f = p.params.fan
    p1 = 0.5 * PI * f.x * f.x
    p2 = f.y
    t = p.theta + p2 - 2.0 * p1 * np.trunc(p.theta * p2 / p1)
    angle = np.where(t > p1, p.theta - p1, p.theta + p1)
    return p.r * Point(np.sin(angle), np.cos(angle))


def eyefish(p: PreProc) -> Point:
    return (2.0 / (p.r + 1.0)) * Point(p.x, p.y)


def bubble(p: PreProc) -> Point:
    return (4.0 / (p.r2 + 4.0)) * Point(p.x, p.y)


def cylinder(p: PreProc) -> Point:
    return Point(p.sinx, p.y)


def curl(p: PreProc) -> Point:
    c1, c2 = p.params.curl.c1, p.params.curl.c2
    t1 = 1.0 + c1 * p.x + c2 * (p.x * p.x - p.y * p.y)
    t2 = c1 * p.y + 2.0 * c2 * p.x * p.y
    return (1.0 / (t1 * t1 + t2 * t2)) * Point(p.x * t1 + p.y * t2, p.y * t1 - p.x * t2)


def tangent(p: PreProc) -> Point:
    return Point(p.sinx / p.cosy, p.tany)


class Variation(IntEnum):
    LINEAR = 0
    SINUSOIDAL = 1
    SPHERICAL = 2
    SWIRL = 3
    HORSESHOE = 4
    POLAR = 5
    HANDKERCHIEF = 6
    HEART = 7
    DISC = 8
    SPIRAL = 9
    HYPERBOLIC = 10
    DIAMOND = 11
    EX = 12
    JULIA = 13
    BENT = 14
    WAVES = 15
    FISHEYE = 16
    POPCORN = 17
    POWER = 19
    RINGS = 21
    FAN = 22
    BLOB = 23
    PDJ = 24
    FAN2 = 25
    EYEFISH = 27
    BUBBLE = 28
    CYLINDER = 29
    CURL = 39
    TANGENT = 42


VARIATIONS: Dict[Variation, Callable[[PreProc], Point]] = {
    Variation.LINEAR: linear,
    Variation.SINUSOIDAL: sinusoidal,
    Variation.SPHERICAL: spherical,
    Variation.SWIRL: swirl,
    Variation.HORSESHOE: horseshoe,
    Variation.POLAR: polar,
    Variation.HANDKERCHIEF: handkerchief,
    Variation.HEART: heart,
    Variation.DISC: disc,
    Variation.SPIRAL: spiral,
    Variation.HYPERBOLIC: hyperbolic,
    Variation.DIAMOND: diamond,
    Variation.EX: ex,
    Variation.JULIA: julia,
    Variation.BENT: bent,
    Variation.WAVES: waves,
    Variation.FISHEYE: fisheye,
    Variation.POPCORN: popcorn,
    Variation.POWER: power,
    Variation.RINGS: rings,
    Variation.FAN: fan,
    Variation.BLOB: blob,
    Variation.PDJ: pdj,
    Variation.FAN2: fan2,
    Variation.EYEFISH: eyefish,
    Variation.BUBBLE: bubble,
    Variation.CYLINDER: cylinder,
    Variation.CURL: curl,
    Variation.TANGENT: tangent,
}

# Default blend: the catalog minus linear, heart, popcorn, rings, fan and fan2
DEFAULT_VARIATIONS: Tuple[Variation, ...] = (
    Variation.SINUSOIDAL, Variation.SPHERICAL, Variation.SWIRL, Variation.HORSESHOE,
    Variation.POLAR, Variation.HANDKERCHIEF, Variation.DISC, Variation.SPIRAL,
    Variation.HYPERBOLIC, Variation.DIAMOND, Variation.EX, Variation.JULIA,
    Variation.BENT, Variation.WAVES, Variation.FISHEYE, Variation.POWER,
    Variation.BLOB, Variation.PDJ, Variation.EYEFISH, Variation.BUBBLE,
    Variation.CYLINDER, Variation.CURL, Variation.TANGENT,
)


def parse_variations(names: Iterable) -> Tuple[Variation, ...]:
    out: List[Variation] = []
    for nm in names:
        if isinstance(nm, Variation):
            out.append(nm)
            continue
        key = str(nm).strip().upper().replace("-", "_")
        if key not in Variation.__members__:
            raise ValueError(f"unknown variation: {nm!r}")
        out.append(Variation[key])
    if not out:
        raise ValueError("at least one variation is required.")
    return tuple(out)


def blend(pre: PreProc, weights: np.ndarray, variations: Sequence[Variation]) -> Point:
    """Weighted sum of every variation; ``weights[..., k]`` pairs with ``variations[k]``."""
    acc = None
    for k, var in enumerate(variations):
        term = weights[..., k] * VARIATIONS[var](pre)
        acc = term if acc is None else acc + term
    return acc
