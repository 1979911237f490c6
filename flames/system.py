"""
Random function systems: N weighted entries plus one final entry.

Each entry is a pre-affine map, a normalized blend over the chosen
variations, a post-affine map, a color and a cumulative selection threshold.
All draws come from the injected random source, in a fixed order, so a given
stream always yields the same system.
"""
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from .point import Affine
from .random_source import RandomSource, unit, units
from .variations import DEFAULT_VARIATIONS, Params, Variation, parse_variations

WEIGHT_TOL = 1e-4
THRESHOLD_TOL = 1e-6


def create_coeffs(rng: RandomSource) -> Affine:
    # wide linear part, narrow translation keeps the attractor near the origin
    a = unit(rng) * 2.0 - 1.0
    b = unit(rng) * 2.0 - 1.0
    c = unit(rng) * np.float32(0.2) - np.float32(0.1)
    d = unit(rng) * 2.0 - 1.0
    e = unit(rng) * 2.0 - 1.0
    f = unit(rng) * np.float32(0.2) - np.float32(0.1)
    return Affine(*np.array([a, b, c, d, e, f], dtype=np.float32))


def create_weights(rng: RandomSource, num_variations: int) -> np.ndarray:
    w = units(rng, num_variations)
    total = w.sum(dtype=np.float32)
    if not total > 0.0:
        raise ValueError("variation weights sum to zero; cannot normalize.")
    return (w / total).astype(np.float32)


def create_color(rng: RandomSource) -> Tuple[float, float, float]:
    # first channel pinned to 1.0 keeps the palette away from black
    return (np.float32(1.0), unit(rng), unit(rng))


def prob_dist(rng: RandomSource, num_functions: int) -> np.ndarray:
    cum = np.cumsum(units(rng, num_functions), dtype=np.float32)
    if not cum[-1] > 0.0:
        raise ValueError("selection draws sum to zero; cannot build thresholds.")
    return (cum / cum[-1]).astype(np.float32)


@dataclass(frozen=True)
class FunctionSystemEntry:
    pre: Affine
    post: Affine
    weights: np.ndarray
    color: Tuple[float, float, float]
    threshold: float
    params: Params


@dataclass(frozen=True)
class StackedSystem:
    """Entry fields stacked along axis 0, ready for per-chain gathers."""
    pre: Affine
    post: Affine
    weights: np.ndarray
    colors: np.ndarray
    thresholds: np.ndarray
    params: Params

    def __len__(self) -> int:
        return len(self.thresholds)


def _stack_entries(entries: Sequence[FunctionSystemEntry]) -> StackedSystem:
    return StackedSystem(
        pre=Affine.stack([e.pre for e in entries]),
        post=Affine.stack([e.post for e in entries]),
        weights=np.array([e.weights for e in entries], dtype=np.float32),
        colors=np.array([e.color for e in entries], dtype=np.float32),
        thresholds=np.array([e.threshold for e in entries], dtype=np.float32),
        params=Params.stack([e.params for e in entries]),
    )


@dataclass(frozen=True)
class FunctionSystem:
    entries: Tuple[FunctionSystemEntry, ...]
    final: FunctionSystemEntry
    variations: Tuple[Variation, ...]

    def __len__(self) -> int:
        return len(self.entries)

    def stacked(self) -> Tuple[StackedSystem, StackedSystem]:
        return _stack_entries(self.entries), _stack_entries([self.final])

    def validate(self) -> "FunctionSystem":
        if not self.entries:
            raise ValueError("function system has no entries.")
        if not self.variations:
            raise ValueError("function system has no variations.")
        nv = len(self.variations)
        for k, e in enumerate(list(self.entries) + [self.final]):
            w = np.asarray(e.weights, dtype=np.float64)
            if w.shape != (nv,):
                raise ValueError(f"entry {k}: expected {nv} weights, got shape {w.shape}.")
            if abs(w.sum() - 1.0) > WEIGHT_TOL:
                raise ValueError(f"entry {k}: weights sum to {w.sum():.6f}, not 1.")
        th = np.array([e.threshold for e in self.entries], dtype=np.float64)
        if np.any(np.diff(th) < 0.0):
            raise ValueError("thresholds must be non-decreasing.")
        if abs(th[-1] - 1.0) > THRESHOLD_TOL:
            raise ValueError(f"last threshold is {th[-1]:.6f}, not 1.")
        return self

    def to_frame(self):
        rows = []
        for k, e in enumerate(list(self.entries) + [self.final]):
            row = {"entry": "final" if k == len(self.entries) else k,
                   "threshold": float(e.threshold)}
            for prefix, coeffs in (("pre", e.pre), ("post", e.post)):
                for name, v in zip("abcdef", coeffs):
                    row[f"{prefix}_{name}"] = float(v)
            for ch, v in zip("rgb", e.color):
                row[f"color_{ch}"] = float(v)
            for var, w in zip(self.variations, e.weights):
                row[f"w_{var.name.lower()}"] = float(w)
            row.update(e.params.as_dict())
            rows.append(row)
        return pd.DataFrame(rows)


def _generate_entries(rng: RandomSource, n: int, nv: int) -> List[FunctionSystemEntry]:
    pre = [create_coeffs(rng) for _ in range(n)]
    post = [create_coeffs(rng) for _ in range(n)]
    params = [Params.draw(rng) for _ in range(n)]
    weights = [create_weights(rng, nv) for _ in range(n)]
    colors = [create_color(rng) for _ in range(n)]
    thresholds = prob_dist(rng, n)
    return [
        FunctionSystemEntry(pre[k], post[k], weights[k], colors[k], thresholds[k], params[k])
        for k in range(n)
    ]


def generate(rng: RandomSource, function_count: int,
             variations: Sequence = DEFAULT_VARIATIONS) -> FunctionSystem:
    if int(function_count) < 1:
        raise ValueError("function_count must be >= 1.")
    vars_ = parse_variations(variations)
    entries = _generate_entries(rng, int(function_count), len(vars_))
    final = _generate_entries(rng, 1, len(vars_))[0]
    return FunctionSystem(tuple(entries), final, vars_).validate()


def single_entry_system(pre: Affine, post: Affine, variations: Sequence,
                        weights: Sequence[float], color=(1.0, 1.0, 1.0),
                        params: Params = None) -> FunctionSystem:
    """One fixed entry, reused as the final entry."""
    vars_ = parse_variations(variations)
    entry = FunctionSystemEntry(
        pre, post, np.asarray(weights, dtype=np.float32),
        tuple(np.float32(c) for c in color), np.float32(1.0),
        params if params is not None else Params.zeros(),
    )
    return FunctionSystem((entry,), entry, vars_).validate()
