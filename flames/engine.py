"""
Chaos game over a function system.

Per iteration: pick an entry by threshold, apply pre-affine, blend the
variations, apply post-affine, then the final entry; record the point in the
picture with the color of the picked entry. ``chains`` independent points are
advanced in lock-step as float32 arrays; with one chain the draw sequence is
that of the plain sequential algorithm.
"""
import logging
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from tqdm import tqdm

from .picture import Picture
from .point import Point
from .random_source import RandomSource, units
from .system import FunctionSystem, StackedSystem
from .variations import blend, preprocess

logger = logging.getLogger(__name__)

WARMUP_STEPS = 20


class State(Enum):
    WARMING = "warming"
    SAMPLING = "sampling"
    DONE = "done"


def select_entries(thresholds: np.ndarray, u: np.ndarray) -> np.ndarray:
    """Index of the first threshold exceeding each draw."""
    idx = np.searchsorted(thresholds, u, side="right")
    return np.minimum(idx, len(thresholds) - 1)


def apply_entry(stack: StackedSystem, sel: np.ndarray, p: Point, variations,
                rng: RandomSource) -> Point:
    pre = stack.pre.take(sel)
    pp = preprocess(p.affine(pre), pre, stack.params.take(sel), rng)
    return blend(pp, stack.weights[sel], variations).affine(stack.post.take(sel))


class ChaosGame:
    def __init__(self, system: FunctionSystem, picture: Picture, rng: RandomSource,
                 chains: int = 1):
        if int(chains) < 1:
            raise ValueError("chains must be >= 1.")
        self.system = system.validate()
        self.picture = picture
        self.rng = rng
        self.chains = int(chains)
        self.entries, self.final = system.stacked()
        self.state = State.WARMING
        self.point: Optional[Point] = None
        self.recorded = 0

    def seed_points(self, start: Optional[Tuple[float, float]] = None) -> Point:
        if start is not None:
            x = np.full(self.chains, start[0], dtype=np.float32)
            y = np.full(self.chains, start[1], dtype=np.float32)
        else:
            xy = units(self.rng, 2 * self.chains).reshape(self.chains, 2) * 2.0 - 1.0
            x, y = xy[:, 0].copy(), xy[:, 1].copy()
        self.point = Point(x, y)
        return self.point

    def step(self) -> np.ndarray:
        """Advance every chain once; returns the selected entry per chain."""
        u = units(self.rng, self.chains)
        sel = select_entries(self.entries.thresholds, u)
        variations = self.system.variations
        p = apply_entry(self.entries, sel, self.point, variations, self.rng)
        p = apply_entry(self.final, np.zeros_like(sel), p, variations, self.rng)
        self.point = Point(np.asarray(p.x, dtype=np.float32).reshape(self.chains),
                           np.asarray(p.y, dtype=np.float32).reshape(self.chains))
        return sel

    def warm_up(self, steps: int = WARMUP_STEPS):
        if self.point is None:
            self.seed_points()
        self.state = State.WARMING
        with np.errstate(all="ignore"):
            for _ in range(int(steps)):
                self.step()

    def sample(self, iterations: int, progress: bool = False) -> Picture:
        iterations = int(iterations)
        if iterations < 0:
            raise ValueError("iterations must be >= 0.")
        if self.point is None:
            self.seed_points()
        self.state = State.SAMPLING
        steps = -(-iterations // self.chains)
        iter_steps = tqdm(range(steps), desc="sampling", unit="step") if progress else range(steps)
        left = iterations
        with np.errstate(all="ignore"):
            for _ in iter_steps:
                sel = self.step()
                active = min(left, self.chains)
                idx, ok = self.picture.indices_from_coords(self.point.x[:active], self.point.y[:active])
                self.picture.record(idx[ok], self.entries.colors[sel[:active][ok]])
                self.recorded += int(ok.sum())
                left -= active
        self.state = State.DONE
        lost = int((~self.point.is_finite()).sum())
        if lost:
            logger.warning("%d of %d chains ended on a non-finite point", lost, self.chains)
        logger.info("sampled %d iterations, %d landed in the picture", iterations, self.recorded)
        return self.picture

    def run(self, iterations: int, warmup: int = WARMUP_STEPS,
            start: Optional[Tuple[float, float]] = None, progress: bool = False) -> Picture:
        self.seed_points(start)
        self.warm_up(warmup)
        return self.sample(iterations, progress=progress)
