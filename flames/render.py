"""
End-to-end rendering: generate a function system, run the chaos game,
tone-map.

``render_parallel`` splits the iteration budget over worker processes, each
with an independent random stream and its own histogram; histograms are
summed before the single tone-mapping pass.
"""
import logging
import time
from dataclasses import dataclass
from functools import partial
from multiprocessing import Pool
from typing import List, Tuple

import numpy as np
from tqdm import tqdm

from .config import FlameConfig
from .engine import ChaosGame
from .picture import Picture, tone_map
from .random_source import make_rng
from .system import FunctionSystem, generate

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    config: FlameConfig
    system: FunctionSystem
    raw: Picture
    picture: Picture
    elapsed: float


def split_budget(iterations: int, workers: int) -> List[int]:
    base, extra = divmod(int(iterations), int(workers))
    return [base + (1 if k < extra else 0) for k in range(int(workers))]


def render(config: FlameConfig, progress: bool = False) -> RenderResult:
    config.validate()
    t0 = time.perf_counter()
    rng = make_rng(config.seed)
    system = generate(rng, config.functions, config.variations)
    logger.info("generated %d functions over %d variations (seed=%s)",
                len(system), len(system.variations), config.seed)
    game = ChaosGame(system, Picture(config.width, config.height), rng, chains=config.chains)
    raw = game.run(config.iterations, warmup=config.warmup, progress=progress)
    picture = tone_map(raw.copy(), config.gamma)
    elapsed = time.perf_counter() - t0
    logger.info("rendered %dx%d in %.2fs", config.width, config.height, elapsed)
    return RenderResult(config, system, raw, picture, elapsed)


def _sample_worker(job: Tuple[int, np.random.SeedSequence], system: FunctionSystem,
                   config: FlameConfig) -> Picture:
    iterations, seed_seq = job
    game = ChaosGame(system, Picture(config.width, config.height),
                     np.random.default_rng(seed_seq), chains=min(config.chains, iterations))
    return game.run(iterations, warmup=config.warmup)


def render_parallel(config: FlameConfig, progress: bool = False) -> RenderResult:
    config.validate()
    if config.workers == 1:
        return render(config, progress=progress)
    t0 = time.perf_counter()
    # default_rng(SeedSequence(seed)) is the stream make_rng(seed) gives render()
    seed_seq = np.random.SeedSequence(config.seed)
    system = generate(np.random.default_rng(seed_seq), config.functions, config.variations)
    worker_seqs = seed_seq.spawn(config.workers)
    logger.info("generated %d functions over %d variations (seed=%s, workers=%d)",
                len(system), len(system.variations), config.seed, config.workers)
    jobs = list(zip(split_budget(config.iterations, config.workers), worker_seqs))
    worker = partial(_sample_worker, system=system, config=config)
    raw = Picture(config.width, config.height)
    with Pool(config.workers) as pool:
        parts = pool.imap(worker, jobs)
        if progress:
            parts = tqdm(parts, total=len(jobs), desc="workers")
        for part in parts:
            raw.merge(part)
    picture = tone_map(raw.copy(), config.gamma)
    elapsed = time.perf_counter() - t0
    logger.info("rendered %dx%d in %.2fs", config.width, config.height, elapsed)
    return RenderResult(config, system, raw, picture, elapsed)
