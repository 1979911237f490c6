"""
Run configuration: picture size, iteration budget, function system shape,
variation subset, gamma and seeding.
"""
import json
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

from .picture import GAMMA
from .engine import WARMUP_STEPS
from .variations import DEFAULT_VARIATIONS, Variation, parse_variations


@dataclass
class FlameConfig:
    width: int = 512
    height: int = 512
    iterations: int = 100_000
    functions: int = 6
    variations: Tuple[Variation, ...] = field(default=DEFAULT_VARIATIONS)
    gamma: float = GAMMA
    warmup: int = WARMUP_STEPS
    chains: int = 1
    workers: int = 1
    seed: Optional[int] = None

    def __post_init__(self):
        self.variations = parse_variations(self.variations)

    def validate(self) -> "FlameConfig":
        for name in ("width", "height", "iterations", "functions", "chains", "workers"):
            if int(getattr(self, name)) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}.")
        if int(self.warmup) < 0:
            raise ValueError(f"warmup must be >= 0, got {self.warmup}.")
        if not float(self.gamma) > 0.0:
            raise ValueError(f"gamma must be positive, got {self.gamma}.")
        if self.chains > self.iterations:
            raise ValueError("chains cannot exceed iterations.")
        if self.workers > self.iterations:
            raise ValueError("workers cannot exceed iterations.")
        return self

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["variations"] = [v.name.lower() for v in self.variations]
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FlameConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**d)

    @classmethod
    def from_json(cls, path: str) -> "FlameConfig":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))
