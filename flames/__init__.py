"""Fractal flame rendering: random function systems, chaos game, tone mapping."""
from .config import FlameConfig
from .engine import ChaosGame, State
from .picture import Picture, tone_map
from .point import Affine, Point
from .random_source import ScriptedRandom, make_rng
from .render import render, render_parallel
from .system import FunctionSystem, FunctionSystemEntry, generate
from .variations import DEFAULT_VARIATIONS, Params, Variation, preprocess

__version__ = "0.1.0"
