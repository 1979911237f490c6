"""
Hit-density picture and log-density tone mapping.

Grids are flat, row-major (index = row * width + column). Counters and color
sums start at 1 so that the logarithm of an untouched cell is 0.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

GAMMA = 2.2


@dataclass
class Picture:
    width: int
    height: int
    cell_counter: np.ndarray = field(default=None, repr=False)
    cell_alpha: np.ndarray = field(default=None, repr=False)
    cell_color: np.ndarray = field(default=None, repr=False)

    def __post_init__(self):
        self.width = int(self.width)
        self.height = int(self.height)
        if self.width < 1 or self.height < 1:
            raise ValueError(f"picture size must be positive, got {self.width}x{self.height}.")
        n = self.width * self.height
        if self.cell_counter is None:
            self.cell_counter = np.ones(n, dtype=np.uint32)
        if self.cell_alpha is None:
            self.cell_alpha = np.zeros(n, dtype=np.float32)
        if self.cell_color is None:
            self.cell_color = np.ones((n, 3), dtype=np.float32)
        if self.cell_counter.shape != (n,) or self.cell_alpha.shape != (n,) \
                or self.cell_color.shape != (n, 3):
            raise ValueError("grid shapes do not match picture size.")

    def __len__(self) -> int:
        return self.width * self.height

    def index(self, row: int, column: int) -> int:
        return row * self.width + column

    def index_from_coord(self, x: float, y: float) -> Optional[int]:
        """Cell holding (x, y) in (-1, 1)^2, or None on or outside the boundary."""
        idx, ok = self.indices_from_coords(x, y)
        return int(idx[0]) if ok[0] else None

    def indices_from_coords(self, x, y) -> Tuple[np.ndarray, np.ndarray]:
        x = np.atleast_1d(np.asarray(x, dtype=np.float32))
        y = np.atleast_1d(np.asarray(y, dtype=np.float32))
        # NaN fails both comparisons and is dropped here too
        ok = (np.abs(x) < 1.0) & (np.abs(y) < 1.0)
        with np.errstate(invalid="ignore"):
            col = np.floor((np.where(ok, x, 0.0) + 1.0) / 2.0 * self.width).astype(np.int64)
            row = np.floor((np.where(ok, y, 0.0) + 1.0) / 2.0 * self.height).astype(np.int64)
        col = np.clip(col, 0, self.width - 1)
        row = np.clip(row, 0, self.height - 1)
        return row * self.width + col, ok

    def record(self, idx: np.ndarray, colors: np.ndarray):
        np.add.at(self.cell_counter, idx, np.uint32(1))
        np.add.at(self.cell_color, idx, np.asarray(colors, dtype=np.float32))

    @property
    def max_count(self) -> int:
        return int(self.cell_counter.max())

    @property
    def hits(self) -> int:
        return int(self.cell_counter.sum(dtype=np.uint64) - len(self))

    def merge(self, other: "Picture") -> "Picture":
        """Add another raw histogram of the same size; both carry the seed of 1."""
        if (other.width, other.height) != (self.width, self.height):
            raise ValueError("cannot merge pictures of different size.")
        self.cell_counter += other.cell_counter - np.uint32(1)
        self.cell_color += other.cell_color - np.float32(1.0)
        return self

    def copy(self) -> "Picture":
        return Picture(self.width, self.height, self.cell_counter.copy(),
                       self.cell_alpha.copy(), self.cell_color.copy())

    def as_alpha(self) -> np.ndarray:
        return self.cell_alpha.reshape(self.height, self.width)

    def as_rgb(self) -> np.ndarray:
        return self.cell_color.reshape(self.height, self.width, 3)

    def as_counts(self) -> np.ndarray:
        return self.cell_counter.reshape(self.height, self.width)


def tone_map(picture: Picture, gamma: float = GAMMA) -> Picture:
    """alpha = ln(count)/ln(max); color = (ln(sum)/ln(max))^(1/gamma), in place."""
    if not gamma > 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}.")
    max_count = picture.max_count
    if max_count <= 1:
        logger.warning("picture was never hit; alpha and color set to 0")
        picture.cell_alpha[:] = 0.0
        picture.cell_color[:] = 0.0
        return picture
    log_max = np.float32(np.log(np.float32(max_count)))
    inv_gamma = np.float32(1.0 / gamma)
    with np.errstate(all="ignore"):
        picture.cell_alpha[:] = np.log(picture.cell_counter.astype(np.float32)) / log_max
        picture.cell_color[:] = np.power(np.log(picture.cell_color) / log_max, inv_gamma)
    logger.debug("tone mapped %dx%d picture, max count %d", picture.width, picture.height, max_count)
    return picture
