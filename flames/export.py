"""
Writing pictures and run metadata to disk.
"""
import json
import os
import subprocess
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
from PIL import Image

from .picture import Picture
from .system import FunctionSystem


def _ensure_dir(path: str):
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)


def to_u8(arr: np.ndarray) -> np.ndarray:
    arr = np.nan_to_num(np.asarray(arr, dtype=np.float32), nan=0.0, posinf=1.0, neginf=0.0)
    return (np.clip(arr, 0.0, 1.0) * 255).astype(np.uint8)


def to_image(picture: Picture, mode: str = "color") -> Image.Image:
    if mode == "color":
        return Image.fromarray(to_u8(picture.as_rgb()))
    if mode == "alpha":
        # dark hits on white
        return Image.fromarray(to_u8(1.0 - picture.as_alpha()))
    raise ValueError("mode must be 'color' or 'alpha'.")


def save_png(path: str, picture: Picture, mode: str = "color") -> str:
    _ensure_dir(path)
    to_image(picture, mode).save(path)
    return path


def save_npz(path: str, picture: Picture) -> str:
    _ensure_dir(path)
    np.savez_compressed(
        path,
        width=np.int64(picture.width),
        height=np.int64(picture.height),
        cell_counter=picture.cell_counter,
        cell_alpha=picture.cell_alpha,
        cell_color=picture.cell_color,
    )
    return path


def load_npz(path: str) -> Picture:
    with np.load(path) as z:
        missing = {"width", "height", "cell_counter", "cell_alpha", "cell_color"} - set(z.files)
        if missing:
            raise ValueError(f"{path}: missing arrays {sorted(missing)}")
        return Picture(
            int(z["width"]), int(z["height"]),
            z["cell_counter"].astype(np.uint32),
            z["cell_alpha"].astype(np.float32),
            z["cell_color"].astype(np.float32),
        )


def save_system_csv(path: str, system: FunctionSystem) -> str:
    _ensure_dir(path)
    system.to_frame().to_csv(path, index=False)
    return path


def plot_density(path: str, picture: Picture, title: Optional[str] = None) -> str:
    """Histogram of log hit counts over the cells that were hit at least once."""
    _ensure_dir(path)
    counts = picture.cell_counter[picture.cell_counter > 1].astype(np.float64) - 1.0
    fig, ax = plt.subplots(figsize=(6, 4), dpi=150)
    if counts.size:
        ax.hist(np.log10(counts), bins=50, color="tab:blue", alpha=0.85)
    ax.set_xlabel("log10 hits per cell")
    ax.set_ylabel("cells")
    ax.set_title(title or f"{picture.width}x{picture.height}, {counts.size} cells hit")
    ax.grid(True, linewidth=0.5, alpha=0.5)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path


def git_rev() -> str:
    try:
        return subprocess.check_output(["git", "rev-parse", "--short", "HEAD"],
                                       stderr=subprocess.DEVNULL).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def write_metadata(path: str, config, picture: Picture, extra: Optional[Dict[str, Any]] = None) -> str:
    _ensure_dir(path)
    meta = {
        "config": config.to_dict(),
        "max_count": picture.max_count,
        "hits": picture.hits,
        "generated_by": {
            "rev": git_rev(),
            "utc": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        },
    }
    if extra:
        meta.update(extra)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(meta, f, indent=2)
    return path
