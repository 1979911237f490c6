#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Render a random fractal flame (Draves & Reckase) to PNG.

Features:
- Random function system: pre/post affine maps, weighted variation blend,
  colors and selection thresholds, plus a final function.
- Chaos game with warm-up, optional batched chains and worker processes.
- Log-density tone mapping with gamma correction.
- Outputs: color PNG, raw histogram (.npz), function system table (.csv),
  run metadata (.json); optional alpha PNG and density plot.

Usage examples:
  python scripts/flame.py --out out/flame --seed 7
  python scripts/flame.py --out out/flame --width 1024 --height 1024 --iterations 2000000 --chains 512 --progress
  python scripts/flame.py --out out/flame --variations sinusoidal,spherical,swirl,julia --alpha --plot
  python scripts/flame.py --config flame.json --out out/flame --workers 4
"""
import argparse
import logging
import sys

from colorama import Fore, Style, init as colorama_init

from flames.config import FlameConfig
from flames.export import plot_density, save_npz, save_png, save_system_csv, write_metadata
from flames.render import render_parallel
from flames.variations import Variation

OVERRIDABLE = ("width", "height", "iterations", "functions", "gamma", "warmup",
               "chains", "workers", "seed")


def build_config(args: argparse.Namespace) -> FlameConfig:
    base = FlameConfig.from_json(args.config).to_dict() if args.config else {}
    for name in OVERRIDABLE:
        v = getattr(args, name)
        if v is not None:
            base[name] = v
    if args.variations:
        base["variations"] = [s for s in args.variations.split(",") if s.strip()]
    return FlameConfig.from_dict(base).validate()


def main(argv=None):
    ap = argparse.ArgumentParser(description="Render a random fractal flame.")
    ap.add_argument("--out", default="flame_output", help="Output prefix (without extension).")
    ap.add_argument("--config", default=None, help="JSON config file; command-line options override it.")
    ap.add_argument("--width", type=int, default=None, help="Picture width in cells (default 512).")
    ap.add_argument("--height", type=int, default=None, help="Picture height in cells (default 512).")
    ap.add_argument("--iterations", type=int, default=None, help="Recorded iterations (default 100000).")
    ap.add_argument("--functions", type=int, default=None, help="Number of function system entries (default 6).")
    ap.add_argument("--variations", default=None, help="Comma-separated variation names (default: 23-variation blend).")
    ap.add_argument("--gamma", type=float, default=None, help="Gamma for color correction (default 2.2).")
    ap.add_argument("--warmup", type=int, default=None, help="Unrecorded warm-up iterations (default 20).")
    ap.add_argument("--chains", type=int, default=None, help="Independent points iterated in lock-step (default 1).")
    ap.add_argument("--workers", type=int, default=None, help="Worker processes (default 1).")
    ap.add_argument("--seed", type=int, default=None, help="RNG seed (reproducibility).")
    ap.add_argument("--alpha", action="store_true", help="Also save the grayscale density image.")
    ap.add_argument("--plot", action="store_true", help="Save a histogram of log hit counts.")
    ap.add_argument("--progress", action="store_true", help="Show progress bars.")
    ap.add_argument("--verbose", action="store_true", help="Debug logging.")
    ap.add_argument("--list-variations", action="store_true", help="Print the variation catalog and exit.")
    args = ap.parse_args(argv)

    colorama_init(autoreset=True)
    OK = Fore.GREEN + "[ok]" + Style.RESET_ALL
    INFO = Fore.CYAN + "[info]" + Style.RESET_ALL
    ERR = Fore.RED + "[error]" + Style.RESET_ALL

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    if args.list_variations:
        for v in Variation:
            print(f"  {v.name.lower()}")
        return

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        raise SystemExit(f"{ERR} {e}")

    print(f"{INFO} {config.width}x{config.height}, {config.iterations} iterations, "
          f"{config.functions} functions, {len(config.variations)} variations, seed={config.seed}")
    result = render_parallel(config, progress=args.progress)

    png_path = save_png(args.out + ".png", result.picture)
    npz_path = save_npz(args.out + "_raw.npz", result.raw)
    csv_path = save_system_csv(args.out + "_system.csv", result.system)
    json_path = write_metadata(args.out + ".json", config, result.raw,
                               extra={"elapsed_sec": round(result.elapsed, 3)})
    print(f"{OK} Image: {png_path}")
    print(f"{OK} Raw histogram: {npz_path}")
    print(f"{OK} Function system: {csv_path}")
    print(f"{OK} Metadata: {json_path}")
    if args.alpha:
        print(f"{OK} Alpha: {save_png(args.out + '_alpha.png', result.picture, mode='alpha')}")
    if args.plot:
        print(f"{OK} Density plot: {plot_density(args.out + '_density.png', result.raw)}")

    hit = result.raw.hits
    frac = hit / float(config.iterations)
    print(f"{INFO} {hit} of {config.iterations} points landed in the picture ({frac:.1%}), "
          f"max count {result.raw.max_count}, {result.elapsed:.2f}s")
    if result.raw.max_count <= 1:
        print(f"{Fore.YELLOW}[warn]{Style.RESET_ALL} no point landed in the picture; output is blank")


if __name__ == "__main__":
    sys.exit(main())
