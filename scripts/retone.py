#!/usr/bin/env python3
"""
Re-run tone mapping on a saved raw histogram without re-rendering.

flame.py stores the untouched hit counts and color sums in <out>_raw.npz;
this script maps them again with a different gamma.

Examples
- Brighter midtones:
  python scripts/retone.py --in out/flame_raw.npz --out out/flame_g3.png --gamma 3.0

- Grayscale density only:
  python scripts/retone.py --in out/flame_raw.npz --out out/flame_alpha.png --mode alpha
"""
from __future__ import annotations

import argparse
import os

from flames.export import load_npz, save_png
from flames.picture import GAMMA, tone_map


def main():
    ap = argparse.ArgumentParser(description="Tone-map a saved flame histogram")
    ap.add_argument("--in", dest="inp", required=True, help="Raw histogram (.npz) written by flame.py")
    ap.add_argument("--out", dest="out", required=True, help="Output image path (PNG)")
    ap.add_argument("--gamma", type=float, default=GAMMA, help="Gamma for color correction")
    ap.add_argument("--mode", choices=["color", "alpha"], default="color", help="Color image or grayscale density")
    args = ap.parse_args()

    if not os.path.exists(args.inp):
        raise SystemExit(f"[error] raw histogram not found: {args.inp}")
    if not args.gamma > 0.0:
        raise SystemExit(f"[error] gamma must be positive, got {args.gamma}")

    try:
        picture = load_npz(args.inp)
    except (OSError, ValueError) as e:
        raise SystemExit(f"[error] cannot read {args.inp}: {e}")

    tone_map(picture, args.gamma)
    save_png(args.out, picture, mode=args.mode)
    print(f"[ok] wrote {args.out}")


if __name__ == "__main__":
    main()
