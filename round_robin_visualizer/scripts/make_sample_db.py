from __future__ import annotations

import argparse
import os
import sys

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(SCRIPT_DIR, os.pardir, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from round_robin_visualizer.backend.sample_data import write_sample_database


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate a sample procesos.db")
    p.add_argument("--out", default="procesos.db")
    p.add_argument("--catalogs", type=int, default=3)
    p.add_argument("--per-catalog", type=int, default=6)
    p.add_argument("--seed", type=int, default=42)
    return p.parse_args()


if __name__ == "__main__":
    args = parse_args()
    write_sample_database(args.out, catalogs=args.catalogs, per_catalog=args.per_catalog, seed=args.seed)
    print(f"Wrote {args.out}")
