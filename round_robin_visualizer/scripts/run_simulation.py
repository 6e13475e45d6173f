from __future__ import annotations

import argparse
import os
import sys

# Ensure project root is on sys.path when running as a script
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(SCRIPT_DIR, os.pardir, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from round_robin_visualizer.backend.catalog import CatalogDatabase, CatalogError, KINDS
from round_robin_visualizer.backend.core import build_batch, InvalidQuantumError
from round_robin_visualizer.backend.simulator import simulate
from round_robin_visualizer.backend.utils import summarize
from round_robin_visualizer.backend.visualizer import plot_service_counts, plot_timeline


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Round Robin simulation over a process catalog")
    p.add_argument("--db", required=True, help="SQLite file with cpu/memoria tables")
    p.add_argument("--kind", choices=list(KINDS), default="cpu")
    p.add_argument("--catalog", type=int, default=None, help="Catalog id (default: first one)")
    p.add_argument("--quantum", type=int, default=200)
    p.add_argument("--speed", type=float, default=0.0, help="Wall seconds per time unit")
    p.add_argument("--out", type=str, default=None, help="Path for the service-count chart")
    p.add_argument("--timeline", type=str, default=None, help="Path for the timeline chart")
    p.add_argument("--events", type=str, default=None, help="Base path for the event log export")
    return p.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    try:
        db = CatalogDatabase(args.db)
        catalogs = db.list_catalogs(args.kind)
        if not catalogs:
            print(f"No catalogs in table '{args.kind}'")
            return
        catalog_id = args.catalog if args.catalog is not None else catalogs[0].catalog_id
        rows = db.load_rows(catalog_id, args.kind)
    except CatalogError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        records = build_batch(rows, args.quantum)
        result = simulate(records, quantum=args.quantum, time_scale=args.speed, keep_snapshots=False)
    except (InvalidQuantumError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(summarize(result.done).to_string(index=False))
    print(f"Total time: {result.total_time}, Avg finish: {result.avg_finish_time:.2f}")
    if args.out:
        plot_service_counts(result.done, args.out)
        print(f"Saved chart to {args.out}")
    if args.timeline:
        plot_timeline(result.records, result.logger, args.timeline)
        print(f"Saved timeline to {args.timeline}")
    if args.events:
        result.logger.export_json(f"{args.events}.json")
        result.logger.export_csv(args.events)
        print(f"Saved event log to {args.events}.json")


if __name__ == "__main__":
    main()
