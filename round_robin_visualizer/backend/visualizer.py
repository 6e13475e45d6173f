from __future__ import annotations

from typing import List, Optional, Dict, Iterable
import os

import numpy as np
import matplotlib.pyplot as plt

from .core import ProcessRecord
from .utils import EventLogger, service_counts, record_color


def ensure_dir(path: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)


def _short(label: str, limit: int = 12) -> str:
    return label if len(label) <= limit else label[:limit] + "…"


def _finish(fig, out_path: Optional[str]) -> None:
    fig.tight_layout()
    if out_path:
        ensure_dir(out_path)
        fig.savefig(out_path, dpi=150)
        plt.close(fig)
    else:
        plt.show()


def plot_service_counts(done: Iterable[ProcessRecord], out_path: Optional[str] = None):
    """Bar chart of how many slices each finished record needed."""
    counts: Dict[str, int] = service_counts(done)
    labels = list(counts.keys())
    values = np.array(list(counts.values()), dtype=int)
    x = np.arange(len(labels))

    fig, ax = plt.subplots(figsize=(max(6, 0.8 * len(labels) + 2), 5))
    bars = ax.bar(x, values, width=0.6, color="#1167b1", edgecolor="black")
    ax.bar_label(bars, labels=[str(v) for v in values], fontweight="bold", fontsize=9)

    ax.set_xticks(x)
    ax.set_xticklabels([_short(label) for label in labels], rotation=45, ha="right")
    ax.yaxis.get_major_locator().set_params(integer=True)
    ax.set_ylim(0, max(1, int(values.max()) if len(values) else 1) + 1)
    ax.set_ylabel("Ejecuciones")
    ax.set_title("Turnaround (ejecuciones por proceso)")
    ax.grid(True, axis="y", linestyle=":", alpha=0.5)
    _finish(fig, out_path)
    return fig


def plot_timeline(records: List[ProcessRecord], logger: EventLogger, out_path: Optional[str] = None):
    """Gantt chart of every slice, one row per record in arrival order."""
    fig, ax = plt.subplots(figsize=(12, 2 + 0.4 * max(1, len(records))))

    ordered = sorted(records, key=lambda r: r.arrival_order)
    y_positions = {r.pid: i for i, r in enumerate(ordered)}

    for seg in logger.timeline:
        pid = seg["pid"]
        if pid not in y_positions:
            continue
        start, end = seg["start"], seg["end"]
        hatch = "" if seg["preemptible"] else "//"
        ax.barh(y_positions[pid], end - start, left=start, color=record_color(pid),
                edgecolor="black", alpha=0.9, hatch=hatch)

    ax.set_yticks([y_positions[r.pid] for r in ordered])
    ax.set_yticklabels([f"{_short(r.name)} ({r.pid})" for r in ordered])
    ax.invert_yaxis()
    ax.set_xlabel("Tiempo")
    ax.set_title("Round Robin timeline")
    ax.grid(True, axis="x", linestyle=":", alpha=0.5)
    _finish(fig, out_path)
    return fig
