from __future__ import annotations

from typing import List, Dict, Optional, Any, Iterable
import json
import csv
import random

import pandas as pd

from .core import ProcessRecord


def record_color(pid: Any) -> str:
    # Stable color derived from pid
    rng = random.Random(str(pid))
    r = rng.randint(50, 220)
    g = rng.randint(50, 220)
    b = rng.randint(50, 220)
    return f"#{r:02x}{g:02x}{b:02x}"


class EventLogger:
    def __init__(self) -> None:
        self.control_events: List[Dict[str, Any]] = []
        self.process_events: List[Dict[str, Any]] = []
        self.timeline: List[Dict[str, Any]] = []

    def clear(self) -> None:
        self.control_events.clear()
        self.process_events.clear()
        self.timeline.clear()

    def log_control_event(self, clock: int, event: str, detail: str = "") -> None:
        self.control_events.append({
            "clock": clock,
            "event": event,
            "detail": detail,
        })

    def log_process_event(self, clock: int, pid: Any, event: str) -> None:
        self.process_events.append({
            "clock": clock,
            "pid": pid,
            "event": event,
        })

    def log_timeline_slice(self, start: int, end: int, pid: Any, preemptible: bool, outcome: str) -> None:
        self.timeline.append({
            "start": start,
            "end": end,
            "pid": pid,
            "preemptible": preemptible,
            "outcome": outcome,
        })

    def export_json(self, path: str) -> None:
        data = {
            "control_events": self.control_events,
            "process_events": self.process_events,
            "timeline": self.timeline,
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)

    def export_csv(self, base_path_no_ext: str) -> None:
        with open(f"{base_path_no_ext}_control.csv", "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=["clock", "event", "detail"])
            writer.writeheader()
            for row in self.control_events:
                writer.writerow(row)
        with open(f"{base_path_no_ext}_events.csv", "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=["clock", "pid", "event"])
            writer.writeheader()
            for row in self.process_events:
                writer.writerow(row)
        with open(f"{base_path_no_ext}_timeline.csv", "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=["start", "end", "pid", "preemptible", "outcome"])
            writer.writeheader()
            for row in self.timeline:
                writer.writerow(row)


def service_counts(done: Iterable[ProcessRecord]) -> Dict[str, int]:
    """Slices received per finished record, keyed by name in completion order."""
    counts: Dict[str, int] = {}
    for r in done:
        label = r.name
        # Duplicate names inside one catalog still get their own bar
        if label in counts:
            label = f"{r.name} ({r.pid})"
        counts[label] = r.service_count
    return counts


def compute_avg(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def average_finish_time(records: Iterable[ProcessRecord]) -> float:
    return compute_avg([r.finish_time for r in records if r.finish_time is not None])


def summarize(records: Iterable[ProcessRecord]) -> pd.DataFrame:
    rows = [{
        "pid": r.pid,
        "name": r.name,
        "owner": r.owner,
        "priority": r.priority_label,
        "arrival": r.arrival_order,
        "burst": r.total_service,
        "remaining": r.remaining_service,
        "services": r.service_count,
        "finish": r.finish_time,
        "state": r.state.name,
    } for r in records]
    columns = ["pid", "name", "owner", "priority", "arrival", "burst", "remaining", "services", "finish", "state"]
    return pd.DataFrame(rows, columns=columns)


def format_card(record: ProcessRecord, quantum: Optional[int] = None) -> List[str]:
    """Text lines shown on a process card in the terminal and the GUI."""
    lines = [
        record.name or "(sin nombre)",
        f"PID: {record.pid}",
        f"Usuario: {record.owner}",
        f"Llegada: {record.arrival_order}",
        f"Ráfaga: {record.total_service}",
        f"Restante: {record.remaining_service}",
        f"Prioridad: {record.priority_label}",
        f"Ejecuciones: {record.service_count}",
    ]
    if quantum is not None:
        lines.insert(5, f"Quantum: {quantum}")
    if record.finish_time is not None:
        lines.append(f"Finalización: {record.finish_time}")
    return lines
