from __future__ import annotations

from typing import List, Dict, Optional
from dataclasses import dataclass

from .core import ProcessRecord, SimulationSnapshot
from .engine import RoundRobinEngine, EngineConfig
from .utils import EventLogger, service_counts, average_finish_time


@dataclass
class SimulationResult:
    records: List[ProcessRecord]
    done: List[ProcessRecord]
    total_time: int
    service_counts: Dict[str, int]
    avg_finish_time: float
    snapshots: List[SimulationSnapshot]
    logger: EventLogger


def simulate(
    records: List[ProcessRecord],
    quantum: int = 200,
    tick_units: int = 20,
    time_scale: float = 0.0,
    keep_snapshots: bool = True,
) -> SimulationResult:
    """Run a batch to completion and collect the results.

    With the default `time_scale` of 0 no wall-clock pacing happens.
    """
    engine = RoundRobinEngine(EngineConfig(quantum=quantum, tick_units=tick_units, time_scale=time_scale))
    snapshots: List[SimulationSnapshot] = []
    if keep_snapshots:
        engine.subscribe(snapshots.append)
    engine.load_batch(records)
    engine.run()

    return SimulationResult(
        records=list(engine.records),
        done=list(engine.done),
        total_time=engine.clock,
        service_counts=service_counts(engine.done),
        avg_finish_time=average_finish_time(engine.done),
        snapshots=snapshots,
        logger=engine.logger,
    )
