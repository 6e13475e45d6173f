"""
Core data structures for the Round-Robin visualizer.
Includes ProcessRecord, the FIFO ReadyQueue, snapshots and batch loading.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Any
from collections import deque


class RecordState(Enum):
    """Containers a record can live in."""
    READY = "READY"
    RUNNING = "RUNNING"
    DONE = "DONE"


class EngineState(Enum):
    """Lifecycle of the scheduling engine."""
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"


# Stored priority flag: 0 -> preemptible (expulsivo), 1 -> run to completion
PREEMPTIBLE_FLAG = 0
NON_PREEMPTIBLE_FLAG = 1


class InvalidQuantumError(ValueError):
    """Raised for a quantum that would yield an empty or negative slice."""


def validate_quantum(quantum: Any) -> int:
    if isinstance(quantum, bool) or not isinstance(quantum, int):
        raise InvalidQuantumError(f"quantum must be an integer, got {quantum!r}")
    if quantum <= 0:
        raise InvalidQuantumError(f"quantum must be positive, got {quantum}")
    return quantum


@dataclass
class ProcessRecord:
    """One schedulable unit loaded from a catalog."""
    pid: int
    name: str
    owner: str
    preemptible: bool
    total_service: int
    arrival_order: int
    remaining_service: Optional[int] = None
    service_count: int = 0
    finish_time: Optional[int] = None
    state: RecordState = RecordState.READY

    def __post_init__(self):
        self.remaining_service = self.total_service if self.remaining_service is None else self.remaining_service

    @property
    def priority_label(self) -> str:
        return "Expulsivo" if self.preemptible else "No expulsivo"

    def slice_for(self, quantum: int) -> int:
        """Service units granted on the next dispatch."""
        if not self.preemptible:
            return self.remaining_service
        return min(self.remaining_service, quantum)

    def frozen(self) -> "ProcessRecord":
        """Detached copy handed out in snapshots."""
        return replace(self)


def build_batch(rows: Iterable[Tuple[Any, str, str, int]], quantum: int) -> List[ProcessRecord]:
    """Turn raw (pid, name, owner, priority_flag) rows into fresh records.

    Arrival order follows row order. Total service is fixed here from the
    quantum in effect at load time.
    """
    quantum = validate_quantum(quantum)
    records: List[ProcessRecord] = []
    for idx, (pid, name, owner, flag) in enumerate(rows):
        name = "" if name is None else str(name)
        records.append(ProcessRecord(
            pid=pid,
            name=name,
            owner="" if owner is None else str(owner),
            preemptible=int(flag) == PREEMPTIBLE_FLAG,
            total_service=quantum * len(name),
            arrival_order=idx,
        ))
    return records


class ReadyQueue:
    """FIFO queue for ready records."""
    def __init__(self):
        self._items: deque = deque()

    def push(self, record: ProcessRecord) -> None:
        """Append a record to the tail of the queue."""
        record.state = RecordState.READY
        self._items.append(record)

    def pop(self) -> Optional[ProcessRecord]:
        """Remove and return the head of the queue."""
        if not self._items:
            return None
        return self._items.popleft()

    def peek(self) -> Optional[ProcessRecord]:
        return self._items[0] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def is_empty(self) -> bool:
        return len(self._items) == 0

    def __len__(self) -> int:
        return len(self._items)

    def get_all_processes(self) -> List[ProcessRecord]:
        return list(self._items)


@dataclass(frozen=True)
class SimulationSnapshot:
    """Published view of the simulation between two transitions."""
    ready: Tuple[ProcessRecord, ...] = ()
    running: Optional[ProcessRecord] = None
    done: Tuple[ProcessRecord, ...] = ()
    clock: int = 0
    state: EngineState = EngineState.IDLE
    quantum: int = 0
    is_simulating: bool = False
    is_paused: bool = False

    def all_records(self) -> List[ProcessRecord]:
        running = [self.running] if self.running is not None else []
        return list(self.ready) + running + list(self.done)

    def locate(self, pid) -> Optional[RecordState]:
        """Container currently holding `pid`, or None if unknown."""
        if self.running is not None and self.running.pid == pid:
            return RecordState.RUNNING
        if any(r.pid == pid for r in self.ready):
            return RecordState.READY
        if any(r.pid == pid for r in self.done):
            return RecordState.DONE
        return None
