"""
Round-Robin scheduling engine.

The engine owns the Ready/Running/Done containers and the simulation clock.
It is the only writer of that state; readers get immutable snapshots that are
published after every transition.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Iterable
import threading
import time

from .core import (
    ProcessRecord, ReadyQueue, RecordState, EngineState, SimulationSnapshot,
    validate_quantum,
)
from .utils import EventLogger


Observer = Callable[[SimulationSnapshot], None]


@dataclass
class EngineConfig:
    quantum: int = 200
    # Pacing: a slice is simulated in ticks of at most `tick_units`
    tick_units: int = 20
    # Wall-clock seconds per simulated unit (0 runs as fast as possible)
    time_scale: float = 0.001
    pause_poll_interval: float = 0.05

    def __post_init__(self):
        validate_quantum(self.quantum)
        if self.tick_units <= 0:
            raise ValueError(f"tick_units must be positive, got {self.tick_units}")
        if self.time_scale < 0:
            raise ValueError(f"time_scale must not be negative, got {self.time_scale}")


class RoundRobinEngine:
    """Single-CPU Round-Robin scheduler with cooperative pacing."""

    def __init__(self, config: EngineConfig | None = None, logger: EventLogger | None = None):
        self.config = config or EngineConfig()
        self.quantum: int = self.config.quantum
        self.logger = logger or EventLogger()

        self.ready_queue = ReadyQueue()
        self.current_process: Optional[ProcessRecord] = None
        self.done: List[ProcessRecord] = []
        self.records: List[ProcessRecord] = []
        self.clock: int = 0
        self.state = EngineState.IDLE
        self.is_simulating = False
        self.is_paused = False

        self._slice_length = 0
        self._slice_elapsed = 0
        self._slice_start = 0
        # Bumped by every load so a running loop notices it was cancelled
        self._generation = 0

        self._lock = threading.RLock()
        self._resume = threading.Condition(self._lock)
        self._observers: List[Observer] = []
        self._outbox: List[SimulationSnapshot] = []
        self._delivery = threading.RLock()
        self._delivering = False
        self._snapshot = SimulationSnapshot(quantum=self.quantum)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register a callback receiving every published snapshot."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)
        return unsubscribe

    def snapshot(self) -> SimulationSnapshot:
        """Last published snapshot."""
        with self._lock:
            return self._snapshot

    def _publish(self) -> None:
        # Lock held by caller
        running = self.current_process.frozen() if self.current_process else None
        self._snapshot = SimulationSnapshot(
            ready=tuple(r.frozen() for r in self.ready_queue.get_all_processes()),
            running=running,
            done=tuple(r.frozen() for r in self.done),
            clock=self.clock,
            state=self.state,
            quantum=self.quantum,
            is_simulating=self.is_simulating,
            is_paused=self.is_paused,
        )
        self._outbox.append(self._snapshot)

    def _flush(self) -> None:
        # Never called with self._lock held. One thread delivers at a time,
        # draining the outbox in publish order; a nested call from an
        # observer leaves its snapshots to the outer loop.
        with self._delivery:
            if self._delivering:
                return
            self._delivering = True
            try:
                while True:
                    with self._lock:
                        pending, self._outbox = self._outbox, []
                        observers = list(self._observers)
                    if not pending:
                        break
                    for snap in pending:
                        for observer in observers:
                            observer(snap)
            finally:
                self._delivering = False

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def load_batch(self, records: Iterable[ProcessRecord]) -> None:
        """Replace the whole simulation state with a fresh batch.

        Any run in progress is abandoned.
        """
        with self._lock:
            self._generation += 1
            self.records = list(records)
            self.ready_queue.clear()
            for record in self.records:
                record.remaining_service = record.total_service
                record.service_count = 0
                record.finish_time = None
                self.ready_queue.push(record)
            self.current_process = None
            self.done = []
            self.clock = 0
            self._slice_length = self._slice_elapsed = self._slice_start = 0
            self.is_simulating = False
            self.is_paused = False
            self.state = EngineState.IDLE
            self.logger.clear()
            self.logger.log_control_event(0, "load", f"{len(self.records)} records")
            self._resume.notify_all()
            self._publish()
        self._flush()

    def start(self) -> bool:
        """Begin a run. No-op unless idle/finished with a non-empty Ready queue."""
        with self._lock:
            if self.is_simulating or self.ready_queue.is_empty():
                return False
            self.clock = 0
            self.done = []
            self.current_process = None
            self._slice_length = self._slice_elapsed = self._slice_start = 0
            self.is_simulating = True
            self.is_paused = False
            self.state = EngineState.RUNNING
            self.logger.log_control_event(self.clock, "start", f"quantum={self.quantum}")
            self._publish()
        self._flush()
        return True

    def toggle(self) -> bool:
        """Pause a running simulation, resume a paused one, or start an idle one."""
        with self._lock:
            if not self.is_simulating:
                starting = True
            else:
                starting = False
                self.is_paused = not self.is_paused
                self.state = EngineState.PAUSED if self.is_paused else EngineState.RUNNING
                self.logger.log_control_event(self.clock, "pause" if self.is_paused else "resume")
                self._resume.notify_all()
                self._publish()
        if starting:
            return self.start()
        self._flush()
        return True

    def set_quantum(self, quantum: int) -> None:
        """Change the slice bound for subsequent slices.

        Already loaded records keep their total and remaining service.
        """
        quantum = validate_quantum(quantum)
        with self._lock:
            self.quantum = quantum
            self.logger.log_control_event(self.clock, "quantum", str(quantum))
            self._publish()
        self._flush()

    # ------------------------------------------------------------------
    # Step function
    # ------------------------------------------------------------------
    def _dispatch(self) -> None:
        record = self.ready_queue.pop()
        if record is None:
            self._finish()
            return
        record.state = RecordState.RUNNING
        self.current_process = record
        self._slice_length = record.slice_for(self.quantum)
        self._slice_elapsed = 0
        self._slice_start = self.clock
        self.logger.log_process_event(self.clock, record.pid, "dispatch")
        self._publish()

    def _complete_slice(self) -> None:
        record = self.current_process
        run_slice = self._slice_length
        record.service_count += 1
        record.remaining_service -= run_slice
        self.clock += run_slice

        if record.preemptible and record.remaining_service > 0:
            outcome = "requeue"
            self.ready_queue.push(record)
        else:
            outcome = "complete"
            record.finish_time = self.clock
            record.state = RecordState.DONE
            self.done.append(record)
        self.logger.log_timeline_slice(self._slice_start, self.clock, record.pid, record.preemptible, outcome)
        self.logger.log_process_event(self.clock, record.pid, outcome)

        self.current_process = None
        self._slice_length = self._slice_elapsed = 0
        if self.ready_queue.is_empty():
            self._finish()
        else:
            self._publish()

    def _finish(self) -> None:
        self.is_simulating = False
        self.is_paused = False
        self.state = EngineState.FINISHED
        self.logger.log_control_event(self.clock, "finish", f"{len(self.done)} done")
        self._publish()

    def _advance_locked(self, units: int) -> None:
        # Lock held by caller
        if self.current_process is None:
            self._dispatch()
        if self.current_process is not None:
            step = min(max(0, units), self._slice_length - self._slice_elapsed)
            self._slice_elapsed += step
            if self._slice_elapsed >= self._slice_length:
                self._complete_slice()

    def _advance(self, units: int, generation: Optional[int] = None) -> bool:
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            if not self.is_simulating:
                return False
            if self.is_paused:
                return True
            self._advance_locked(units)
            still_running = self.is_simulating
        self._flush()
        return still_running

    def tick(self, units: Optional[int] = None) -> bool:
        """Advance the slice in flight by up to `units` simulated units.

        Dispatches the next ready record when the CPU is free. A paused
        engine ignores ticks. Returns True while the run is still active.
        """
        return self._advance(self.config.tick_units if units is None else units)

    def step_slice(self) -> Optional[ProcessRecord]:
        """Run the current (or next) slice to its end, ignoring pacing."""
        with self._lock:
            if not self.is_simulating or self.is_paused:
                return None
            if self.current_process is None:
                self._dispatch()
            record = self.current_process
            if record is not None:
                self._advance_locked(self._slice_length - self._slice_elapsed)
        self._flush()
        return record

    def _next_step_units(self) -> int:
        # Lock held by caller
        if self.current_process is not None:
            remaining = self._slice_length - self._slice_elapsed
        else:
            head = self.ready_queue.peek()
            remaining = head.slice_for(self.quantum) if head is not None else 0
        return min(self.config.tick_units, remaining)

    def run(self) -> SimulationSnapshot:
        """Blocking control loop pacing every tick in wall-clock time.

        Starts the engine if needed. Returns when the run finishes or when a
        new batch replaces the one being simulated.
        """
        if not self.is_simulating:
            self.start()
        with self._lock:
            generation = self._generation

        while True:
            with self._lock:
                while self.is_paused and generation == self._generation:
                    self._resume.wait(timeout=self.config.pause_poll_interval)
                if generation != self._generation or not self.is_simulating:
                    break
                step = self._next_step_units()
            if step > 0 and self.config.time_scale > 0:
                time.sleep(step * self.config.time_scale)
            if not self._advance(step, generation):
                break
        return self.snapshot()

    def run_in_thread(self) -> threading.Thread:
        thread = threading.Thread(target=self.run, name="rr-engine", daemon=True)
        thread.start()
        return thread
