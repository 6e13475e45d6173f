"""
Tests for the Round-Robin engine.
"""

import threading
import time

import pytest

from ..backend.core import EngineState, RecordState, InvalidQuantumError, build_batch
from ..backend.engine import RoundRobinEngine, EngineConfig


def make_engine(quantum=20, tick_units=5, time_scale=0.0):
    return RoundRobinEngine(EngineConfig(quantum=quantum, tick_units=tick_units, time_scale=time_scale))


def run_batch(rows, quantum=20, tick_units=5):
    engine = make_engine(quantum, tick_units)
    snapshots = []
    engine.subscribe(snapshots.append)
    engine.load_batch(build_batch(rows, quantum))
    engine.run()
    return engine, snapshots


class TestScenarios:

    def test_non_preemptible_runs_to_completion(self):
        engine, _ = run_batch([(1, "abc", "root", 1)])
        (record,) = engine.done
        assert record.total_service == 60
        assert record.service_count == 1
        assert record.remaining_service == 0
        assert record.finish_time == 60
        assert engine.logger.timeline == [
            {"start": 0, "end": 60, "pid": 1, "preemptible": False, "outcome": "complete"}
        ]

    def test_preemptible_sliced_by_quantum(self):
        engine, _ = run_batch([(1, "abc", "root", 0)])
        (record,) = engine.done
        assert record.total_service == 60
        assert record.service_count == 3
        assert record.finish_time == 60
        assert [(s["start"], s["end"]) for s in engine.logger.timeline] == [(0, 20), (20, 40), (40, 60)]

    def test_two_preemptible_records(self):
        engine, _ = run_batch([(1, "a", "root", 0), (2, "bb", "ana", 0)])
        assert [r.pid for r in engine.done] == [1, 2]
        a, b = engine.done
        assert (a.total_service, a.service_count, a.finish_time) == (20, 1, 20)
        assert (b.total_service, b.service_count, b.finish_time) == (40, 2, 60)

    def test_done_order_is_completion_order(self, mixed_rows):
        engine, _ = run_batch(mixed_rows, quantum=10)
        assert [r.pid for r in engine.done] == [2, 3, 1]
        assert [r.finish_time for r in engine.done] == [30, 40, 60]
        assert [r.service_count for r in engine.done] == [1, 1, 3]
        assert engine.clock == 60
        assert engine.state == EngineState.FINISHED
        assert not engine.is_simulating

    def test_empty_name_completes_in_zero_slice(self):
        engine, _ = run_batch([(1, "", "root", 0), (2, "a", "ana", 0)])
        assert [r.pid for r in engine.done] == [1, 2]
        assert engine.done[0].finish_time == 0
        assert engine.done[0].service_count == 1
        assert engine.done[1].finish_time == 20


class TestInvariants:

    def test_every_record_in_exactly_one_container(self, mixed_rows):
        _, snapshots = run_batch(mixed_rows, quantum=10, tick_units=3)
        assert snapshots
        for snap in snapshots:
            pids = [r.pid for r in snap.ready] + [r.pid for r in snap.done]
            if snap.running is not None:
                pids.append(snap.running.pid)
            assert sorted(pids) == [1, 2, 3]

    def test_remaining_service_non_increasing(self, mixed_rows):
        _, snapshots = run_batch(mixed_rows, quantum=10, tick_units=3)
        last = {}
        for snap in snapshots:
            for r in snap.all_records():
                assert 0 <= r.remaining_service <= r.total_service
                assert r.remaining_service <= last.get(r.pid, r.total_service)
                last[r.pid] = r.remaining_service
        assert all(v == 0 for v in last.values())

    def test_clock_is_sum_of_slices(self, mixed_rows):
        engine, snapshots = run_batch(mixed_rows, quantum=10, tick_units=3)
        clocks = [s.clock for s in snapshots]
        assert clocks == sorted(clocks)
        assert engine.clock == sum(s["end"] - s["start"] for s in engine.logger.timeline)

    def test_running_record_not_in_ready(self, mixed_rows):
        _, snapshots = run_batch(mixed_rows, quantum=10)
        running = [s for s in snapshots if s.running is not None]
        assert running
        for snap in running:
            assert snap.locate(snap.running.pid) == RecordState.RUNNING
            assert snap.running.pid not in [r.pid for r in snap.ready]


class TestCommands:

    def test_start_without_batch_is_noop(self):
        engine = make_engine()
        assert engine.start() is False
        assert engine.toggle() is False
        assert engine.tick() is False
        assert engine.state == EngineState.IDLE

    def test_empty_batch_stays_idle(self):
        engine = make_engine()
        engine.load_batch([])
        assert engine.start() is False
        assert engine.state == EngineState.IDLE

    def test_reload_is_idempotent(self, mixed_rows):
        engine = make_engine()
        engine.load_batch(build_batch(mixed_rows, 20))
        first = engine.snapshot()
        engine.load_batch(build_batch(mixed_rows, 20))
        assert engine.snapshot() == first

    def test_reload_after_run_resets_records(self, mixed_rows):
        batch = build_batch(mixed_rows, 10)
        engine = make_engine(quantum=10)
        engine.load_batch(batch)
        engine.run()
        engine.load_batch(batch)
        snap = engine.snapshot()
        assert snap.state == EngineState.IDLE
        assert snap.clock == 0 and not snap.done and snap.running is None
        assert [(r.remaining_service, r.service_count, r.finish_time) for r in snap.ready] == [
            (30, 0, None), (20, 0, None), (10, 0, None)
        ]

    def test_start_after_finish_needs_new_batch(self, mixed_rows):
        engine = make_engine()
        engine.load_batch(build_batch(mixed_rows, 20))
        engine.run()
        assert engine.start() is False
        engine.load_batch(build_batch(mixed_rows, 20))
        assert engine.start() is True
        assert engine.state == EngineState.RUNNING

    def test_toggle_starts_then_pauses(self, mixed_batch):
        engine = make_engine()
        engine.load_batch(mixed_batch)
        assert engine.toggle() is True
        assert engine.state == EngineState.RUNNING
        engine.toggle()
        assert engine.state == EngineState.PAUSED and engine.is_paused
        engine.toggle()
        assert engine.state == EngineState.RUNNING and not engine.is_paused

    def test_paused_engine_ignores_ticks(self):
        engine = make_engine(quantum=20, tick_units=5)
        engine.load_batch(build_batch([(1, "abc", "root", 0)], 20))
        engine.start()
        engine.tick()
        engine.toggle()
        before = engine.snapshot()
        for _ in range(10):
            assert engine.tick() is True
        assert engine.snapshot() == before
        assert engine.current_process.pid == 1
        assert engine.clock == 0

    def test_pause_does_not_change_results(self, mixed_rows):
        reference, _ = run_batch(mixed_rows, quantum=10, tick_units=4)

        engine = make_engine(quantum=10, tick_units=4)
        engine.load_batch(build_batch(mixed_rows, 10))
        engine.start()
        ticks = 0
        while engine.is_simulating:
            if ticks % 3 == 1:
                engine.toggle()
                engine.tick()
                engine.toggle()
            engine.tick()
            ticks += 1

        def outcome(e):
            return [(r.pid, r.remaining_service, r.service_count, r.finish_time) for r in e.done]
        assert outcome(engine) == outcome(reference)
        assert engine.clock == reference.clock

    def test_step_slice_completes_one_slice(self, mixed_batch):
        engine = make_engine(quantum=10)
        engine.load_batch(mixed_batch)
        engine.start()
        record = engine.step_slice()
        assert record.pid == 1
        assert engine.clock == 10
        assert [r.pid for r in engine.ready_queue.get_all_processes()] == [2, 3, 1]

    def test_set_quantum_does_not_rescale_loaded_records(self):
        engine = make_engine(quantum=20)
        engine.load_batch(build_batch([(1, "abc", "root", 0)], 20))
        engine.set_quantum(30)
        engine.run()
        (record,) = engine.done
        assert record.total_service == 60
        assert record.service_count == 2
        assert [(s["start"], s["end"]) for s in engine.logger.timeline] == [(0, 30), (30, 60)]

    @pytest.mark.parametrize("quantum", [0, -1])
    def test_rejects_non_positive_quantum(self, quantum):
        engine = make_engine()
        with pytest.raises(InvalidQuantumError):
            engine.set_quantum(quantum)
        with pytest.raises(InvalidQuantumError):
            EngineConfig(quantum=quantum)

    def test_unsubscribe(self, mixed_batch):
        engine = make_engine()
        seen = []
        unsubscribe = engine.subscribe(seen.append)
        engine.load_batch(mixed_batch)
        unsubscribe()
        engine.start()
        assert len(seen) == 1

    def test_logger_records_control_events(self, mixed_batch):
        engine = make_engine()
        engine.load_batch(mixed_batch)
        engine.start()
        engine.toggle()
        engine.toggle()
        engine.run()
        events = [e["event"] for e in engine.logger.control_events]
        assert events == ["load", "start", "pause", "resume", "finish"]


class TestPacedLoop:

    def test_pause_and_resume_in_thread(self):
        rows = [(i, "abcdef", "root", 0) for i in range(1, 4)]
        engine = make_engine(quantum=20, tick_units=5, time_scale=0.0005)
        engine.load_batch(build_batch(rows, 20))
        engine.start()
        thread = engine.run_in_thread()

        time.sleep(0.02)
        engine.toggle()
        assert engine.is_paused
        time.sleep(0.02)
        paused_clock = engine.clock
        time.sleep(0.1)
        assert engine.clock == paused_clock
        assert thread.is_alive()

        engine.toggle()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert engine.state == EngineState.FINISHED
        assert [r.finish_time for r in engine.done] == [320, 340, 360]
        assert all(r.service_count == 6 for r in engine.done)

    def test_new_batch_cancels_paused_run(self, mixed_rows):
        engine = make_engine(quantum=10, tick_units=1, time_scale=0.001)
        engine.load_batch(build_batch(mixed_rows, 10))
        engine.start()
        engine.toggle()
        thread = engine.run_in_thread()
        time.sleep(0.05)
        engine.load_batch(build_batch([(7, "x", "root", 0)], 10))
        thread.join(timeout=5)
        assert not thread.is_alive()
        snap = engine.snapshot()
        assert snap.state == EngineState.IDLE
        assert [r.pid for r in snap.ready] == [7]
        assert snap.done == ()

    def test_snapshots_delivered_in_publish_order(self):
        rows = [(i, "abcdef", "root", 0) for i in range(1, 4)]
        engine = make_engine(quantum=20, tick_units=5, time_scale=0.0005)
        seen = []
        in_slow_observer = threading.Event()

        def slow_observer(snap):
            if threading.current_thread().name == "rr-engine" and not in_slow_observer.is_set():
                in_slow_observer.set()
                time.sleep(0.2)
            seen.append(snap)

        engine.subscribe(slow_observer)
        engine.load_batch(build_batch(rows, 20))
        engine.start()
        thread = engine.run_in_thread()
        assert in_slow_observer.wait(timeout=5)
        engine.toggle()
        time.sleep(0.1)

        assert engine.is_paused
        assert seen[-1].is_paused
        assert seen[-1] == engine.snapshot()
        clocks = [s.clock for s in seen]
        assert clocks == sorted(clocks)

        engine.toggle()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert seen[-1].state == EngineState.FINISHED
