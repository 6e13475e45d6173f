from __future__ import annotations
import os, sys
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(SCRIPT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from round_robin_visualizer.backend.core import build_batch
from round_robin_visualizer.backend.engine import RoundRobinEngine, EngineConfig


def make_rows():
    return [
        (1, "bash", "root", 0),
        (2, "gcc", "ana", 1),
        (3, "python3", "luis", 0),
        (4, "ld", "maria", 0),
        (5, "", "daemon", 0),
    ]


def run():
    engine = RoundRobinEngine(EngineConfig(quantum=20, tick_units=5, time_scale=0.0))
    engine.subscribe(lambda s: print(
        f"t={s.clock:>4} {s.state.name:<8} ready={[r.pid for r in s.ready]} "
        f"running={s.running.pid if s.running else None} done={[r.pid for r in s.done]}"
    ))
    engine.load_batch(build_batch(make_rows(), engine.quantum))
    engine.start()
    ticks = 0
    # drive the engine by hand, one tick at a time
    while engine.tick():
        ticks += 1
    print('ticks:', ticks)
    for r in engine.done:
        print(f'PID {r.pid}: services={r.service_count}, finish={r.finish_time}')


if __name__ == '__main__':
    run()
