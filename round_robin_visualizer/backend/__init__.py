"""
Scheduling backend: process records, the Round-Robin engine and the
catalog loader.
"""

from .core import ProcessRecord, RecordState, EngineState, SimulationSnapshot, InvalidQuantumError, build_batch
from .engine import RoundRobinEngine, EngineConfig

__all__ = [
    'ProcessRecord', 'RecordState', 'EngineState', 'SimulationSnapshot',
    'InvalidQuantumError', 'build_batch', 'RoundRobinEngine', 'EngineConfig',
]
