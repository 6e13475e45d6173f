#!/usr/bin/env python3
"""
Launch the Round Robin visualizer GUI.
"""

import argparse
import os
import sys

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(SCRIPT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from PyQt6.QtWidgets import QApplication

from round_robin_visualizer.backend.engine import EngineConfig
from round_robin_visualizer.gui.main_window import MainWindow


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Round Robin visualizer")
    p.add_argument("--quantum", type=int, default=200)
    p.add_argument("--tick", type=int, default=20, help="Simulated units per animation tick")
    p.add_argument("--speed", type=float, default=0.001, help="Wall seconds per time unit")
    return p.parse_args()


def main():
    args = parse_args()
    app = QApplication(sys.argv[:1])
    app.setStyle("Fusion")
    window = MainWindow(EngineConfig(quantum=args.quantum, tick_units=args.tick, time_scale=args.speed))
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
