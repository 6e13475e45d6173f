import os
import sys

import matplotlib
import pytest

# Charts are rendered off-screen during tests
matplotlib.use("Agg")

from round_robin_visualizer.backend.core import build_batch
from round_robin_visualizer.backend.sample_data import write_sample_database


def pytest_sessionstart(session):
    # Ensure project root is on sys.path so the package can be imported
    here = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.abspath(os.path.join(here, os.pardir, os.pardir))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


@pytest.fixture
def mixed_rows():
    """Two preemptible records around a non-preemptible one."""
    return [
        (1, "abc", "root", 0),
        (2, "ab", "ana", 1),
        (3, "a", "luis", 0),
    ]


@pytest.fixture
def mixed_batch(mixed_rows):
    return build_batch(mixed_rows, 10)


@pytest.fixture
def sample_db(tmp_path):
    return write_sample_database(str(tmp_path / "procesos.db"), catalogs=2, per_catalog=5, seed=7)
