import sys
import os

import pytest

# Absolute path to project root
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_PATH = os.path.join(PROJECT_ROOT, "src")

# Prepend src to sys.path so it overrides site-packages
sys.path.insert(0, SRC_PATH)


@pytest.fixture
def make_event():
    """Build an EventRecord from (pid, px, py, pz, E) tuples."""
    from higgs_jets.analysis.events import EventRecord, Particle
    from higgs_jets.analysis.physics import FourVector

    def _make(particles, weight=1.0, entry=0):
        return EventRecord(
            tuple(Particle(pid, FourVector(px, py, pz, E)) for pid, px, py, pz, E in particles),
            weight,
            entry,
        )

    return _make
