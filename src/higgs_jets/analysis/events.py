"""
Event data model.

An EventRecord is what the record source delivers: the particles of one
event in source order plus the event weight. A ClassifiedEvent is the
per-event view built from it by the classifier.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .physics import FourVector


# PDG Monte Carlo code of the Higgs boson
HIGGS_PID = 25

# Maximum number of particles per event the record source may deliver.
# Honouring it is the source's job, the classifier and engine never check.
MAX_PARTICLES = 4


@dataclass(frozen=True)
class Particle:
    """A particle with its PDG code and four-momentum."""

    pid: int
    momentum: FourVector


@dataclass(frozen=True)
class EventRecord:
    """
    One event from the record source.

    Attributes:
        particles: Particles in source order.
        weight: Event weight, may be negative.
        entry: Sequence position of the event in the source.
    """

    particles: Tuple[Particle, ...]
    weight: float
    entry: int = 0


@dataclass
class ClassifiedEvent:
    """Higgs candidate (if any) and jets of one event, jets in source order."""

    higgs: Optional[FourVector] = None
    jets: List[FourVector] = field(default_factory=list)
