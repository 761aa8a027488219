"""
Selection logic for the H + jets analysis.

This module splits the particles of an event into the Higgs candidate
and jets, and defines the jet-level kinematic cuts.
"""

from dataclasses import dataclass

from .events import HIGGS_PID, ClassifiedEvent


def classify_event(record, higgs_pid=HIGGS_PID):
    """
    Split the particles of an event into the Higgs and jets.

    Every particle with the Higgs PDG code overwrites the Higgs slot, so
    the last one in the event wins. Every other particle is a jet, kept
    in source order.

    Parameters
    ----------
    record : EventRecord
        Event from the record source.
    higgs_pid : int
        PDG code identifying the Higgs boson.

    Returns
    -------
    ClassifiedEvent
        Fresh per-event view; ``higgs`` is None when the event has no Higgs.
    """
    event = ClassifiedEvent()
    for particle in record.particles:
        if particle.pid == higgs_pid:
            event.higgs = particle.momentum
        else:
            event.jets.append(particle.momentum)
    return event


@dataclass(frozen=True)
class JetCuts:
    """
    Jet-level cuts.

    The eta cut is one-sided: only jets with eta above ``eta_max`` are
    rejected, jets at large negative eta pass.
    """

    pt_min: float = 30.0
    eta_max: float = 4.4

    @classmethod
    def from_config(cls, config):
        selection = config.get("selection", {})
        return cls(
            pt_min=float(selection.get("jet_pt_min", cls.pt_min)),
            eta_max=float(selection.get("jet_eta_max", cls.eta_max)),
        )


def jet_passes(jet_pt, jet_eta, cuts=JetCuts()):
    """
    Basic jet-level cuts on pT and eta.
    """
    if jet_pt < cuts.pt_min:   # pT cut
        return False
    if jet_eta > cuts.eta_max:   # eta cut
        return False
    return True
