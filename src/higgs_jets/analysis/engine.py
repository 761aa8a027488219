"""
Per-event cuts and histogram filling.

``fill_event`` fills one classified event into a HistogramSet and
``run_events`` is the processing loop over a record source.
"""

import logging
from dataclasses import dataclass

import numpy as np

from ..exceptions import MissingHiggsError
from .events import HIGGS_PID
from .histograms import H_PT, NJETS_EXCL, NJETS_INCL
from .selection import JetCuts, classify_event, jet_passes

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    n_read: int = 0
    n_accepted: int = 0
    n_skipped: int = 0
    sum_weights: float = 0.0


def fill_event(histograms, event, weight, entry=None, cuts=JetCuts()):
    """
    Fill one classified event.

    Steps:
      1. No Higgs: raise MissingHiggsError, nothing is filled.
      2. Fill the Higgs pT.
      3. Apply the jet cuts; a passing jet fills the jet pT histogram
         of its index in the jet list. Indices beyond the declared slots
         are dropped.
      4. Fill the number of passing jets into the exclusive histogram.
      5. Fill every value from that number down to 0 into the
         inclusive histogram.

    Returns
    -------
    int
        Number of jets passing the cuts.
    """
    if event.higgs is None:
        raise MissingHiggsError(entry)

    histograms.fill(H_PT, event.higgs.pt, weight)

    n_jets = 0  # number of jets that pass cuts
    for j, jet in enumerate(event.jets):
        jet_pt = jet.pt
        if not jet_passes(jet_pt, jet.eta, cuts):
            continue
        n_jets += 1
        # slot follows the jet index, not the number of passing jets
        h = histograms.jet_pt(j)
        if h is not None:
            histograms.fill(h.name, jet_pt, weight)

    histograms.fill(NJETS_EXCL, n_jets, weight)
    histograms.fill(NJETS_INCL, np.arange(n_jets, -1, -1), weight)
    return n_jets


def run_events(events, histograms, cuts=JetCuts(), higgs_pid=HIGGS_PID):
    """
    Classify and fill every event of a record source, then close the set.

    Events without a Higgs are logged and skipped. Any other exception,
    in particular a SourceError from the record source, propagates and
    leaves the set open, so a partial result is never finalized.

    Parameters
    ----------
    events : iterable of EventRecord
        Record source, consumed in order.
    histograms : HistogramSet
        Open set to fill.
    cuts : JetCuts
    higgs_pid : int

    Returns
    -------
    RunSummary
    """
    summary = RunSummary()
    for record in events:
        summary.n_read += 1
        event = classify_event(record, higgs_pid=higgs_pid)
        try:
            fill_event(histograms, event, record.weight, entry=record.entry, cuts=cuts)
        except MissingHiggsError as e:
            logger.warning("%s", e)
            summary.n_skipped += 1
            continue
        summary.n_accepted += 1
        summary.sum_weights += record.weight

    histograms.finalize()
    return summary
