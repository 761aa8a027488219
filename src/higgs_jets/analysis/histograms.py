"""
Weighted histogram bookkeeping.

A HistogramSet is the fixed, named collection of 1D weighted histograms
filled by the engine. It is OPEN while events are being processed and is
closed exactly once by ``finalize()`` after the record source is
exhausted; a closed set is read-only.
"""

import logging

import numpy as np
import hist
from hist import Hist

from ..exceptions import ConfigurationError, HistogramSetClosedError

logger = logging.getLogger(__name__)


H_PT = "H_pT"
NJETS_EXCL = "Njets_excl"
NJETS_INCL = "Njets_incl"

DEFAULT_HIST_CONFIG = {
    "pt": {"nbins": 100, "min": 0.0, "max": 1500.0},
    "n_jet_slots": 4,
}


def jet_pt_name(slot):
    """Name of the jet pT histogram for the 0-based jet index ``slot``."""
    return f"jet{slot + 1}_pT"


def suffix_sum(values):
    """
    Cumulative sum from the last bin down to each bin.

    Applied to the exclusive multiplicity bin contents, overflow bin
    included, this gives the inclusive ("at least k jets") distribution.
    """
    values = np.asarray(values)
    return np.cumsum(values[::-1])[::-1]


def inclusive_from_exclusive(exclusive):
    """
    In-range inclusive bin contents built from an exclusive Histogram.

    Events with more jets than the axis covers sit in the overflow bin
    but still count as "at least k" for every in-range k, so the sum
    starts from the overflow.
    """
    return suffix_sum(exclusive.values(flow=True))[1:-1]


class Histogram:
    """
    A 1D hist.Hist with Weight storage plus a ROOT-style entry counter.

    ``entries`` counts fills (one per filled value, flow bins included)
    and can be overridden, like TH1::SetEntries.
    """

    def __init__(self, name, nbins, xmin, xmax, label=""):
        self.name = name
        self.hist = Hist(
            hist.axis.Regular(nbins, xmin, xmax, name="x", label=label),
            storage=hist.storage.Weight(),
        )
        self.entries = 0
        # sum of w*x and w*x^2 over in-range fills, for ROOT mean and RMS
        self.sumwx = 0.0
        self.sumwx2 = 0.0

    def fill(self, values, weight=1.0):
        values = np.atleast_1d(np.asarray(values, dtype=float))
        self.hist.fill(values, weight=np.full(values.shape, weight, dtype=float))
        self.entries += values.size
        edges = self.edges
        inside = values[(values >= edges[0]) & (values < edges[-1])]
        self.sumwx += float(weight * inside.sum())
        self.sumwx2 += float(weight * (inside**2).sum())

    @property
    def axis(self):
        return self.hist.axes[0]

    @property
    def edges(self):
        return self.axis.edges

    @property
    def nbins(self):
        return len(self.axis)

    def values(self, flow=False):
        """Per-bin sum of weights; with flow=True, underflow first and overflow last."""
        return self.hist.values(flow=flow)

    def variances(self, flow=False):
        """Per-bin sum of squared weights."""
        return self.hist.variances(flow=flow)

    @property
    def sum_of_weights(self):
        """Total weight of all fills, flow bins included."""
        return float(self.hist.sum(flow=True).value)

    def __iadd__(self, other):
        self.hist += other.hist
        self.entries += other.entries
        self.sumwx += other.sumwx
        self.sumwx2 += other.sumwx2
        return self

    def __repr__(self):
        return (
            f"Histogram({self.name!r}, nbins={self.nbins}, "
            f"entries={self.entries}, sum_of_weights={self.sum_of_weights:g})"
        )


class HistogramSet:
    """
    Fixed collection of named histograms.

    Holds the Higgs pT histogram, one jet pT histogram per jet index slot
    and the exclusive and inclusive jet multiplicity histograms.
    """

    OPEN = "OPEN"
    CLOSED = "CLOSED"

    def __init__(self, histograms, n_jet_slots):
        self._histograms = {h.name: h for h in histograms}
        self.n_jet_slots = n_jet_slots
        self.state = self.OPEN

    def __getitem__(self, name):
        return self._histograms[name]

    def __contains__(self, name):
        return name in self._histograms

    def __iter__(self):
        return iter(self._histograms.values())

    def __len__(self):
        return len(self._histograms)

    def names(self):
        return list(self._histograms)

    @property
    def closed(self):
        return self.state == self.CLOSED

    def jet_pt(self, slot):
        """Jet pT histogram for index ``slot``, or None beyond the declared slots."""
        if 0 <= slot < self.n_jet_slots:
            return self._histograms[jet_pt_name(slot)]
        return None

    def _check_open(self, action):
        if self.closed:
            raise HistogramSetClosedError(f"Cannot {action} a closed histogram set")

    def fill(self, name, values, weight=1.0):
        self._check_open("fill")
        self._histograms[name].fill(values, weight)

    def merge(self, other):
        """
        Add another set bin-for-bin, entry counts included.

        Both sets must still be open, i.e. merge the per-worker sets after
        every worker is done filling and before finalizing the result.
        """
        self._check_open("merge into")
        other._check_open("merge from")
        if self.names() != other.names():
            raise ValueError(
                f"Histogram sets differ: {self.names()} vs {other.names()}"
            )
        for name, h in self._histograms.items():
            h += other[name]
        return self

    def finalize(self):
        """
        Close the set after the last event.

        The inclusive multiplicity histogram is filled several times per
        event, so its entry count is set to that of the exclusive one.
        """
        self._check_open("finalize")
        self[NJETS_INCL].entries = self[NJETS_EXCL].entries
        self.state = self.CLOSED
        logger.debug("Histogram set closed with %d entries", self[NJETS_EXCL].entries)
        return self


def book_histograms(config=None):
    """
    Create an open HistogramSet from the ``hist`` config section.

    Parameters
    ----------
    config : dict, optional
        Full analysis configuration; only ``config["hist"]`` is read.

    Returns
    -------
    HistogramSet
    """
    hist_cfg = dict(DEFAULT_HIST_CONFIG)
    hist_cfg.update((config or {}).get("hist", {}))

    pt_cfg = dict(DEFAULT_HIST_CONFIG["pt"])
    pt_cfg.update(hist_cfg.get("pt", {}))
    nbins, hmin, hmax = int(pt_cfg["nbins"]), float(pt_cfg["min"]), float(pt_cfg["max"])
    n_slots = int(hist_cfg["n_jet_slots"])

    if nbins <= 0:
        raise ConfigurationError(f"hist.pt.nbins must be positive, got {nbins}")
    if hmax <= hmin:
        raise ConfigurationError(f"hist.pt.max ({hmax}) must exceed hist.pt.min ({hmin})")
    if n_slots <= 0:
        raise ConfigurationError(f"hist.n_jet_slots must be positive, got {n_slots}")

    histograms = [Histogram(H_PT, nbins, hmin, hmax, label=r"Higgs $p_T$ [GeV]")]
    histograms += [
        Histogram(jet_pt_name(j), nbins, hmin, hmax, label=rf"Jet {j + 1} $p_T$ [GeV]")
        for j in range(n_slots)
    ]
    # unit bins centred on 0 .. n_slots
    histograms += [
        Histogram(NJETS_EXCL, n_slots + 1, -0.5, n_slots + 0.5, label=r"$N_\mathrm{jets}$"),
        Histogram(NJETS_INCL, n_slots + 1, -0.5, n_slots + 0.5, label=r"$N_\mathrm{jets} \geq$"),
    ]
    return HistogramSet(histograms, n_slots)
