"""
I/O utilities: read event ntuples and write histograms with uproot
"""

import logging

import awkward as ak
import numpy as np
import uproot
from uproot.writing.identify import to_TAxis, to_TH1x

from ..exceptions import AnalysisError, SourceError
from .events import MAX_PARTICLES, EventRecord, Particle
from .physics import FourVector

logger = logging.getLogger(__name__)


DEFAULT_TREE = "t3"
DEFAULT_WEIGHT_BRANCH = "weight2"

PARTICLE_BRANCHES = [
    "nparticle",
    "kf",
    "px",
    "py",
    "pz",
    "E",
]


def _find_tree(file, tree_name=DEFAULT_TREE):
    """
    Detect the event TTree inside the ROOT file.

    Logic:
    1. If ``tree_name`` exists, use it.
    2. Otherwise, use the only TTree at the top level, if there is exactly one.
    3. Otherwise, search for a TTree inside subdirectories.
    """
    # Direct match
    if tree_name in file.keys():
        return file[tree_name]

    # Match with ';1' versioning
    if f"{tree_name};1" in file.keys():
        return file[f"{tree_name};1"]

    # If there is exactly one TTree in the root file:
    tt_keys = [k for k, v in file.classnames().items() if v == "TTree"]
    if len(tt_keys) == 1:
        return file[tt_keys[0]]

    # Search inside directories
    for key in file.keys():
        obj = file[key]
        if not hasattr(obj, "keys"):
            continue
        for subkey in obj.keys():
            full = f"{key}/{subkey}"
            if file[full].classname == "TTree":
                return file[full]

    raise SourceError(f"No TTree found in file {file.file_path}")


def events_from_arrays(
    arrays,
    weight_branch=DEFAULT_WEIGHT_BRANCH,
    first_entry=0,
    max_particles=MAX_PARTICLES,
):
    """
    Convert a chunk of ntuple branches into EventRecords.

    Parameters
    ----------
    arrays : ak.Array
        Record array with the particle branches and the weight branch.
    weight_branch : str
        Name of the event weight field.
    first_entry : int
        Sequence position of the first event of the chunk.
    max_particles : int or None
        Particle capacity per event; None disables the check.

    Yields
    ------
    EventRecord
    """
    for i, ev in enumerate(ak.to_list(arrays)):
        entry = first_entry + i
        n = int(ev["nparticle"])
        if max_particles is not None and n > max_particles:
            raise SourceError(
                f"Entry {entry} has {n} particles, capacity is {max_particles}"
            )
        try:
            particles = tuple(
                Particle(
                    int(ev["kf"][k]),
                    FourVector(float(ev["px"][k]), float(ev["py"][k]), float(ev["pz"][k]), float(ev["E"][k])),
                )
                for k in range(n)
            )
            weight = float(ev[weight_branch])
        except (IndexError, KeyError, TypeError) as e:
            raise SourceError(f"Malformed record at entry {entry}: {e!r}") from e
        yield EventRecord(particles, weight, entry)


def iter_events(
    filenames,
    tree_name=DEFAULT_TREE,
    weight_branch=DEFAULT_WEIGHT_BRANCH,
    max_particles=MAX_PARTICLES,
    step_size="100 MB",
):
    """
    Stream EventRecords from a sequence of ROOT files, in order.

    Entries are numbered continuously across files. Any failure to read
    the next event raises SourceError.
    """
    branches = PARTICLE_BRANCHES + [weight_branch]
    entry = 0
    for filename in filenames:
        logger.info("Reading %s", filename)
        try:
            f = uproot.open(filename)
        except (OSError, ValueError) as e:
            raise SourceError(f"Cannot open input file {filename}: {e}") from e

        with f:
            tree = _find_tree(f, tree_name)
            try:
                for arrays in tree.iterate(branches, step_size=step_size, library="ak"):
                    for record in events_from_arrays(
                        arrays, weight_branch, entry, max_particles
                    ):
                        yield record
                    entry += len(arrays)
            except (OSError, ValueError, uproot.KeyInFileError) as e:
                raise SourceError(f"Cannot read events from {filename}: {e}") from e


def _to_th1d(h):
    """Convert a Histogram into an uproot-writable TH1D."""
    edges = h.edges
    inner = h.values()
    xaxis = to_TAxis(
        fName="xaxis",
        fTitle=h.axis.label,
        fNbins=h.nbins,
        fXmin=float(edges[0]),
        fXmax=float(edges[-1]),
    )
    return to_TH1x(
        fName=h.name,
        fTitle="",
        data=np.asarray(h.values(flow=True), dtype=np.float64),
        fEntries=float(h.entries),
        fTsumw=float(inner.sum()),
        fTsumw2=float(h.variances().sum()),
        fTsumwx=h.sumwx,
        fTsumwx2=h.sumwx2,
        fSumw2=np.asarray(h.variances(flow=True), dtype=np.float64),
        fXaxis=xaxis,
    )


def write_histograms(path, histograms):
    """
    Write every histogram of a closed HistogramSet as a TH1D.

    Raises
    ------
    AnalysisError
        If the set was not finalized.
    SourceError
        If the output file cannot be written.
    """
    if not histograms.closed:
        raise AnalysisError("Histogram set must be finalized before writing")

    try:
        with uproot.recreate(path) as fout:
            for h in histograms:
                fout[h.name] = _to_th1d(h)
    except OSError as e:
        raise SourceError(f"Cannot write output file {path}: {e}") from e

    logger.info("Wrote %d histograms to %s", len(histograms), path)
