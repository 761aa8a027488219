"""
Main entry point for the H + jets histogramming.

Reads Monte Carlo ntuples, classifies each event's particles into the
Higgs and jets, applies jet cuts and fills weighted histograms of the
Higgs pT, jet pT per jet index and exclusive/inclusive jet multiplicity.
The histograms are written to a ROOT file and optionally plotted.
"""

import argparse
import copy
import glob
import logging
import os
import sys
import time

import yaml
import numpy as np
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from higgs_jets.exceptions import AnalysisError, ConfigurationError
from higgs_jets.analysis.engine import run_events
from higgs_jets.analysis.histograms import NJETS_EXCL, NJETS_INCL, book_histograms
from higgs_jets.analysis.io import iter_events, write_histograms
from higgs_jets.analysis.selection import JetCuts


DEFAULT_CONFIG = {
    "data_dir": "data",
    "file_pattern": "*.root",
    "output_dir": "output",
    "output_file": "histograms.root",
    "tree_name": "t3",
    "weight_branch": "weight2",
    "max_particles": 4,
    "selection": {"higgs_pid": 25, "jet_pt_min": 30.0, "jet_eta_max": 4.4},
    "hist": {"pt": {"nbins": 100, "min": 0.0, "max": 1500.0}, "n_jet_slots": 4},
    "analysis": {"make_plots": False, "step_size": "100 MB"},
}


# Argument parsing and config loading
def parse_args():
    parser = argparse.ArgumentParser(
        description="Fill Higgs pT, jet pT and jet multiplicity histograms from H+jets ntuples."
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        help="Input ROOT ntuples. Defaults to data_dir/file_pattern from the config.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Output ROOT file. Defaults to output_dir/output_file from the config.",
    )
    return parser.parse_args()


def merge_config(base, override):
    """Recursively overlay ``override`` on a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path):
    try:
        with open(path) as f:
            user_config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML file {path}: {e}")

    if user_config is not None and not isinstance(user_config, dict):
        raise ConfigurationError(f"Top level of {path} must be a mapping")
    return merge_config(DEFAULT_CONFIG, user_config)


def process_files(filenames, config):
    """
    Run the full event loop over a list of ntuples.

    Returns
    -------
    (HistogramSet, RunSummary)
        The closed histogram set and the event counts.
    """
    histograms = book_histograms(config)
    events = iter_events(
        filenames,
        tree_name=config["tree_name"],
        weight_branch=config["weight_branch"],
        max_particles=config["max_particles"],
        step_size=config["analysis"]["step_size"],
    )
    summary = run_events(
        events,
        histograms,
        cuts=JetCuts.from_config(config),
        higgs_pid=int(config["selection"]["higgs_pid"]),
    )
    return histograms, summary


def plot_histograms(histograms, outdir):
    """
    Save one PNG per histogram, with sqrt(sum w^2) error bars.
    """
    for h in histograms:
        counts = h.values()
        edges = h.edges
        centers = 0.5 * (edges[:-1] + edges[1:])
        errors = np.sqrt(h.variances())

        fig, ax = plt.subplots()
        ax.step(edges[:-1], counts, where="post", label="Events")
        ax.errorbar(
            centers,
            counts,
            yerr=errors,
            fmt=".",
            markersize=2,
            linewidth=0.5,
            label="Statistical errors",
        )
        ax.set_xlabel(h.axis.label)
        ax.set_ylabel("Weighted events")
        ax.set_title(h.name)
        ax.legend(loc="best", frameon=False)
        fig.tight_layout()
        fig.savefig(os.path.join(outdir, f"{h.name}.png"))
        plt.close(fig)


def main():
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")
    args = parse_args()

    try:
        config = load_config(args.config)

        files = list(args.inputs)
        if not files:
            pattern = os.path.join(config["data_dir"], config["file_pattern"])
            files = sorted(glob.glob(pattern))
            if not files:
                raise ConfigurationError(f"No input files found for pattern {pattern}")

        print(f"Found {len(files)} input files.")

        output = args.output or os.path.join(config["output_dir"], config["output_file"])
        outdir = os.path.dirname(output) or "."
        os.makedirs(outdir, exist_ok=True)

        start_time = time.perf_counter()
        histograms, summary = process_files(files, config)
        wall_time = time.perf_counter() - start_time

        write_histograms(output, histograms)
        if config["analysis"]["make_plots"]:
            plot_histograms(histograms, outdir)
    except AnalysisError as e:
        print(f"[ERROR] {e}")
        return 1

    # Final summary
    print(f"Events read: {summary.n_read}")
    print(f"Events with a Higgs: {summary.n_accepted}")
    print(f"Events skipped (no Higgs): {summary.n_skipped}")
    print(f"Sum of weights: {summary.sum_weights:g}")
    print(f"Njets entries: {histograms[NJETS_EXCL].entries} (excl), {histograms[NJETS_INCL].entries} (incl)")
    print(f"Total wall time: {wall_time:.2f} s")
    if wall_time > 0:
        print(f"Average processing rate: {summary.n_accepted / wall_time:.1f} accepted events/s ({summary.n_read / wall_time:.1f} read/s)")
    print(f"Saved outputs to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
