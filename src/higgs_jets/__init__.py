"""
Higgs + jets kinematic histogramming.

Classifies particles of simulated collision events into a Higgs boson
and jets, applies jet cuts and fills weighted histograms of the Higgs pT,
per-slot jet pT and exclusive/inclusive jet multiplicities.
"""

__version__ = "0.1.0"
