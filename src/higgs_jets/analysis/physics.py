"""
Kinematic utilities for Higgs + jets analyses.

This module provides the transverse momentum and pseudorapidity of
four-momenta, both as NumPy-based array functions and through the
immutable FourVector used by the per-event classification.
"""

from dataclasses import dataclass

import numpy as np


def transverse_momentum(px, py):
    """
    Compute pT = sqrt(px^2 + py^2).

    Parameters
    ----------
    px, py : array-like (NumPy or Awkward) or float
        Momentum components transverse to the beam axis [GeV].

    Returns
    -------
    array-like
        Transverse momentum with the same structure as the inputs.
    """
    return np.sqrt(px**2 + py**2)


def pseudorapidity(px, py, pz):
    """
    Compute eta = asinh(pz / pT).

    Particles on the beam axis (pT == 0) get +inf or -inf according to
    the sign of pz, and 0 when pz is also zero. No exception is raised.

    Parameters
    ----------
    px, py, pz : array-like (NumPy or Awkward) or float
        Momentum components [GeV].

    Returns
    -------
    array-like
        Pseudorapidity with the same structure as the inputs.
    """
    pt = transverse_momentum(px, py)
    with np.errstate(divide="ignore", invalid="ignore"):
        eta = np.arcsinh(pz / pt)
    # 0/0 is the only case that yields nan
    return np.nan_to_num(eta, nan=0.0, posinf=np.inf, neginf=-np.inf)


@dataclass(frozen=True)
class FourVector:
    """Four-momentum (px, py, pz, E) of a single particle in GeV."""

    px: float
    py: float
    pz: float
    E: float

    @property
    def pt(self) -> float:
        return float(transverse_momentum(self.px, self.py))

    @property
    def eta(self) -> float:
        return float(pseudorapidity(self.px, self.py, self.pz))
