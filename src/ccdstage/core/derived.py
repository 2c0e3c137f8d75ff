"""
Derived quantities computed from staged header columns.

Currently one quantity: the momentum transfer

    Q = 4π · sin(θ) / λ,    λ = 1e10 · h · c / E

with θ the sample angle in degrees, E the beamline energy in eV, h the Planck
constant in eV·s and c the speed of light in m/s, giving λ in Å and Q in Å⁻¹.

The scalar form (``q_value``) is used per file when "Q" is requested as a
field; the expression form (``with_q``) is applied once to the merged table.
Both evaluate the same operations in the same order.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import polars as pl
from scipy import constants
from scipy.constants import physical_constants

from .catalog import BEAMLINE_ENERGY, Q, SAMPLE_THETA

PLANCK_EV_S = physical_constants["Planck constant in eV/Hz"][0]
SPEED_OF_LIGHT = constants.c
ANGSTROM_PER_METER = 1e10

# λ[Å] = HC_EV_ANGSTROM / E[eV]
HC_EV_ANGSTROM = ANGSTROM_PER_METER * PLANCK_EV_S * SPEED_OF_LIGHT
FOUR_PI = 4.0 * math.pi

Q_COLUMN = Q.name
ANGLE_COLUMNS = (SAMPLE_THETA.name, SAMPLE_THETA.key)
ENERGY_COLUMNS = (BEAMLINE_ENERGY.name, BEAMLINE_ENERGY.key)


def wavelength(energy_ev: float) -> float:
    """Photon wavelength in Å for an energy in eV."""
    return HC_EV_ANGSTROM / energy_ev


def q_value(theta_deg: float, energy_ev: float) -> float:
    """
    Momentum transfer in Å⁻¹.

    Example:
        >>> round(q_value(0.5, 500.0), 10)
        0.0044223732
    """
    return FOUR_PI * (math.sin(math.radians(theta_deg)) / wavelength(energy_ev))


def q_expr(theta: str, energy: str) -> pl.Expr:
    """Vectorized Q over two existing columns."""
    lam = pl.lit(HC_EV_ANGSTROM) / pl.col(energy)
    return (pl.lit(FOUR_PI) * (pl.col(theta).radians().sin() / lam)).alias(Q_COLUMN)


def _first_present(columns: Sequence[str], candidates: Sequence[str]) -> Optional[str]:
    for name in candidates:
        if name in columns:
            return name
    return None


def with_q(df: pl.DataFrame) -> pl.DataFrame:
    """
    Append (or refresh) the Q column when angle and energy columns exist.

    Returns the table unchanged otherwise. Null angle or energy gives null Q.
    """
    theta = _first_present(df.columns, ANGLE_COLUMNS)
    energy = _first_present(df.columns, ENERGY_COLUMNS)
    if theta is None or energy is None:
        return df
    return df.lazy().with_columns(q_expr(theta, energy)).collect()
