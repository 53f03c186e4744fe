"""
Per-Unit Module
===============

System base and unit conversions shared by the network model, the
equation system and the outer loops.

All active/reactive powers, admittances and voltages inside the solver
are expressed in per-unit of a fixed 100 MVA system base. Voltage
magnitudes are per-unit of each bus' own nominal voltage.
"""

import math

# System base power in MVA.
SB = 100.0


def mw_to_pu(value_mw: float) -> float:
    """Convert an active power in MW (or Mvar) to per-unit."""
    return value_mw / SB


def pu_to_mw(value_pu: float) -> float:
    """Convert a per-unit power to MW (or Mvar)."""
    return value_pu * SB


def kv_to_pu(value_kv: float, nominal_v_kv: float) -> float:
    """Express a voltage difference in kV as per-unit of a nominal voltage."""
    return value_kv / nominal_v_kv


def current_pu_to_ka(value_pu: float, nominal_v_kv: float) -> float:
    """
    Convert a per-unit branch current to kA.

    Parameters
    ----------
    value_pu : float
        Current magnitude in per-unit (|S| / V with S and V in per-unit).
    nominal_v_kv : float
        Nominal voltage of the bus the current is measured at, in kV.
    """
    return value_pu * SB / (math.sqrt(3.0) * nominal_v_kv)
