"""
Solver Status Module
====================

Outcome of one AC solver run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from core.per_unit import SB


class AcSolverStatus(Enum):
    CONVERGED = "CONVERGED"
    MAX_ITERATION_REACHED = "MAX_ITERATION_REACHED"
    SOLVER_FAILED = "SOLVER_FAILED"
    NO_CALCULATION = "NO_CALCULATION"
    UNREALISTIC_STATE = "UNREALISTIC_STATE"


@dataclass(frozen=True)
class AcSolverResult:
    """
    Result of one AC solver run.

    Attributes
    ----------
    status : AcSolverStatus
        Terminal state of the run.
    iterations : int
        Number of corrections applied.
    slack_bus_active_power_mismatch : float
        Calculated minus scheduled slack bus active power, in per-unit.
    mismatch_norms : Tuple[float, ...]
        Max-abs mismatch before each correction and at the final state.
    """
    status: AcSolverStatus
    iterations: int
    slack_bus_active_power_mismatch: float
    mismatch_norms: Tuple[float, ...] = field(default=())

    @property
    def converged(self) -> bool:
        return self.status is AcSolverStatus.CONVERGED

    @property
    def slack_bus_active_power_mismatch_mw(self) -> float:
        return self.slack_bus_active_power_mismatch * SB
