"""
Load Flow Result Module
=======================

Result record of one AC load flow run.
"""

from dataclasses import dataclass
from typing import Optional

from core.per_unit import SB
from solver.status import AcSolverStatus


@dataclass(frozen=True)
class AcLoadFlowResult:
    """
    Outcome of one AC load flow run.

    Attributes
    ----------
    network_id : str
    solver_status : AcSolverStatus
        Status of the last solver run, NO_CALCULATION if the network could
        not be solved at all.
    newton_raphson_iterations : int
        Total Newton-Raphson iterations over all runs.
    outer_loop_iterations : int
        Number of unstable outer-loop rounds.
    slack_bus_active_power_mismatch : float
        Remaining slack bus active power mismatch, in per-unit.
    distributed_active_power : float
        Active power moved by the distributed slack loop, in per-unit.
    failure_reason : str or None
        Why no calculation was done.
    """
    network_id: str
    solver_status: AcSolverStatus
    newton_raphson_iterations: int = 0
    outer_loop_iterations: int = 0
    slack_bus_active_power_mismatch: float = 0.0
    distributed_active_power: float = 0.0
    failure_reason: Optional[str] = None

    @property
    def converged(self) -> bool:
        return self.solver_status is AcSolverStatus.CONVERGED

    @property
    def slack_bus_active_power_mismatch_mw(self) -> float:
        return self.slack_bus_active_power_mismatch * SB

    @property
    def distributed_active_power_mw(self) -> float:
        return self.distributed_active_power * SB

    @classmethod
    def no_calculation(cls, network_id: str, reason: str) -> "AcLoadFlowResult":
        return cls(network_id, AcSolverStatus.NO_CALCULATION, failure_reason=reason)
