"""
Stopping Criteria Module
========================

Convergence tests of the Newton-Raphson iteration, applied to the
mismatch vector (target minus equation values).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict

import numpy as np
from numpy.typing import NDArray

from core.parameters import LoadFlowParameters, StoppingCriteriaType
from core.per_unit import SB
from equations.types import EquationType


@dataclass(frozen=True)
class StoppingCriteriaResult:
    stop: bool
    norm: float


class StoppingCriteria(ABC):
    """Decide whether a mismatch vector is small enough to stop."""

    @abstractmethod
    def test(self, mismatch: NDArray[np.float64], equation_system) -> StoppingCriteriaResult:
        ...


def _max_abs(mismatch: NDArray[np.float64]) -> float:
    return float(np.max(np.abs(mismatch))) if len(mismatch) else 0.0


class DefaultStoppingCriteria(StoppingCriteria):
    """Every equation mismatch below one per-unit epsilon."""

    def __init__(self, convergence_epsilon: float = 1e-4) -> None:
        self.convergence_epsilon = convergence_epsilon

    def test(self, mismatch, equation_system) -> StoppingCriteriaResult:
        norm = _max_abs(mismatch)
        return StoppingCriteriaResult(norm < self.convergence_epsilon, norm)


class PerEquationTypeStoppingCriteria(StoppingCriteria):
    """
    Each equation mismatch below the threshold of its type.

    Parameters
    ----------
    thresholds : Dict[EquationType, float]
        Per-unit threshold per equation type.
    """

    def __init__(self, thresholds: Dict[EquationType, float]) -> None:
        self.thresholds = thresholds

    @classmethod
    def from_parameters(cls, parameters: LoadFlowParameters) -> "PerEquationTypeStoppingCriteria":
        return cls({
            EquationType.BUS_TARGET_P: parameters.max_active_power_mismatch / SB,
            EquationType.BUS_TARGET_Q: parameters.max_reactive_power_mismatch / SB,
            EquationType.BUS_TARGET_V: parameters.max_voltage_mismatch,
            EquationType.BUS_TARGET_PHI: parameters.max_angle_mismatch,
            EquationType.BRANCH_TARGET_RHO1: parameters.max_ratio_mismatch,
            EquationType.BRANCH_TARGET_ALPHA1: parameters.max_angle_mismatch,
            EquationType.SHUNT_TARGET_B: parameters.max_susceptance_mismatch,
        })

    def test(self, mismatch, equation_system) -> StoppingCriteriaResult:
        stop = True
        for eq in equation_system.index.sorted_equations():
            if abs(mismatch[eq.column]) >= self.thresholds[eq.type]:
                stop = False
                break
        return StoppingCriteriaResult(stop, _max_abs(mismatch))


def create_stopping_criteria(parameters: LoadFlowParameters) -> StoppingCriteria:
    if parameters.stopping_criteria is StoppingCriteriaType.PER_EQUATION_TYPE:
        return PerEquationTypeStoppingCriteria.from_parameters(parameters)
    return DefaultStoppingCriteria(parameters.convergence_epsilon)
