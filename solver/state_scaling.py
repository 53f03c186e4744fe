"""
State Vector Scaling Module
===========================

Damping strategies applied to the Newton-Raphson correction before it is
added to the state vector.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Callable

import numpy as np
from numpy.typing import NDArray

from core.parameters import StateVectorScalingMode
from equations.types import VariableType

logger = logging.getLogger(__name__)

DEFAULT_MAX_DV = 0.1
DEFAULT_MAX_DPHI = math.radians(10)
DEFAULT_LINE_SEARCH_MAX_ITERATIONS = 10


class StateVectorScaling(ABC):

    @abstractmethod
    def apply(
        self,
        dx: NDArray[np.float64],
        equation_system,
        norm: float,
        trial_norm: Callable[[NDArray[np.float64]], float],
    ) -> NDArray[np.float64]:
        """
        Scale a correction.

        Parameters
        ----------
        dx : NDArray[np.float64]
            Full Newton-Raphson correction.
        equation_system : EquationSystem
            Gives the variable type of each row.
        norm : float
            Mismatch norm at the current state.
        trial_norm : Callable
            Mismatch norm after applying a given correction to the current
            state.

        Returns
        -------
        NDArray[np.float64]
            Correction to apply.
        """


class NoStateVectorScaling(StateVectorScaling):

    def apply(self, dx, equation_system, norm, trial_norm):
        return dx


class MaxVoltageChangeStateVectorScaling(StateVectorScaling):
    """Shrink the whole correction so that no |dV| or |dphi| exceeds a bound."""

    def __init__(self, max_dv: float = DEFAULT_MAX_DV, max_dphi: float = DEFAULT_MAX_DPHI) -> None:
        self.max_dv = max_dv
        self.max_dphi = max_dphi

    def apply(self, dx, equation_system, norm, trial_norm):
        scale = 1.0
        for v in equation_system.index.sorted_variables():
            step = abs(dx[v.row])
            if v.type is VariableType.BUS_V and step > self.max_dv:
                scale = min(scale, self.max_dv / step)
            elif v.type is VariableType.BUS_PHI and step > self.max_dphi:
                scale = min(scale, self.max_dphi / step)
        if scale < 1.0:
            logger.debug("Newton-Raphson correction scaled by %.4f", scale)
        return dx * scale


class LineSearchStateVectorScaling(StateVectorScaling):
    """
    Halve the correction while it does not reduce the mismatch norm.

    At most ``max_iterations`` steps are tried. If none of them reduces the
    norm, the last tried step is kept.
    """

    def __init__(self, max_iterations: int = DEFAULT_LINE_SEARCH_MAX_ITERATIONS) -> None:
        self.max_iterations = max_iterations

    def apply(self, dx, equation_system, norm, trial_norm):
        step = 1.0
        for attempt in range(self.max_iterations):
            if trial_norm(dx * step) < norm or attempt == self.max_iterations - 1:
                break
            step /= 2
        if step < 1.0:
            logger.debug("Line search step %.4g", step)
        return dx * step


def create_state_vector_scaling(mode: StateVectorScalingMode) -> StateVectorScaling:
    if mode is StateVectorScalingMode.MAX_VOLTAGE_CHANGE:
        return MaxVoltageChangeStateVectorScaling()
    if mode is StateVectorScalingMode.LINE_SEARCH:
        return LineSearchStateVectorScaling()
    return NoStateVectorScaling()
