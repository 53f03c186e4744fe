"""
Incremental Control Module
==========================

Shared machinery of the incremental (discrete step) outer loops.

Sensitivities are obtained from one transposed solve of the Jacobian
matrix: for a quantity s of the variables with gradient g,
``w = J^-T g`` and ``ds/dtarget_e = w[e.column]``. Since each controlled
tap ratio, phase shift or shunt susceptance is pinned by its own target
equation, the sensitivity of s to the control is read from the column of
that equation.

Each controller keeps a ControllerContext across rounds. Every reversal
of its moving direction is counted; once the count reaches the maximum,
the controller may only keep moving in its current direction.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from equations.equation import Equation
from equations.equation_term import EquationTerm
from equations.variable import Variable

logger = logging.getLogger(__name__)

# Sensitivities below this value are treated as zero.
SENSI_EPS = 1e-6


class Direction(Enum):
    INCREASE = 1
    DECREASE = -1

    @property
    def allowed_direction(self) -> "AllowedDirection":
        if self is Direction.INCREASE:
            return AllowedDirection.INCREASE
        return AllowedDirection.DECREASE


class AllowedDirection(Enum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    BOTH = "BOTH"

    def allows(self, direction: Direction) -> bool:
        return self is AllowedDirection.BOTH or self is direction.allowed_direction


class ControllerContext:
    """
    Moving history of one discrete controller within a solve.

    Attributes
    ----------
    max_direction_change : int
        Reversals after which the direction is locked.
    allowed_direction : AllowedDirection
    direction_change_count : int
    previous_direction : Direction or None
    """

    def __init__(self, max_direction_change: int) -> None:
        self.max_direction_change = max_direction_change
        self.allowed_direction = AllowedDirection.BOTH
        self.direction_change_count = 0
        self.previous_direction: Optional[Direction] = None

    def update_allowed_direction(self, direction: Direction) -> None:
        """Record a move in ``direction``."""
        if self.previous_direction is not None and direction is not self.previous_direction:
            self.direction_change_count += 1
            if self.direction_change_count >= self.max_direction_change:
                self.allowed_direction = direction.allowed_direction
        self.previous_direction = direction


def calculate_sensitivities(
    jacobian,
    equation_system,
    functions: Sequence[Union[EquationTerm, Variable]],
) -> NDArray[np.float64]:
    """
    Sensitivities of several quantities to every equation target.

    Parameters
    ----------
    jacobian : JacobianMatrix
        Jacobian at the current state.
    equation_system : EquationSystem
    functions : Sequence[EquationTerm or Variable]
        Quantities to differentiate.

    Returns
    -------
    NDArray[np.float64]
        Matrix with one row per active equation column and one column per
        function: ``result[e.column, k] = d functions[k] / d target_e``.
    """
    n = len(equation_system.index.sorted_variables())
    gradients = np.zeros((n, len(functions)))
    for k, f in enumerate(functions):
        if isinstance(f, Variable):
            if f.row >= 0:
                gradients[f.row, k] = 1.0
        else:
            for v in f.variables:
                if v.row >= 0:
                    gradients[v.row, k] += f.der(v)
    if n == 0 or not functions:
        return gradients
    return np.atleast_2d(jacobian.solve_transposed(gradients).reshape(n, len(functions)))


def sensitivity(sensitivities: NDArray[np.float64], equation: Equation, k: int) -> float:
    if equation.column < 0:
        return 0.0
    return float(sensitivities[equation.column, k])


@dataclass
class DiscreteController:
    """
    One discrete control moved step by step.

    Attributes
    ----------
    id : str
        Controller id, keys its ControllerContext.
    position : Callable[[], int]
    low_position, high_position : int
    value_at : Callable[[int], float]
        Control value (ratio, phase shift or susceptance) at a position.
    move_to : Callable[[int], None]
        Applies a new position to the network.
    sensitivity : float
        d(controlled quantity) / d(control value).
    context : ControllerContext
    """
    id: str
    position: Callable[[], int]
    low_position: int
    high_position: int
    value_at: Callable[[int], float]
    move_to: Callable[[int], None]
    sensitivity: float
    context: ControllerContext


def _next_step(controller: DiscreteController, remaining: float):
    """Position and controlled-quantity change of the next step towards ``remaining``."""
    position = controller.position()
    candidates = []
    for step in (1, -1):
        p = position + step
        if controller.low_position <= p <= controller.high_position:
            dq = controller.sensitivity * (controller.value_at(p) - controller.value_at(position))
            if dq * remaining > 0:
                candidates.append((p, dq))
    if not candidates:
        return None
    return candidates[0]


def adjust_with_steps(controllers: List[DiscreteController], remaining: float,
                      max_steps: int) -> int:
    """
    Move discrete controllers one step at a time towards a correction.

    Controllers are visited in turn, each moving at most one step per pass
    and at most ``max_steps`` steps in total. A step is taken only when the
    remaining correction is at least half the change it produces, and only
    in a direction allowed by the controller context.

    Parameters
    ----------
    controllers : List[DiscreteController]
        Controllers acting on the same controlled quantity.
    remaining : float
        Desired change of the controlled quantity.
    max_steps : int
        Maximum number of steps per controller.

    Returns
    -------
    int
        Total number of steps taken.
    """
    steps_done = {c.id: 0 for c in controllers}
    total = 0
    moved = True
    while moved:
        moved = False
        for controller in controllers:
            if steps_done[controller.id] >= max_steps:
                continue
            if abs(controller.sensitivity) < SENSI_EPS:
                continue
            step = _next_step(controller, remaining)
            if step is None:
                continue
            position, dq = step
            if abs(remaining) < abs(dq) / 2:
                continue
            direction = Direction.INCREASE if position > controller.position() else Direction.DECREASE
            if not controller.context.allowed_direction.allows(direction):
                logger.debug("Controller '%s' locked to %s", controller.id,
                             controller.context.allowed_direction.value)
                continue
            controller.context.update_allowed_direction(direction)
            controller.move_to(position)
            remaining -= dq
            steps_done[controller.id] += 1
            total += 1
            moved = True
    return total
