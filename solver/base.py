"""
AC Solver Base Module
=====================

Abstract AC solver and a registry of named solver implementations.

Every solver works on the same objects: the network, the equation system
with its state vector, the Jacobian matrix and the target and equation
vectors. It returns an AcSolverResult and never raises on numerical
failure.
"""

from abc import ABC, abstractmethod
from typing import Dict, Type

from core.parameters import LoadFlowParameters
from solver.status import AcSolverResult


class AcSolver(ABC):
    """
    Abstract AC solver.

    Parameters
    ----------
    network : LfNetwork
    parameters : LoadFlowParameters
    equation_system : AcEquationSystem
    jacobian : JacobianMatrix
    target_vector : TargetVector
    equation_vector : EquationVector
    """

    def __init__(self, network, parameters: LoadFlowParameters, equation_system, jacobian,
                 target_vector, equation_vector) -> None:
        self.network = network
        self.parameters = parameters
        self.equation_system = equation_system
        self.jacobian = jacobian
        self.target_vector = target_vector
        self.equation_vector = equation_vector

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def run(self) -> AcSolverResult:
        """Solve from the current state of the equation system."""


_SOLVERS: Dict[str, Type[AcSolver]] = {}


def register_solver(name: str, solver_class: Type[AcSolver]) -> None:
    """Register a solver implementation under a name usable in parameters."""
    if not issubclass(solver_class, AcSolver):
        raise TypeError(f"{solver_class} is not an AcSolver")
    _SOLVERS[name] = solver_class


def create_solver(name: str, network, parameters, equation_system, jacobian,
                  target_vector, equation_vector) -> AcSolver:
    """
    Instantiate a registered solver.

    Raises
    ------
    ValueError
        If no solver is registered under ``name``.
    """
    try:
        solver_class = _SOLVERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown AC solver '{name}', registered: {sorted(_SOLVERS)}"
        ) from None
    return solver_class(network, parameters, equation_system, jacobian,
                        target_vector, equation_vector)
