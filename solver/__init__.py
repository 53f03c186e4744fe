"""
Solver Module
=============

This module provides the AC solvers run between outer-loop rounds.

Classes
-------
AcSolver
    Abstract solver working on the equation system and Jacobian matrix.
NewtonRaphson
    Default Newton-Raphson solver.
AcSolverResult
    Status, iteration count and slack mismatch of one run.

Functions
---------
create_solver
    Instantiate a solver registered by name.
register_solver
    Register an alternative solver implementation.
"""

from solver.status import AcSolverStatus, AcSolverResult
from solver.base import AcSolver, create_solver, register_solver
from solver.newton_raphson import NewtonRaphson, NEWTON_RAPHSON
from solver.stopping_criteria import (
    StoppingCriteria,
    DefaultStoppingCriteria,
    PerEquationTypeStoppingCriteria,
)
from solver.voltage_initializer import (
    VoltageInitializer,
    UniformValueVoltageInitializer,
    PreviousValueVoltageInitializer,
    DcValueVoltageInitializer,
    create_voltage_initializer,
    initialize_variables,
)

__all__ = [
    "AcSolverStatus",
    "AcSolverResult",
    "AcSolver",
    "create_solver",
    "register_solver",
    "NewtonRaphson",
    "NEWTON_RAPHSON",
    "StoppingCriteria",
    "DefaultStoppingCriteria",
    "PerEquationTypeStoppingCriteria",
    "VoltageInitializer",
    "UniformValueVoltageInitializer",
    "PreviousValueVoltageInitializer",
    "DcValueVoltageInitializer",
    "create_voltage_initializer",
    "initialize_variables",
]
