"""
Equations Module
================

This module provides the equation system abstraction of the load flow.

Classes
-------
Variable
    Unknown identified by (element number, variable type).
Equation
    Sum of equation terms constrained to a target.
EquationTerm
    Nonlinear function of a few variables with its derivatives.
EquationSystem
    Equations, variables and attached terms of one run.
StateVector, TargetVector, EquationVector
    Dense vectors indexed by variable row or equation column.
JacobianMatrix
    Sparse Jacobian with cached LU factorisation.
AcEquationSystem
    Equation system of an AC load flow.

Functions
---------
create_ac_equation_system
    Create the AC equation system of a network.
"""

from equations.types import ElementType, VariableType, EquationType
from equations.variable import Variable
from equations.equation_term import (
    EquationTerm,
    VariableEquationTerm,
    MultiplyByScalarEquationTerm,
)
from equations.equation import Equation
from equations.events import EquationEventType, EquationSystemListener
from equations.equation_system import EquationSystem
from equations.vectors import StateVector, TargetVector, EquationVector
from equations.jacobian import JacobianMatrix, JacobianStatus
from equations.ac_system import (
    AcEquationSystem,
    AcEquationSystemUpdater,
    BranchTerms,
    create_ac_equation_system,
    create_target_function,
)

__all__ = [
    "ElementType",
    "VariableType",
    "EquationType",
    "Variable",
    "EquationTerm",
    "VariableEquationTerm",
    "MultiplyByScalarEquationTerm",
    "Equation",
    "EquationEventType",
    "EquationSystemListener",
    "EquationSystem",
    "StateVector",
    "TargetVector",
    "EquationVector",
    "JacobianMatrix",
    "JacobianStatus",
    "AcEquationSystem",
    "AcEquationSystemUpdater",
    "BranchTerms",
    "create_ac_equation_system",
    "create_target_function",
]
