"""
Equation Term Module
====================

Abstract equation term and the generic terms shared by every equation
system.

A term is a nonlinear function of a few variables. It reads the variable
values pushed by ``EquationSystem.update`` and returns its value and its
partial derivatives. Equations are sums of terms.
"""

from abc import ABC, abstractmethod
from typing import List

from equations.types import ElementType
from equations.variable import Variable


class EquationTerm(ABC):
    """
    Abstract equation term.

    Attributes
    ----------
    equation : Equation or None
        Equation the term was added to. None for attached terms.
    """

    def __init__(self) -> None:
        self._active = True
        self.equation = None
        self._equation_system = None

    @property
    def active(self) -> bool:
        return self._active

    @active.setter
    def active(self, active: bool) -> None:
        if self._active == active:
            return
        self._active = active
        if self._equation_system is not None:
            self._equation_system.notify_term_change(self)

    @property
    @abstractmethod
    def variables(self) -> List[Variable]:
        """Variables the term depends on."""

    @property
    @abstractmethod
    def element_type(self) -> ElementType:
        """Type of the network element contributing the term."""

    @property
    @abstractmethod
    def element_num(self) -> int:
        """Number of the network element contributing the term."""

    @abstractmethod
    def eval(self) -> float:
        """Evaluate the term at the current variable values."""

    @abstractmethod
    def der(self, variable: Variable) -> float:
        """Partial derivative with respect to ``variable``."""

    def rhs(self) -> float:
        """Constant part of the term, moved to the target side."""
        return 0.0

    def name(self) -> str:
        return type(self).__name__

    def __repr__(self) -> str:
        return f"{self.name()}({self.element_type.name.lower()}{self.element_num})"


class VariableEquationTerm(EquationTerm):
    """Term equal to a single variable."""

    def __init__(self, variable: Variable) -> None:
        super().__init__()
        self.variable = variable

    @property
    def variables(self) -> List[Variable]:
        return [self.variable]

    @property
    def element_type(self) -> ElementType:
        return self.variable.element_type

    @property
    def element_num(self) -> int:
        return self.variable.element_num

    def eval(self) -> float:
        return self.variable.value

    def der(self, variable: Variable) -> float:
        if variable is self.variable:
            return 1.0
        raise ValueError(f"Unknown variable {variable}")


class MultiplyByScalarEquationTerm(EquationTerm):
    """Term scaling another term by a constant."""

    def __init__(self, term: EquationTerm, scalar: float) -> None:
        super().__init__()
        self.term = term
        self.scalar = scalar

    @property
    def variables(self) -> List[Variable]:
        return self.term.variables

    @property
    def element_type(self) -> ElementType:
        return self.term.element_type

    @property
    def element_num(self) -> int:
        return self.term.element_num

    def eval(self) -> float:
        return self.scalar * self.term.eval()

    def der(self, variable: Variable) -> float:
        return self.scalar * self.term.der(variable)

    def rhs(self) -> float:
        return self.scalar * self.term.rhs()

    def name(self) -> str:
        return f"{self.scalar:g}*{self.term.name()}"

