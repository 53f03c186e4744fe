"""
Equation Module
===============

Equation of the system, identified by (element number, type), holding an
ordered list of terms.
"""

from typing import List

from equations.equation_term import EquationTerm
from equations.events import EquationEventType
from equations.types import EQUATION_TYPE_ORDER, ElementType, EquationType


class Equation:
    """
    Equation ``sum(terms) = target - rhs``.

    Attributes
    ----------
    element_num : int
        Number of the network element owning the equation.
    type : EquationType
        Kind of equation.
    column : int
        Position in the target and equation vectors, -1 while inactive.
        Assigned by the equation system index.
    """

    def __init__(self, element_num: int, equation_type: EquationType, equation_system) -> None:
        self.element_num = element_num
        self.type = equation_type
        self.column = -1
        self._equation_system = equation_system
        self._active = True
        self._terms: List[EquationTerm] = []

    @property
    def element_type(self) -> ElementType:
        return self.type.element_type

    @property
    def active(self) -> bool:
        return self._active

    @active.setter
    def active(self, active: bool) -> None:
        if self._active == active:
            return
        self._active = active
        self._equation_system.notify_equation_change(
            self, EquationEventType.ACTIVATED if active else EquationEventType.DEACTIVATED
        )

    @property
    def terms(self) -> List[EquationTerm]:
        return list(self._terms)

    def add_term(self, term: EquationTerm) -> "Equation":
        if term.equation is not None:
            raise ValueError(f"{term} already belongs to an equation")
        term.equation = self
        term._equation_system = self._equation_system
        self._terms.append(term)
        self._equation_system.notify_equation_change(self, EquationEventType.TERM_ADDED)
        return self

    def add_terms(self, terms: List[EquationTerm]) -> "Equation":
        for term in terms:
            self.add_term(term)
        return self

    def eval(self) -> float:
        """Sum of the active terms at the current variable values."""
        value = 0.0
        for term in self._terms:
            if term.active:
                value += term.eval()
        return value

    def rhs(self) -> float:
        value = 0.0
        for term in self._terms:
            if term.active:
                value += term.rhs()
        return value

    def sort_key(self):
        return (self.element_type.value, self.element_num, EQUATION_TYPE_ORDER[self.type])

    def __repr__(self) -> str:
        return (f"Equation({self.type.symbol}{self.element_num}, column={self.column}, "
                f"active={self._active})")
