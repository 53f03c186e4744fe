"""
Equation System Index Module
============================

Numbering of the active equations and variables.

Active equations are sorted by (element type, element number, equation
type) and numbered 0..n-1 (their column). Active variables are those
referenced by an active term of an active equation; they are sorted the
same way and numbered 0..m-1 (their row). Everything else gets -1.
The numbering is recomputed lazily after any structural change.
"""

import logging
from typing import List

from equations.equation import Equation
from equations.events import EquationEventType, EquationSystemListener
from equations.variable import Variable

logger = logging.getLogger(__name__)


class EquationSystemIndex(EquationSystemListener):

    def __init__(self, equation_system) -> None:
        self._equation_system = equation_system
        self._sorted_equations: List[Equation] = []
        self._sorted_variables: List[Variable] = []
        self._valid = False
        equation_system.add_listener(self)

    def on_equation_change(self, equation, event_type: EquationEventType) -> None:
        self._valid = False

    def on_term_change(self, term) -> None:
        self._valid = False

    def _update(self) -> None:
        equations = sorted((eq for eq in self._equation_system.equations if eq.active),
                           key=Equation.sort_key)
        variables = {}
        for eq in equations:
            for term in eq.terms:
                if term.active:
                    for v in term.variables:
                        variables[id(v)] = v
        sorted_variables = sorted(variables.values(), key=Variable.sort_key)

        for eq in self._equation_system.equations:
            eq.column = -1
        for v in self._equation_system.variables:
            v.row = -1
        for column, eq in enumerate(equations):
            eq.column = column
        for row, v in enumerate(sorted_variables):
            v.row = row

        self._sorted_equations = equations
        self._sorted_variables = sorted_variables
        self._valid = True
        logger.debug("Equation system index updated: %d equations, %d variables",
                     len(equations), len(sorted_variables))

    def sorted_equations(self) -> List[Equation]:
        if not self._valid:
            self._update()
        return self._sorted_equations

    def sorted_variables(self) -> List[Variable]:
        if not self._valid:
            self._update()
        return self._sorted_variables
