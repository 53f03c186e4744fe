"""
Equation System Module
======================

This module defines the EquationSystem: the set of typed equations and
variables of one load flow run, plus terms attached outside any equation.

Equations and variables are created once and then toggled, never removed.
Activating or deactivating an equation or a term is the only way outer
loops change what is being solved; every such change is broadcast to the
registered listeners (index, vectors, Jacobian matrix).
"""

import logging
from typing import Dict, List, Optional, Tuple

from equations.equation import Equation
from equations.equation_term import EquationTerm
from equations.events import EquationEventType, EquationSystemListener
from equations.index import EquationSystemIndex
from equations.types import EquationType, VariableType
from equations.variable import Variable
from equations.vectors import StateVector

logger = logging.getLogger(__name__)


class EquationSystem:
    """
    Equations and variables of one load flow run.

    Attributes
    ----------
    index : EquationSystemIndex
        Numbering of the active equations and variables.
    state_vector : StateVector
        Dense values of the active variables.
    """

    def __init__(self) -> None:
        self._equations: Dict[Tuple[int, EquationType], Equation] = {}
        self._variables: Dict[Tuple[int, VariableType], Variable] = {}
        self._attached_terms: List[EquationTerm] = []
        self._listeners: List[EquationSystemListener] = []
        self.index = EquationSystemIndex(self)
        self.state_vector = StateVector(self)

    # =========================================================================
    # Equations and variables
    # =========================================================================

    def create_equation(self, element_num: int, equation_type: EquationType) -> Equation:
        """
        Get the equation of an element, creating it if needed.

        Parameters
        ----------
        element_num : int
            Number of the network element.
        equation_type : EquationType
            Kind of equation.

        Returns
        -------
        Equation
            The same object on every call with the same arguments.
        """
        key = (element_num, equation_type)
        equation = self._equations.get(key)
        if equation is None:
            equation = Equation(element_num, equation_type, self)
            self._equations[key] = equation
            self.notify_equation_change(equation, EquationEventType.CREATED)
        return equation

    def get_equation(self, element_num: int, equation_type: EquationType) -> Optional[Equation]:
        return self._equations.get((element_num, equation_type))

    def has_equation(self, element_num: int, equation_type: EquationType) -> bool:
        return (element_num, equation_type) in self._equations

    def create_variable(self, element_num: int, variable_type: VariableType) -> Variable:
        key = (element_num, variable_type)
        variable = self._variables.get(key)
        if variable is None:
            variable = Variable(element_num, variable_type)
            self._variables[key] = variable
        return variable

    def get_variable(self, element_num: int, variable_type: VariableType) -> Optional[Variable]:
        return self._variables.get((element_num, variable_type))

    def attach(self, term: EquationTerm) -> EquationTerm:
        """
        Register a term that is evaluated but not part of any equation.

        Attached terms expose derived quantities (e.g. branch currents) and
        read the same variable values as equation terms.
        """
        term._equation_system = self
        self._attached_terms.append(term)
        return term

    @property
    def equations(self) -> List[Equation]:
        return list(self._equations.values())

    @property
    def variables(self) -> List[Variable]:
        return list(self._variables.values())

    @property
    def attached_terms(self) -> List[EquationTerm]:
        return list(self._attached_terms)

    # =========================================================================
    # State
    # =========================================================================

    def update(self, state_vector=None) -> None:
        """
        Push the state vector values into the variables read by the terms.

        Parameters
        ----------
        state_vector : StateVector, optional
            Defaults to the system's own state vector.
        """
        if state_vector is None:
            state_vector = self.state_vector
        x = state_vector.array
        for variable in self.index.sorted_variables():
            variable.value = float(x[variable.row])
        for listener in self._listeners:
            listener.on_state_update()

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_listener(self, listener: EquationSystemListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EquationSystemListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_equation_change(self, equation: Equation, event_type: EquationEventType) -> None:
        for listener in self._listeners:
            listener.on_equation_change(equation, event_type)

    def notify_term_change(self, term: EquationTerm) -> None:
        for listener in self._listeners:
            listener.on_term_change(term)

    def __repr__(self) -> str:
        return (f"EquationSystem(equations={len(self._equations)}, "
                f"variables={len(self._variables)})")
