"""
Equation System Events Module
=============================

Change notifications of the equation system. The index, the vectors and
the Jacobian matrix listen to them to invalidate their cached state.
"""

from enum import Enum


class EquationEventType(Enum):
    CREATED = "CREATED"
    ACTIVATED = "ACTIVATED"
    DEACTIVATED = "DEACTIVATED"
    TERM_ADDED = "TERM_ADDED"


class EquationSystemListener:
    """Base class of equation system observers. All callbacks are no-ops."""

    def on_equation_change(self, equation, event_type: EquationEventType) -> None:
        pass

    def on_term_change(self, term) -> None:
        pass

    def on_state_update(self) -> None:
        pass
