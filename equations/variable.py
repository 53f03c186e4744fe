"""
Variable Module
===============

Unknown of the equation system, identified by (element number, type).
"""

import math

from equations.types import VARIABLE_TYPE_ORDER, ElementType, VariableType


class Variable:
    """
    Unknown of the equation system.

    Attributes
    ----------
    element_num : int
        Number of the network element owning the variable.
    type : VariableType
        Kind of unknown.
    row : int
        Position in the state vector, -1 while the variable is not part of
        the solve. Assigned by the equation system index.
    value : float
        Current value. Kept while the variable is inactive so that it can
        be reactivated with its last value.
    """

    __slots__ = ("element_num", "type", "row", "value")

    def __init__(self, element_num: int, variable_type: VariableType) -> None:
        self.element_num = element_num
        self.type = variable_type
        self.row = -1
        self.value = math.nan

    @property
    def element_type(self) -> ElementType:
        return self.type.element_type

    @property
    def active(self) -> bool:
        return self.row >= 0

    def sort_key(self):
        return (self.element_type.value, self.element_num, VARIABLE_TYPE_ORDER[self.type])

    def __repr__(self) -> str:
        return f"Variable({self.type.symbol}{self.element_num}, row={self.row})"
