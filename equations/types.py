"""
Equation Types Module
=====================

Kinds of elements, variables and equations of the AC equation system.
The declaration order of each enum is the order used to number variables
and equations of the same element.
"""

from enum import Enum


class ElementType(Enum):
    BUS = 0
    BRANCH = 1
    SHUNT_COMPENSATOR = 2


class VariableType(Enum):
    BUS_V = ("v", ElementType.BUS)
    BUS_PHI = ("phi", ElementType.BUS)
    BRANCH_RHO1 = ("r1", ElementType.BRANCH)
    BRANCH_ALPHA1 = ("a1", ElementType.BRANCH)
    SHUNT_B = ("b", ElementType.SHUNT_COMPENSATOR)

    def __init__(self, symbol: str, element_type: ElementType) -> None:
        self.symbol = symbol
        self.element_type = element_type


class EquationType(Enum):
    BUS_TARGET_P = ("bus_p", ElementType.BUS)
    BUS_TARGET_Q = ("bus_q", ElementType.BUS)
    BUS_TARGET_V = ("bus_v", ElementType.BUS)
    BUS_TARGET_PHI = ("bus_phi", ElementType.BUS)
    BRANCH_TARGET_RHO1 = ("branch_rho1", ElementType.BRANCH)
    BRANCH_TARGET_ALPHA1 = ("branch_alpha1", ElementType.BRANCH)
    SHUNT_TARGET_B = ("shunt_b", ElementType.SHUNT_COMPENSATOR)

    def __init__(self, symbol: str, element_type: ElementType) -> None:
        self.symbol = symbol
        self.element_type = element_type


def _ordinals(enum_cls) -> dict:
    return {member: i for i, member in enumerate(enum_cls)}


VARIABLE_TYPE_ORDER = _ordinals(VariableType)
EQUATION_TYPE_ORDER = _ordinals(EquationType)
