"""
AC Equation Terms Module
========================

Power flow terms of the AC equation system.

Closed branch (pi model with ratio rho1 and phase shift alpha1 on side 1):

    y = 1 / |r + jx|,  ksi = atan2(r, x)

    theta1 = ksi - a1 + ph2 - ph1
    P1 = r1 V1 (g1 r1 V1 + y r1 V1 sin(ksi) - y V2 sin(theta1))
    Q1 = r1 V1 (-b1 r1 V1 + y r1 V1 cos(ksi) - y V2 cos(theta1))

    theta2 = ksi + a1 - ph2 + ph1
    P2 = V2 (g2 V2 - y r1 V1 sin(theta2) + y V2 sin(ksi))
    Q2 = V2 (-b2 V2 - y r1 V1 cos(theta2) + y V2 cos(ksi))

P and Q are the flows leaving the bus into the branch. Shunts draw
P = G V^2 and Q = -B V^2 from their bus.

The ratio and phase shift are variables for branches whose tap changer is
controlled, and constants read from the branch otherwise.
"""

import math
from abc import abstractmethod
from typing import List, Optional

from equations.equation_term import EquationTerm
from equations.types import ElementType
from equations.variable import Variable


class AbstractClosedBranchAcFlowEquationTerm(EquationTerm):
    """
    Base class of the flow terms of a closed branch.

    Parameters
    ----------
    branch : LfBranch
        Branch whose parameters are read at every evaluation.
    v1, v2, ph1, ph2 : Variable
        Voltage magnitude and angle variables of both buses.
    r1 : Variable, optional
        Ratio variable, if the ratio is controlled.
    a1 : Variable, optional
        Phase shift variable, if the phase shift is controlled.
    """

    def __init__(self, branch, v1: Variable, v2: Variable, ph1: Variable, ph2: Variable,
                 r1: Optional[Variable] = None, a1: Optional[Variable] = None) -> None:
        super().__init__()
        self.branch = branch
        self.v1_var = v1
        self.v2_var = v2
        self.ph1_var = ph1
        self.ph2_var = ph2
        self.r1_var = r1
        self.a1_var = a1
        self._variables = [v for v in (v1, v2, ph1, ph2, r1, a1) if v is not None]

    @property
    def variables(self) -> List[Variable]:
        return self._variables

    @property
    def element_type(self) -> ElementType:
        return ElementType.BRANCH

    @property
    def element_num(self) -> int:
        return self.branch.num

    # admittance

    @property
    def y(self) -> float:
        return 1.0 / math.hypot(self.branch.r, self.branch.x)

    @property
    def ksi(self) -> float:
        return math.atan2(self.branch.r, self.branch.x)

    # state

    def v1(self) -> float:
        return self.v1_var.value

    def v2(self) -> float:
        return self.v2_var.value

    def ph1(self) -> float:
        return self.ph1_var.value

    def ph2(self) -> float:
        return self.ph2_var.value

    def r1(self) -> float:
        return self.r1_var.value if self.r1_var is not None else self.branch.rho1

    def a1(self) -> float:
        return self.a1_var.value if self.a1_var is not None else self.branch.alpha1

    def theta1(self) -> float:
        return self.ksi - self.a1() + self.ph2() - self.ph1()

    def theta2(self) -> float:
        return self.ksi + self.a1() - self.ph2() + self.ph1()

    def der(self, variable: Variable) -> float:
        if variable is self.v1_var:
            return self.dv1()
        if variable is self.v2_var:
            return self.dv2()
        if variable is self.ph1_var:
            return self.dph1()
        if variable is self.ph2_var:
            return self.dph2()
        if variable is self.r1_var:
            return self.dr1()
        if variable is self.a1_var:
            return self.da1()
        raise ValueError(f"Unknown variable {variable}")

    @abstractmethod
    def dv1(self) -> float: ...

    @abstractmethod
    def dv2(self) -> float: ...

    @abstractmethod
    def dph1(self) -> float: ...

    @abstractmethod
    def dph2(self) -> float: ...

    @abstractmethod
    def dr1(self) -> float: ...

    @abstractmethod
    def da1(self) -> float: ...


class ClosedBranchSide1ActiveFlowEquationTerm(AbstractClosedBranchAcFlowEquationTerm):

    def eval(self) -> float:
        b = self.branch
        r1, v1 = self.r1(), self.v1()
        return r1 * v1 * (b.g1 * r1 * v1 + self.y * r1 * v1 * math.sin(self.ksi)
                          - self.y * self.v2() * math.sin(self.theta1()))

    def dv1(self) -> float:
        b = self.branch
        r1, v1 = self.r1(), self.v1()
        return r1 * (2 * b.g1 * r1 * v1 + 2 * self.y * r1 * v1 * math.sin(self.ksi)
                     - self.y * self.v2() * math.sin(self.theta1()))

    def dv2(self) -> float:
        return -self.y * self.r1() * self.v1() * math.sin(self.theta1())

    def dph1(self) -> float:
        return self.y * self.r1() * self.v1() * self.v2() * math.cos(self.theta1())

    def dph2(self) -> float:
        return -self.dph1()

    def da1(self) -> float:
        return self.dph1()

    def dr1(self) -> float:
        b = self.branch
        r1, v1 = self.r1(), self.v1()
        return v1 * (2 * b.g1 * r1 * v1 + 2 * self.y * r1 * v1 * math.sin(self.ksi)
                     - self.y * self.v2() * math.sin(self.theta1()))


class ClosedBranchSide1ReactiveFlowEquationTerm(AbstractClosedBranchAcFlowEquationTerm):

    def eval(self) -> float:
        b = self.branch
        r1, v1 = self.r1(), self.v1()
        return r1 * v1 * (-b.b1 * r1 * v1 + self.y * r1 * v1 * math.cos(self.ksi)
                          - self.y * self.v2() * math.cos(self.theta1()))

    def dv1(self) -> float:
        b = self.branch
        r1, v1 = self.r1(), self.v1()
        return r1 * (-2 * b.b1 * r1 * v1 + 2 * self.y * r1 * v1 * math.cos(self.ksi)
                     - self.y * self.v2() * math.cos(self.theta1()))

    def dv2(self) -> float:
        return -self.y * self.r1() * self.v1() * math.cos(self.theta1())

    def dph1(self) -> float:
        return -self.y * self.r1() * self.v1() * self.v2() * math.sin(self.theta1())

    def dph2(self) -> float:
        return -self.dph1()

    def da1(self) -> float:
        return self.dph1()

    def dr1(self) -> float:
        b = self.branch
        r1, v1 = self.r1(), self.v1()
        return v1 * (-2 * b.b1 * r1 * v1 + 2 * self.y * r1 * v1 * math.cos(self.ksi)
                     - self.y * self.v2() * math.cos(self.theta1()))


class ClosedBranchSide2ActiveFlowEquationTerm(AbstractClosedBranchAcFlowEquationTerm):

    def eval(self) -> float:
        b = self.branch
        v2 = self.v2()
        return v2 * (b.g2 * v2 - self.y * self.r1() * self.v1() * math.sin(self.theta2())
                     + self.y * v2 * math.sin(self.ksi))

    def dv1(self) -> float:
        return -self.y * self.r1() * self.v2() * math.sin(self.theta2())

    def dv2(self) -> float:
        b = self.branch
        v2 = self.v2()
        return (2 * b.g2 * v2 - self.y * self.r1() * self.v1() * math.sin(self.theta2())
                + 2 * self.y * v2 * math.sin(self.ksi))

    def dph1(self) -> float:
        return -self.y * self.r1() * self.v1() * self.v2() * math.cos(self.theta2())

    def dph2(self) -> float:
        return -self.dph1()

    def da1(self) -> float:
        return self.dph1()

    def dr1(self) -> float:
        return -self.y * self.v1() * self.v2() * math.sin(self.theta2())


class ClosedBranchSide2ReactiveFlowEquationTerm(AbstractClosedBranchAcFlowEquationTerm):

    def eval(self) -> float:
        b = self.branch
        v2 = self.v2()
        return v2 * (-b.b2 * v2 - self.y * self.r1() * self.v1() * math.cos(self.theta2())
                     + self.y * v2 * math.cos(self.ksi))

    def dv1(self) -> float:
        return -self.y * self.r1() * self.v2() * math.cos(self.theta2())

    def dv2(self) -> float:
        b = self.branch
        v2 = self.v2()
        return (-2 * b.b2 * v2 - self.y * self.r1() * self.v1() * math.cos(self.theta2())
                + 2 * self.y * v2 * math.cos(self.ksi))

    def dph1(self) -> float:
        return self.y * self.r1() * self.v1() * self.v2() * math.sin(self.theta2())

    def dph2(self) -> float:
        return -self.dph1()

    def da1(self) -> float:
        return self.dph1()

    def dr1(self) -> float:
        return -self.y * self.v1() * self.v2() * math.cos(self.theta2())


class ClosedBranchCurrentMagnitudeEquationTerm(EquationTerm):
    """
    Current magnitude |I| = sqrt(P^2 + Q^2) / V on one side of a branch,
    built from the active and reactive flow terms of that side.
    """

    def __init__(self, p: AbstractClosedBranchAcFlowEquationTerm,
                 q: AbstractClosedBranchAcFlowEquationTerm, v: Variable) -> None:
        super().__init__()
        self.p = p
        self.q = q
        self.v_var = v

    @property
    def variables(self) -> List[Variable]:
        return self.p.variables

    @property
    def element_type(self) -> ElementType:
        return ElementType.BRANCH

    @property
    def element_num(self) -> int:
        return self.p.element_num

    def eval(self) -> float:
        return math.hypot(self.p.eval(), self.q.eval()) / self.v_var.value

    def der(self, variable: Variable) -> float:
        p, q, v = self.p.eval(), self.q.eval(), self.v_var.value
        s = math.hypot(p, q)
        if s == 0.0:
            return 0.0
        d = (p * self.p.der(variable) + q * self.q.der(variable)) / (s * v)
        if variable is self.v_var:
            d -= s / (v * v)
        return d


class BusVoltageSquaredEquationTerm(EquationTerm):
    """V^2 of a bus."""

    def __init__(self, bus_num: int, v: Variable) -> None:
        super().__init__()
        self.bus_num = bus_num
        self.v_var = v

    @property
    def variables(self) -> List[Variable]:
        return [self.v_var]

    @property
    def element_type(self) -> ElementType:
        return ElementType.BUS

    @property
    def element_num(self) -> int:
        return self.bus_num

    def eval(self) -> float:
        return self.v_var.value ** 2

    def der(self, variable: Variable) -> float:
        if variable is self.v_var:
            return 2 * self.v_var.value
        raise ValueError(f"Unknown variable {variable}")


class ShuntCompensatorReactiveFlowEquationTerm(EquationTerm):
    """
    Reactive power Q = -B V^2 drawn by a shunt.

    B is a variable for voltage-controlling shunts and read from the shunt
    section otherwise.
    """

    def __init__(self, shunt, v: Variable, b: Optional[Variable] = None) -> None:
        super().__init__()
        self.shunt = shunt
        self.v_var = v
        self.b_var = b
        self._variables = [v] if b is None else [v, b]

    @property
    def variables(self) -> List[Variable]:
        return self._variables

    @property
    def element_type(self) -> ElementType:
        return ElementType.SHUNT_COMPENSATOR

    @property
    def element_num(self) -> int:
        return self.shunt.num

    def b(self) -> float:
        return self.b_var.value if self.b_var is not None else self.shunt.b

    def eval(self) -> float:
        return -self.b() * self.v_var.value ** 2

    def der(self, variable: Variable) -> float:
        if variable is self.v_var:
            return -2 * self.b() * self.v_var.value
        if variable is self.b_var:
            return -self.v_var.value ** 2
        raise ValueError(f"Unknown variable {variable}")
