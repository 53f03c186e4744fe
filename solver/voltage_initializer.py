"""
Voltage Initializer Module
==========================

Initial values of the equation system variables before the first
Newton-Raphson run.

Classes
-------
UniformValueVoltageInitializer
    Flat start: 1 pu (or the voltage target) and 0 rad.
PreviousValueVoltageInitializer
    Voltages stored in the network by a previous solve.
DcValueVoltageInitializer
    Angles from a DC load flow, magnitudes as the flat start.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Dict

import numpy as np
from scipy.sparse import csc_matrix
from scipy.sparse.linalg import spsolve

from core.parameters import VoltageInitMode
from equations.types import VariableType

logger = logging.getLogger(__name__)


class VoltageInitializer(ABC):

    def prepare(self, network) -> None:
        """Compute whatever the initializer needs from the network."""

    @abstractmethod
    def magnitude(self, bus) -> float:
        ...

    @abstractmethod
    def angle(self, bus) -> float:
        ...


class UniformValueVoltageInitializer(VoltageInitializer):

    def magnitude(self, bus) -> float:
        if bus.voltage_control_enabled and math.isfinite(bus.target_v):
            return bus.target_v
        return 1.0

    def angle(self, bus) -> float:
        return 0.0


class PreviousValueVoltageInitializer(VoltageInitializer):
    """Start from the voltages stored in the buses, flat where missing."""

    def __init__(self) -> None:
        self._flat = UniformValueVoltageInitializer()

    def magnitude(self, bus) -> float:
        if math.isfinite(bus.v) and bus.v > 0:
            return bus.v
        return self._flat.magnitude(bus)

    def angle(self, bus) -> float:
        if math.isfinite(bus.angle):
            return bus.angle
        return 0.0


class DcValueVoltageInitializer(VoltageInitializer):
    """
    Angles from the linear DC approximation ``B theta = P``.

    Branch susceptances are 1 / (x rho1), phase shifts enter as fixed
    injections. The slack angle is 0.
    """

    def __init__(self) -> None:
        self._flat = UniformValueVoltageInitializer()
        self._angles: Dict[int, float] = {}

    def prepare(self, network) -> None:
        self._angles = {}
        slack = network.slack_bus
        n = len(network.buses)
        if slack is None or n == 0:
            return
        p = np.array([network.bus_target_p(i) for i in range(n)])
        rows, cols, values = [], [], []
        for branch in network.branches:
            if branch.x == 0.0:
                continue
            b = 1.0 / (branch.x * branch.rho1)
            i, j = branch.bus1_num, branch.bus2_num
            rows += [i, i, j, j]
            cols += [i, j, j, i]
            values += [b, -b, b, -b]
            # flow i->j = b (theta_i - theta_j + alpha1)
            p[i] -= b * branch.alpha1
            p[j] += b * branch.alpha1
        matrix = csc_matrix((values, (rows, cols)), shape=(n, n))
        keep = [i for i in range(n) if i != slack.num]
        if not keep:
            self._angles = {slack.num: 0.0}
            return
        reduced = matrix[keep, :][:, keep]
        theta = np.atleast_1d(spsolve(csc_matrix(reduced), p[keep]))
        if not np.all(np.isfinite(theta)):
            logger.warning("DC initialisation of network '%s' failed, using flat angles",
                           network.id)
            return
        self._angles = {i: float(t) for i, t in zip(keep, theta)}
        self._angles[slack.num] = 0.0

    def magnitude(self, bus) -> float:
        return self._flat.magnitude(bus)

    def angle(self, bus) -> float:
        return self._angles.get(bus.num, 0.0)


def create_voltage_initializer(mode: VoltageInitMode) -> VoltageInitializer:
    if mode is VoltageInitMode.PREVIOUS:
        return PreviousValueVoltageInitializer()
    if mode is VoltageInitMode.DC:
        return DcValueVoltageInitializer()
    return UniformValueVoltageInitializer()


def initialize_variables(equation_system, network, initializer: VoltageInitializer) -> None:
    """
    Set the value of every variable of an equation system.

    Bus variables come from the initializer, control variables from the
    current tap positions and shunt sections.
    """
    initializer.prepare(network)
    for v in equation_system.variables:
        if v.type is VariableType.BUS_V:
            v.value = initializer.magnitude(network.buses[v.element_num])
        elif v.type is VariableType.BUS_PHI:
            v.value = initializer.angle(network.buses[v.element_num])
        elif v.type is VariableType.BRANCH_RHO1:
            v.value = network.branches[v.element_num].rho1
        elif v.type is VariableType.BRANCH_ALPHA1:
            v.value = network.branches[v.element_num].alpha1
        elif v.type is VariableType.SHUNT_B:
            v.value = network.shunts[v.element_num].b
    equation_system.state_vector.set(
        np.array([v.value for v in equation_system.index.sorted_variables()])
    )
    equation_system.update()
