"""
AC Equation System Module
=========================

Creation of the AC equation system of a network and the listener keeping
it consistent with generator voltage control switches.

Equation layout per bus:

- PQ bus: BUS_TARGET_P and BUS_TARGET_Q active.
- PV bus: BUS_TARGET_P and BUS_TARGET_V active, BUS_TARGET_Q inactive.
- Slack bus: BUS_TARGET_PHI and BUS_TARGET_V (or BUS_TARGET_Q if not
  voltage controlled) active, BUS_TARGET_P inactive. The inactive P
  equation is still evaluated to compute the slack mismatch.

Branches with an enabled controlled tap changer own a ratio (or phase
shift) variable pinned by a BRANCH_TARGET_RHO1 (or BRANCH_TARGET_ALPHA1)
equation; shunts controlling a voltage own a susceptance variable pinned
by a SHUNT_TARGET_B equation. Moving the tap or the section changes the
target of that equation.
"""

import logging
from dataclasses import dataclass
from typing import Dict

from core.parameters import LoadFlowParameters
from equations.ac_terms import (
    BusVoltageSquaredEquationTerm,
    ClosedBranchCurrentMagnitudeEquationTerm,
    ClosedBranchSide1ActiveFlowEquationTerm,
    ClosedBranchSide1ReactiveFlowEquationTerm,
    ClosedBranchSide2ActiveFlowEquationTerm,
    ClosedBranchSide2ReactiveFlowEquationTerm,
    ShuntCompensatorReactiveFlowEquationTerm,
)
from equations.equation import Equation
from equations.equation_system import EquationSystem
from equations.equation_term import MultiplyByScalarEquationTerm, VariableEquationTerm
from equations.types import EquationType, VariableType
from network.elements import PhaseControlMode
from network.lf_network import LfNetwork
from network.listener import NetworkListener

logger = logging.getLogger(__name__)


@dataclass
class BranchTerms:
    """Flow and current terms of one branch."""
    p1: ClosedBranchSide1ActiveFlowEquationTerm
    q1: ClosedBranchSide1ReactiveFlowEquationTerm
    p2: ClosedBranchSide2ActiveFlowEquationTerm
    q2: ClosedBranchSide2ReactiveFlowEquationTerm
    i1: ClosedBranchCurrentMagnitudeEquationTerm
    i2: ClosedBranchCurrentMagnitudeEquationTerm


class AcEquationSystem(EquationSystem):
    """
    Equation system of an AC load flow.

    Attributes
    ----------
    network : LfNetwork
        Network the equations were created from.
    branch_terms : Dict[int, BranchTerms]
        Flow and current terms per branch number.
    """

    def __init__(self, network: LfNetwork) -> None:
        super().__init__()
        self.network = network
        self.branch_terms: Dict[int, BranchTerms] = {}

    def bus_p(self, bus_num: int) -> float:
        """Active power flowing from the bus into the network."""
        return self.get_equation(bus_num, EquationType.BUS_TARGET_P).eval()

    def bus_q(self, bus_num: int) -> float:
        """Reactive power flowing from the bus into the network."""
        return self.get_equation(bus_num, EquationType.BUS_TARGET_Q).eval()

    def bus_v(self, bus_num: int) -> float:
        return self.get_variable(bus_num, VariableType.BUS_V).value

    def bus_phi(self, bus_num: int) -> float:
        return self.get_variable(bus_num, VariableType.BUS_PHI).value


def is_phase_controller(branch, parameters: LoadFlowParameters) -> bool:
    return (parameters.phase_shifter_regulation
            and branch.phase_control is not None
            and branch.phase_control.mode is not PhaseControlMode.FIXED_TAP)


def is_voltage_controller(branch, parameters: LoadFlowParameters) -> bool:
    return (parameters.transformer_voltage_control
            and branch.voltage_control is not None
            and branch.voltage_control.enabled)


def is_voltage_controlling_shunt(shunt, parameters: LoadFlowParameters) -> bool:
    return (parameters.shunt_voltage_control
            and shunt.voltage_control is not None
            and shunt.voltage_control.enabled)


def _update_bus_equations(equation_system: EquationSystem, bus) -> None:
    equation_system.get_equation(bus.num, EquationType.BUS_TARGET_P).active = not bus.slack
    equation_system.get_equation(bus.num, EquationType.BUS_TARGET_PHI).active = bus.slack
    equation_system.get_equation(bus.num, EquationType.BUS_TARGET_V).active = \
        bus.voltage_control_enabled
    equation_system.get_equation(bus.num, EquationType.BUS_TARGET_Q).active = \
        not bus.voltage_control_enabled


def create_ac_equation_system(network: LfNetwork,
                              parameters: LoadFlowParameters) -> AcEquationSystem:
    """
    Create the AC equation system of a network.

    Parameters
    ----------
    network : LfNetwork
        Network with its slack bus already selected.
    parameters : LoadFlowParameters
        Decides which discrete controls get their own variable.

    Returns
    -------
    AcEquationSystem
    """
    es = AcEquationSystem(network)

    for bus in network.buses:
        v = es.create_variable(bus.num, VariableType.BUS_V)
        phi = es.create_variable(bus.num, VariableType.BUS_PHI)
        es.create_equation(bus.num, EquationType.BUS_TARGET_P)
        es.create_equation(bus.num, EquationType.BUS_TARGET_Q)
        es.create_equation(bus.num, EquationType.BUS_TARGET_V).add_term(VariableEquationTerm(v))
        es.create_equation(bus.num, EquationType.BUS_TARGET_PHI).add_term(VariableEquationTerm(phi))
        _update_bus_equations(es, bus)

    for branch in network.branches:
        v1 = es.create_variable(branch.bus1_num, VariableType.BUS_V)
        v2 = es.create_variable(branch.bus2_num, VariableType.BUS_V)
        ph1 = es.create_variable(branch.bus1_num, VariableType.BUS_PHI)
        ph2 = es.create_variable(branch.bus2_num, VariableType.BUS_PHI)
        r1 = None
        a1 = None
        if is_voltage_controller(branch, parameters):
            r1 = es.create_variable(branch.num, VariableType.BRANCH_RHO1)
            es.create_equation(branch.num, EquationType.BRANCH_TARGET_RHO1) \
                .add_term(VariableEquationTerm(r1))
        if is_phase_controller(branch, parameters):
            a1 = es.create_variable(branch.num, VariableType.BRANCH_ALPHA1)
            es.create_equation(branch.num, EquationType.BRANCH_TARGET_ALPHA1) \
                .add_term(VariableEquationTerm(a1))

        p1 = ClosedBranchSide1ActiveFlowEquationTerm(branch, v1, v2, ph1, ph2, r1, a1)
        q1 = ClosedBranchSide1ReactiveFlowEquationTerm(branch, v1, v2, ph1, ph2, r1, a1)
        p2 = ClosedBranchSide2ActiveFlowEquationTerm(branch, v1, v2, ph1, ph2, r1, a1)
        q2 = ClosedBranchSide2ReactiveFlowEquationTerm(branch, v1, v2, ph1, ph2, r1, a1)
        es.get_equation(branch.bus1_num, EquationType.BUS_TARGET_P).add_term(p1)
        es.get_equation(branch.bus1_num, EquationType.BUS_TARGET_Q).add_term(q1)
        es.get_equation(branch.bus2_num, EquationType.BUS_TARGET_P).add_term(p2)
        es.get_equation(branch.bus2_num, EquationType.BUS_TARGET_Q).add_term(q2)
        i1 = es.attach(ClosedBranchCurrentMagnitudeEquationTerm(p1, q1, v1))
        i2 = es.attach(ClosedBranchCurrentMagnitudeEquationTerm(p2, q2, v2))
        es.branch_terms[branch.num] = BranchTerms(p1, q1, p2, q2, i1, i2)

    for shunt in network.shunts:
        v = es.create_variable(shunt.bus_num, VariableType.BUS_V)
        b = None
        if is_voltage_controlling_shunt(shunt, parameters):
            b = es.create_variable(shunt.num, VariableType.SHUNT_B)
            es.create_equation(shunt.num, EquationType.SHUNT_TARGET_B) \
                .add_term(VariableEquationTerm(b))
        if shunt.g != 0.0:
            es.get_equation(shunt.bus_num, EquationType.BUS_TARGET_P).add_term(
                MultiplyByScalarEquationTerm(BusVoltageSquaredEquationTerm(shunt.bus_num, v),
                                             shunt.g))
        es.get_equation(shunt.bus_num, EquationType.BUS_TARGET_Q).add_term(
            ShuntCompensatorReactiveFlowEquationTerm(shunt, v, b))

    logger.debug("AC equation system of network '%s': %d equations, %d variables",
                 network.id, len(es.equations), len(es.variables))
    return es


def create_target_function(network: LfNetwork):
    """
    Target of each equation type, read from the network.

    Returns
    -------
    Callable[[Equation], float]
    """

    def target(equation: Equation) -> float:
        num = equation.element_num
        t = equation.type
        if t is EquationType.BUS_TARGET_P:
            return network.bus_target_p(num)
        if t is EquationType.BUS_TARGET_Q:
            return network.bus_target_q(num)
        if t is EquationType.BUS_TARGET_V:
            return network.buses[num].target_v
        if t is EquationType.BUS_TARGET_PHI:
            return 0.0
        if t is EquationType.BRANCH_TARGET_RHO1:
            return network.branches[num].rho1
        if t is EquationType.BRANCH_TARGET_ALPHA1:
            return network.branches[num].alpha1
        if t is EquationType.SHUNT_TARGET_B:
            return network.shunts[num].b
        raise ValueError(f"No target for equation type {t}")

    return target


class AcEquationSystemUpdater(NetworkListener):
    """Toggle bus equations when a bus switches between PV and PQ."""

    def __init__(self, equation_system: EquationSystem) -> None:
        self._equation_system = equation_system

    def on_voltage_control_change(self, bus, enabled: bool) -> None:
        _update_bus_equations(self._equation_system, bus)
