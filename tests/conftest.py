"""
Shared fixtures for the load flow tests.

The networks are small hand-built cases in per-unit of the 100 MVA base.
"""

import pytest

from core.parameters import LoadFlowParameters, SlackBusSelectionMode
from network.lf_network import LfNetwork


def build_three_bus_network() -> LfNetwork:
    """
    Meshed 3-bus network.

    b1: slack generator at 1.02 pu
    b2: PV generator, 50 MW at 1.01 pu
    b3: PQ load, 90 MW / 30 Mvar
    """
    network = LfNetwork("three_bus")
    network.add_bus("b1", nominal_v=110.0)
    network.add_bus("b2", nominal_v=110.0)
    network.add_bus("b3", nominal_v=110.0)
    network.add_generator("g1", "b1", target_p=0.0, max_p=2.0,
                          voltage_regulator_on=True, target_v=1.02)
    network.add_generator("g2", "b2", target_p=0.5, max_p=1.0,
                          voltage_regulator_on=True, target_v=1.01)
    network.add_load("l3", "b3", target_p=0.9, target_q=0.3)
    network.add_branch("l12", "b1", "b2", r=0.01, x=0.1, b1=0.01, b2=0.01)
    network.add_branch("l13", "b1", "b3", r=0.02, x=0.15, b1=0.01, b2=0.01)
    network.add_branch("l23", "b2", "b3", r=0.01, x=0.12)
    return network


@pytest.fixture
def three_bus_network() -> LfNetwork:
    return build_three_bus_network()


@pytest.fixture
def b1_slack_parameters() -> LoadFlowParameters:
    """Plain load flow with slack at b1 and no outer loop."""
    return LoadFlowParameters(
        slack_bus_selection_mode=SlackBusSelectionMode.NAME,
        slack_bus_ids=("b1",),
        distributed_slack=False,
        reactive_limits=False,
    )
