"""
Tests for the incremental transformer and shunt voltage control outer loops.
"""

import pytest

from core.parameters import LoadFlowParameters, SlackBusSelectionMode
from engine.ac_engine import run_ac_load_flow
from network.elements import ShuntVoltageControl, TapChanger, TransformerVoltageControl
from network.lf_network import LfNetwork


def _parameters(**kwargs) -> LoadFlowParameters:
    return LoadFlowParameters(slack_bus_selection_mode=SlackBusSelectionMode.NAME,
                              slack_bus_ids=("b1",), distributed_slack=False,
                              reactive_limits=False, convergence_epsilon=1e-8, **kwargs)


def _make_transformer_network(target_v: float = 1.0) -> LfNetwork:
    """
    110/20 kV transformer feeding a 50 MW / 20 Mvar load.

    The ratio tap changer has 11 positions from 0.95 to 1.05, starting at
    the neutral position 5.
    """
    network = LfNetwork("transformer")
    network.add_bus("b1", nominal_v=110.0)
    network.add_bus("b2", nominal_v=20.0)
    network.add_generator("g1", "b1", voltage_regulator_on=True, target_v=1.0)
    network.add_load("l2", "b2", target_p=0.5, target_q=0.2)
    network.add_branch(
        "t12", "b1", "b2", r=0.0, x=0.1,
        tap_changer=TapChanger([(0.95 + 0.01 * k, 0.0) for k in range(11)], position=5),
        voltage_control=TransformerVoltageControl(controlled_bus_num=1, target_v=target_v),
    )
    return network


def _make_shunt_network() -> LfNetwork:
    """20 Mvar load behind a reactance, compensated by 10 Mvar capacitor sections."""
    network = LfNetwork("shunt")
    network.add_bus("b1", nominal_v=110.0)
    network.add_bus("b2", nominal_v=20.0)
    network.add_generator("g1", "b1", voltage_regulator_on=True, target_v=1.0)
    network.add_load("l2", "b2", target_q=0.2)
    network.add_branch("l12", "b1", "b2", r=0.0, x=0.1)
    network.add_shunt("sh2", "b2", b_per_section=0.1, section=0, max_section=5,
                      voltage_control=ShuntVoltageControl(controlled_bus_num=1, target_v=1.0))
    return network


class TestTransformerVoltageControl:

    def test_voltage_regulated(self):
        network = _make_transformer_network()
        result = run_ac_load_flow(network, _parameters(transformer_voltage_control=True))
        assert result.converged
        assert result.outer_loop_iterations == 1
        assert network.branches[0].tap_changer.position == 7
        assert network.buses[1].v == pytest.approx(0.998746, abs=1e-5)

    def test_one_tap_per_round(self):
        network = _make_transformer_network()
        result = run_ac_load_flow(network, _parameters(transformer_voltage_control=True,
                                                       incremental_max_tap_shift=1))
        assert result.outer_loop_iterations == 2
        assert network.branches[0].tap_changer.position == 7

    def test_control_disabled(self):
        network = _make_transformer_network()
        result = run_ac_load_flow(network, _parameters())
        assert result.outer_loop_iterations == 0
        assert network.branches[0].tap_changer.position == 5
        assert network.buses[1].v < 0.98

    def test_within_deadband(self):
        network = _make_transformer_network(target_v=0.98)
        result = run_ac_load_flow(network, _parameters(transformer_voltage_control=True))
        assert result.outer_loop_iterations == 0
        assert network.branches[0].tap_changer.position == 5

    def test_tap_at_limit(self):
        network = _make_transformer_network(target_v=1.2)
        result = run_ac_load_flow(network, _parameters(transformer_voltage_control=True))
        assert result.converged
        assert network.branches[0].tap_changer.position == 10

    def test_generator_controlled_bus(self):
        network = _make_transformer_network()
        network.add_generator("g2", "b2", voltage_regulator_on=True, target_v=1.0)
        result = run_ac_load_flow(network, _parameters(transformer_voltage_control=True))
        assert result.converged
        assert result.outer_loop_iterations == 0
        branch = network.branches[0]
        assert branch.tap_changer.position == 5
        assert branch.voltage_control.enabled
        assert network.buses[1].v == pytest.approx(1.0)


class TestShuntVoltageControl:

    def test_voltage_regulated(self):
        network = _make_shunt_network()
        result = run_ac_load_flow(network, _parameters(shunt_voltage_control=True))
        assert result.converged
        assert result.outer_loop_iterations == 2
        assert network.shunts[0].section == 2
        assert network.buses[1].v == pytest.approx(1.0, abs=1e-6)

    def test_control_disabled(self):
        network = _make_shunt_network()
        result = run_ac_load_flow(network, _parameters())
        assert result.outer_loop_iterations == 0
        assert network.shunts[0].section == 0
        assert network.buses[1].v == pytest.approx(0.979583, abs=1e-5)

    def test_generator_controlled_bus(self):
        network = _make_shunt_network()
        network.add_generator("g2", "b2", voltage_regulator_on=True, target_v=1.0)
        result = run_ac_load_flow(network, _parameters(shunt_voltage_control=True))
        assert result.outer_loop_iterations == 0
        assert network.shunts[0].section == 0
        assert network.shunts[0].voltage_control.enabled


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
