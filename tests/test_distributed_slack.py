"""
Tests for the distributed slack outer loop through complete load flows.
"""

import pytest

from core.exceptions import SlackDistributionFailure
from core.parameters import BalanceType, LoadFlowParameters, SlackBusSelectionMode
from engine.ac_engine import run_ac_load_flow
from network.lf_network import LfNetwork
from solver.status import AcSolverStatus


def _make_radial_network() -> LfNetwork:
    """
    b1 - b2 - b3, lossless.

    b1 holds a non participating slack generator, b2 and b3 produce 20 MW
    each and b3 consumes 50 MW, so the slack bus has to produce 10 MW.
    """
    network = LfNetwork("radial")
    for bus_id in ("b1", "b2", "b3"):
        network.add_bus(bus_id, nominal_v=110.0)
    network.add_generator("g1", "b1", target_p=0.0, voltage_regulator_on=True, target_v=1.0,
                          participating=False)
    network.add_generator("g2", "b2", target_p=0.2, voltage_regulator_on=True, target_v=1.0,
                          participation_factor=0.6)
    network.add_generator("g3", "b3", target_p=0.2, voltage_regulator_on=True, target_v=1.0,
                          participation_factor=0.4)
    network.add_load("l3", "b3", target_p=0.5)
    network.add_branch("l12", "b1", "b2", r=0.0, x=0.1)
    network.add_branch("l23", "b2", "b3", r=0.0, x=0.1)
    return network


def _make_limited_network() -> LfNetwork:
    """50 MW load at b2, its only participating generator is limited to 20 MW."""
    network = LfNetwork("limited")
    network.add_bus("b1", nominal_v=110.0)
    network.add_bus("b2", nominal_v=110.0)
    network.add_generator("g1", "b1", target_p=0.0, voltage_regulator_on=True, target_v=1.0,
                          participating=False)
    network.add_generator("g2", "b2", target_p=0.0, max_p=0.2)
    network.add_load("l2", "b2", target_p=0.5)
    network.add_branch("l12", "b1", "b2", r=0.0, x=0.1)
    return network


def _parameters(**kwargs) -> LoadFlowParameters:
    values = dict(
        slack_bus_selection_mode=SlackBusSelectionMode.NAME,
        slack_bus_ids=("b1",),
        reactive_limits=False,
        slack_bus_p_max_mismatch=1e-4,
        convergence_epsilon=1e-8,
    )
    values.update(kwargs)
    return LoadFlowParameters(**values)


class TestDistributedSlack:

    def test_mismatch_distributed_by_participation_factor(self):
        network = _make_radial_network()
        result = run_ac_load_flow(network, _parameters(
            balance_type=BalanceType.PROPORTIONAL_TO_GENERATION_PARTICIPATION_FACTOR))
        assert result.converged
        assert result.outer_loop_iterations == 1
        _, g2, g3 = network.generators
        assert g2.target_p == pytest.approx(0.26, abs=1e-6)
        assert g3.target_p == pytest.approx(0.24, abs=1e-6)
        assert result.distributed_active_power_mw == pytest.approx(10.0, abs=1e-4)
        assert result.slack_bus_active_power_mismatch == pytest.approx(0.0, abs=1e-6)
        assert network.buses[0].p == pytest.approx(0.0, abs=1e-6)

    def test_result_holds_plain_floats(self):
        network = _make_radial_network()
        result = run_ac_load_flow(network, _parameters(
            balance_type=BalanceType.PROPORTIONAL_TO_GENERATION_PARTICIPATION_FACTOR))
        assert type(result.distributed_active_power) is float
        assert type(result.slack_bus_active_power_mismatch) is float

    def test_mismatch_within_tolerance(self):
        network = _make_radial_network()
        result = run_ac_load_flow(network, _parameters(slack_bus_p_max_mismatch=20.0))
        assert result.converged
        assert result.outer_loop_iterations == 0
        assert result.distributed_active_power == 0.0
        assert result.slack_bus_active_power_mismatch_mw == pytest.approx(10.0, abs=1e-4)

    def test_disabled(self):
        network = _make_radial_network()
        result = run_ac_load_flow(network, _parameters(distributed_slack=False))
        assert result.outer_loop_iterations == 0
        assert [g.target_p for g in network.generators] == [0.0, 0.2, 0.2]

    def test_distributed_to_loads(self):
        network = _make_radial_network()
        result = run_ac_load_flow(network, _parameters(
            balance_type=BalanceType.PROPORTIONAL_TO_LOAD))
        assert result.converged
        assert network.loads[0].target_p == pytest.approx(0.4, abs=1e-6)


class TestDistributionFailure:

    def test_failure_logged(self):
        network = _make_limited_network()
        result = run_ac_load_flow(network, _parameters())
        assert result.converged
        assert network.generators[1].target_p == pytest.approx(0.2)
        assert result.distributed_active_power == pytest.approx(0.2, abs=1e-6)
        assert result.slack_bus_active_power_mismatch == pytest.approx(0.3, abs=1e-6)

    def test_failure_raised(self):
        network = _make_limited_network()
        with pytest.raises(SlackDistributionFailure) as excinfo:
            run_ac_load_flow(network, _parameters(throw_on_slack_distribution_failure=True))
        assert excinfo.value.remaining_mismatch == pytest.approx(0.3, abs=1e-6)
        assert network.listeners == []

    def test_no_calculation_result_keeps_targets(self):
        network = _make_limited_network()
        result = run_ac_load_flow(network, _parameters(slack_bus_ids=("unknown",)))
        assert result.solver_status is AcSolverStatus.NO_CALCULATION
        assert network.generators[1].target_p == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
