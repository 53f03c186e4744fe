"""
Tests for the pandapower loader, compared against pandapower's own
Newton-Raphson power flow.
"""

import math

import numpy as np
import pandapower as pp
import pandapower.networks as pn
import pytest

from core.parameters import LoadFlowParameters, SlackBusSelectionMode
from engine.ac_engine import run_ac_load_flow
from network.pandapower_loader import load_pandapower_network


def _parameters(net) -> LoadFlowParameters:
    slack_bus = int(net.ext_grid.bus.iloc[0])
    return LoadFlowParameters(
        slack_bus_selection_mode=SlackBusSelectionMode.NAME,
        slack_bus_ids=(f"bus_{slack_bus}",),
        distributed_slack=False,
        reactive_limits=False,
        convergence_epsilon=1e-8,
    )


class TestLoadPandapowerNetwork:

    def test_exported_by_network_package(self):
        import network
        from pandapower.converter.pypower import to_ppc
        assert network.load_pandapower_network is load_pandapower_network
        assert callable(to_ppc)

    def test_case9_structure(self):
        net = pn.case9()
        network = load_pandapower_network(net, "case9")
        assert network.id == "case9"
        assert len(network.buses) == len(net.bus)
        assert len(network.branches) == len(net.line) + len(net.trafo)
        assert len(network.loads) == 3
        assert {b.id for b in network.buses} == {f"bus_{i}" for i in net.bus.index}
        assert len(network.voltage_controlled_buses()) == 3
        assert network.validate() is None

    def test_load_values_in_per_unit(self):
        net = pn.case9()
        network = load_pandapower_network(net)
        total_load = sum(load.target_p for load in network.loads)
        assert total_load == pytest.approx(net.load.p_mw.sum() / 100.0)

    @pytest.mark.parametrize("case", ["case9", "case14", "case30"])
    def test_matches_pandapower(self, case):
        net = getattr(pn, case)()
        network = load_pandapower_network(net, case)
        result = run_ac_load_flow(network, _parameters(net))
        assert result.converged

        pp.runpp(net, calculate_voltage_angles=True, init="flat", tolerance_mva=1e-10)
        for pp_idx in net.bus.index:
            bus = network.get_bus_by_id(f"bus_{pp_idx}")
            assert bus.v == pytest.approx(net.res_bus.vm_pu.at[pp_idx], abs=1e-4)
            assert math.degrees(bus.angle) == pytest.approx(
                net.res_bus.va_degree.at[pp_idx], abs=1e-2)

    def test_slack_power_matches_pandapower(self):
        net = pn.case9()
        network = load_pandapower_network(net, "case9")
        run_ac_load_flow(network, _parameters(net))
        pp.runpp(net, calculate_voltage_angles=True, init="flat", tolerance_mva=1e-10)
        slack = network.get_bus_by_id(f"bus_{int(net.ext_grid.bus.iloc[0])}")
        np.testing.assert_allclose(slack.p * 100.0, net.res_ext_grid.p_mw.iloc[0], atol=1e-2)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
