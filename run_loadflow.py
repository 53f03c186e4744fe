#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
AC Load Flow on a pandapower Test Case
======================================

This script imports a pandapower test network, runs the AC load flow with
distributed slack and reactive limits, and compares the resulting bus
voltages with pandapower's own Newton-Raphson.

Usage
-----
    python run_loadflow.py [case9|case14|case30]
"""

import sys

import numpy as np
import pandapower as pp
import pandapower.networks as pn

from core.log import setup_logging
from core.parameters import LoadFlowParameters, SlackBusSelectionMode
from engine.ac_engine import run_ac_load_flow
from network.pandapower_loader import load_pandapower_network

CASES = {
    "case9": pn.case9,
    "case14": pn.case14,
    "case30": pn.case30,
}


def main(case_name: str = "case9") -> None:
    setup_logging()

    net = CASES[case_name]()
    network = load_pandapower_network(net, network_id=case_name)

    # ==========================================================================
    #  Plain load flow, slack at the pandapower external grid
    # ==========================================================================
    ext_grid_bus = int(net.ext_grid.bus.iloc[0])
    parameters = LoadFlowParameters(
        slack_bus_selection_mode=SlackBusSelectionMode.NAME,
        slack_bus_ids=(f"bus_{ext_grid_bus}",),
        distributed_slack=False,
        reactive_limits=False,
    )
    result = run_ac_load_flow(network, parameters)

    pp.runpp(net, calculate_voltage_angles=True, init="flat")

    print()
    print("=" * 72)
    print(f"  {case_name}: {result.solver_status.value} after "
          f"{result.newton_raphson_iterations} Newton-Raphson iterations")
    print("=" * 72)
    print(f"  {'bus':>8s} {'V [pu]':>10s} {'V pp [pu]':>10s} "
          f"{'phi [deg]':>10s} {'phi pp [deg]':>12s}")
    max_dv = 0.0
    for idx in net.bus.index:
        bus = network.find_bus_by_id(f"bus_{idx}")
        if bus is None:
            continue
        v_pp = float(net.res_bus.vm_pu.at[idx])
        a_pp = float(net.res_bus.va_degree.at[idx])
        max_dv = max(max_dv, abs(bus.v - v_pp))
        print(f"  {bus.id:>8s} {bus.v:10.5f} {v_pp:10.5f} "
              f"{np.degrees(bus.angle):10.4f} {a_pp:12.4f}")
    print(f"  Max |V - V_pp| = {max_dv:.2e} p.u.")

    # ==========================================================================
    #  Distributed slack and reactive limits
    # ==========================================================================
    result = run_ac_load_flow(network, LoadFlowParameters())
    print()
    print("=" * 72)
    print(f"  {case_name} with distributed slack and reactive limits: "
          f"{result.solver_status.value}")
    print("=" * 72)
    print(f"  Outer loop iterations     : {result.outer_loop_iterations}")
    print(f"  Newton-Raphson iterations : {result.newton_raphson_iterations}")
    print(f"  Distributed active power  : {result.distributed_active_power_mw:.3f} MW")
    print(f"  Slack bus mismatch        : {result.slack_bus_active_power_mismatch_mw:.4f} MW")
    for generator in network.generators:
        print(f"  {generator.id:>10s}: P = {generator.target_p * 100.0:8.2f} MW "
              f"(initial {generator.initial_target_p * 100.0:8.2f} MW)")
    print()


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "case9")
