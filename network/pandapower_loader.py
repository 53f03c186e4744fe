"""
Pandapower Loader Module
========================

This module builds an LfNetwork from a pandapower network.

The pandapower network is first converted to its internal PYPOWER case
(``ppc``), which already holds every branch as a pi model with
impedances in per-unit of ``net.sn_mva``. Values are rescaled to the 100
MVA system base of the load flow.

Bus ids are ``"bus_<pandapower index>"`` so that results can be mapped
back to ``net.bus``. Buses merged by closed bus-bus switches share the id
of the first merged pandapower bus.
"""

import math
from typing import Dict, Optional

import numpy as np
import pandapower as pp
from pandapower.converter.pypower import to_ppc
from pandapower.pypower.idx_brch import BR_B, BR_R, BR_STATUS, BR_X, F_BUS, SHIFT, T_BUS, TAP
from pandapower.pypower.idx_bus import BASE_KV, BS, BUS_TYPE, GS, NONE, PD, QD, REF, PV
from pandapower.pypower.idx_gen import (
    GEN_BUS,
    GEN_STATUS,
    PG,
    PMAX,
    PMIN,
    QG,
    QMAX,
    QMIN,
    VG,
)

from core.per_unit import SB
from network.lf_network import LfNetwork


def _finite_or(value: float, default: float) -> float:
    return float(value) if np.isfinite(value) else default


def load_pandapower_network(
    net: pp.pandapowerNet,
    network_id: Optional[str] = None,
) -> LfNetwork:
    """
    Build an LfNetwork from a pandapower network.

    Parameters
    ----------
    net : pp.pandapowerNet
        Network to import. Its PYPOWER case is (re)built by pandapower.
    network_id : str, optional
        Id of the resulting network. Defaults to ``net.name`` or "network".

    Returns
    -------
    LfNetwork
        Network with one bus per energised PYPOWER bus.

    Notes
    -----
    PYPOWER branches carry the tap ratio on the from side as a voltage
    divisor, so rho1 = 1 / TAP and alpha1 = -SHIFT. The line charging
    susceptance BR_B is split equally between both sides.
    """
    ppc = to_ppc(net, init="flat", calculate_voltage_angles=True,
                 voltage_depend_loads=False)
    base_mva = float(ppc["baseMVA"])
    z_scale = SB / base_mva
    bus_lookup = net._pd2ppc_lookups["bus"]

    if network_id is None:
        network_id = net.name if getattr(net, "name", "") else "network"
    network = LfNetwork(network_id)

    ppc_bus = ppc["bus"]
    bus_ids: Dict[int, str] = {}
    for pp_idx in net.bus.index:
        ppc_idx = int(bus_lookup[pp_idx])
        if ppc_idx in bus_ids or int(ppc_bus[ppc_idx, BUS_TYPE]) == NONE:
            continue
        bus_ids[ppc_idx] = f"bus_{pp_idx}"
        network.add_bus(bus_ids[ppc_idx], nominal_v=float(ppc_bus[ppc_idx, BASE_KV]))

    for ppc_idx, bus_id in bus_ids.items():
        row = ppc_bus[ppc_idx]
        if row[PD] != 0.0 or row[QD] != 0.0:
            network.add_load(f"load_{bus_id}", bus_id,
                             target_p=row[PD] / SB, target_q=row[QD] / SB)
        if row[GS] != 0.0 or row[BS] != 0.0:
            network.add_shunt(f"shunt_{bus_id}", bus_id, b_per_section=row[BS] / SB,
                              g=row[GS] / SB)

    for i, row in enumerate(ppc["gen"]):
        ppc_idx = int(row[GEN_BUS])
        if row[GEN_STATUS] <= 0 or ppc_idx not in bus_ids:
            continue
        bus_type = int(ppc_bus[ppc_idx, BUS_TYPE])
        regulating = bus_type in (REF, PV)
        network.add_generator(
            f"gen_{i}",
            bus_ids[ppc_idx],
            target_p=row[PG] / SB,
            min_p=_finite_or(row[PMIN], -math.inf) / SB,
            max_p=_finite_or(row[PMAX], math.inf) / SB,
            target_q=row[QG] / SB,
            min_q=_finite_or(row[QMIN], -math.inf) / SB,
            max_q=_finite_or(row[QMAX], math.inf) / SB,
            voltage_regulator_on=regulating,
            target_v=float(row[VG]) if regulating else math.nan,
        )

    for i, row in enumerate(ppc["branch"]):
        f, t = int(row[F_BUS].real), int(row[T_BUS].real)
        if row[BR_STATUS].real <= 0 or f not in bus_ids or t not in bus_ids:
            continue
        tap = row[TAP].real
        rho1 = 1.0 / tap if tap != 0.0 else 1.0
        b_half = row[BR_B].real / z_scale / 2.0
        network.add_branch(
            f"branch_{i}",
            bus_ids[f],
            bus_ids[t],
            r=row[BR_R].real * z_scale,
            x=row[BR_X].real * z_scale,
            b1=b_half,
            b2=b_half,
            fixed_rho1=rho1,
            fixed_alpha1=-math.radians(row[SHIFT].real),
        )

    return network
