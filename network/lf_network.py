"""
Load Flow Network Module
========================

This module defines LfNetwork, the index-based arena holding every element
of one connected (sub-)network.

Elements are appended through the ``add_*`` builder methods, which assign
their number and maintain the bus connectivity lists. Once a solve has
started, operational targets must only be changed through the ``set_*``
methods so that registered NetworkListener observers (target vector,
Jacobian, equation system updater) are notified.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import connected_components

from network.elements import (
    LfBranch,
    LfBus,
    LfGenerator,
    LfLoad,
    LfShunt,
    ReactiveLimitType,
)
from network.listener import NetworkListener

logger = logging.getLogger(__name__)


class LfNetwork:
    """
    Arena of buses, branches, generators, loads and shunts.

    Attributes
    ----------
    id : str
        Network identifier, used to key results and debug dumps.
    buses : List[LfBus]
    branches : List[LfBranch]
    generators : List[LfGenerator]
    loads : List[LfLoad]
    shunts : List[LfShunt]
    """

    def __init__(self, network_id: str = "network") -> None:
        self.id = network_id
        self.buses: List[LfBus] = []
        self.branches: List[LfBranch] = []
        self.generators: List[LfGenerator] = []
        self.loads: List[LfLoad] = []
        self.shunts: List[LfShunt] = []
        self._bus_by_id: Dict[str, LfBus] = {}
        self._listeners: List[NetworkListener] = []

    def __repr__(self) -> str:
        return (f"LfNetwork(id={self.id!r}, buses={len(self.buses)}, "
                f"branches={len(self.branches)})")

    # =========================================================================
    # Construction
    # =========================================================================

    def add_bus(self, bus_id: str, nominal_v: float, **kwargs) -> LfBus:
        if bus_id in self._bus_by_id:
            raise ValueError(f"Bus '{bus_id}' already exists in network '{self.id}'")
        bus = LfBus(num=len(self.buses), id=bus_id, nominal_v=nominal_v, **kwargs)
        self.buses.append(bus)
        self._bus_by_id[bus_id] = bus
        return bus

    def add_branch(self, branch_id: str, bus1: str, bus2: str, r: float, x: float,
                   **kwargs) -> LfBranch:
        b1 = self.get_bus_by_id(bus1)
        b2 = self.get_bus_by_id(bus2)
        branch = LfBranch(num=len(self.branches), id=branch_id, bus1_num=b1.num,
                          bus2_num=b2.num, r=r, x=x, **kwargs)
        self.branches.append(branch)
        b1.branch_nums.append(branch.num)
        b2.branch_nums.append(branch.num)
        return branch

    def add_generator(self, generator_id: str, bus: str, **kwargs) -> LfGenerator:
        lf_bus = self.get_bus_by_id(bus)
        generator = LfGenerator(num=len(self.generators), id=generator_id,
                                bus_num=lf_bus.num, **kwargs)
        self.generators.append(generator)
        lf_bus.generator_nums.append(generator.num)
        if generator.voltage_regulator_on:
            if lf_bus.voltage_control_enabled and lf_bus.target_v != generator.target_v:
                logger.warning("Generator '%s' voltage target %.4f ignored, bus '%s' "
                               "already regulated at %.4f", generator_id,
                               generator.target_v, lf_bus.id, lf_bus.target_v)
            else:
                lf_bus.voltage_control_enabled = True
                lf_bus.target_v = generator.target_v
        else:
            lf_bus.generation_target_q += generator.target_q
        return generator

    def add_load(self, load_id: str, bus: str, **kwargs) -> LfLoad:
        lf_bus = self.get_bus_by_id(bus)
        load = LfLoad(num=len(self.loads), id=load_id, bus_num=lf_bus.num, **kwargs)
        self.loads.append(load)
        lf_bus.load_nums.append(load.num)
        return load

    def add_shunt(self, shunt_id: str, bus: str, b_per_section: float, **kwargs) -> LfShunt:
        lf_bus = self.get_bus_by_id(bus)
        shunt = LfShunt(num=len(self.shunts), id=shunt_id, bus_num=lf_bus.num,
                        b_per_section=b_per_section, **kwargs)
        self.shunts.append(shunt)
        lf_bus.shunt_nums.append(shunt.num)
        return shunt

    def get_bus_by_id(self, bus_id: str) -> LfBus:
        try:
            return self._bus_by_id[bus_id]
        except KeyError:
            raise ValueError(f"Bus '{bus_id}' not found in network '{self.id}'") from None

    def find_bus_by_id(self, bus_id: str) -> Optional[LfBus]:
        return self._bus_by_id.get(bus_id)

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_listener(self, listener: NetworkListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: NetworkListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listeners(self) -> List[NetworkListener]:
        return list(self._listeners)

    # =========================================================================
    # Notifying mutations
    # =========================================================================

    def set_generator_target_p(self, generator_num: int, target_p: float) -> None:
        generator = self.generators[generator_num]
        old = generator.target_p
        if old == target_p:
            return
        generator.target_p = target_p
        for listener in self._listeners:
            listener.on_generator_target_p_change(generator, old, target_p)

    def set_load_target_p(self, load_num: int, target_p: float) -> None:
        load = self.loads[load_num]
        old = load.target_p
        if old == target_p:
            return
        load.target_p = target_p
        for listener in self._listeners:
            listener.on_load_target_p_change(load, old, target_p)

    def set_load_target_q(self, load_num: int, target_q: float) -> None:
        load = self.loads[load_num]
        old = load.target_q
        if old == target_q:
            return
        load.target_q = target_q
        for listener in self._listeners:
            listener.on_load_target_q_change(load, old, target_q)

    def set_generation_target_q(self, bus_num: int, target_q: float) -> None:
        bus = self.buses[bus_num]
        old = bus.generation_target_q
        if old == target_q:
            return
        bus.generation_target_q = target_q
        for listener in self._listeners:
            listener.on_generation_target_q_change(bus, old, target_q)

    def set_voltage_control_enabled(
        self,
        bus_num: int,
        enabled: bool,
        reactive_limit_type: Optional[ReactiveLimitType] = None,
        generation_target_q: float = 0.0,
    ) -> None:
        """
        Switch a bus between voltage control (PV) and fixed injection (PQ).

        Parameters
        ----------
        bus_num : int
            Number of the bus.
        enabled : bool
            True to hold the voltage at target_v, False to fix the reactive
            generation at ``generation_target_q``.
        reactive_limit_type : ReactiveLimitType or None
            Limit the bus is pinned to when disabling, None when enabling.
        generation_target_q : float
            Reactive generation to apply when disabling, in per-unit.
        """
        bus = self.buses[bus_num]
        if enabled:
            bus.reactive_limit_type = None
            self.set_generation_target_q(bus_num, self.bus_fixed_generation_q(bus_num))
        else:
            bus.reactive_limit_type = reactive_limit_type
            self.set_generation_target_q(bus_num, generation_target_q)
        if bus.voltage_control_enabled == enabled:
            return
        bus.voltage_control_enabled = enabled
        for listener in self._listeners:
            listener.on_voltage_control_change(bus, enabled)

    def set_tap_position(self, branch_num: int, position: int) -> None:
        branch = self.branches[branch_num]
        tap_changer = branch.tap_changer
        if tap_changer is None:
            raise ValueError(f"Branch '{branch.id}' has no tap changer")
        if not tap_changer.low_position <= position <= tap_changer.high_position:
            raise ValueError(
                f"Tap position {position} of branch '{branch.id}' outside "
                f"[{tap_changer.low_position}, {tap_changer.high_position}]"
            )
        old = tap_changer.position
        if old == position:
            return
        tap_changer.position = position
        for listener in self._listeners:
            listener.on_tap_position_change(branch, old, position)

    def set_shunt_section(self, shunt_num: int, section: int) -> None:
        shunt = self.shunts[shunt_num]
        if not 0 <= section <= shunt.max_section:
            raise ValueError(
                f"Section {section} of shunt '{shunt.id}' outside [0, {shunt.max_section}]"
            )
        old = shunt.section
        if old == section:
            return
        shunt.section = section
        for listener in self._listeners:
            listener.on_shunt_section_change(shunt, old, section)

    # =========================================================================
    # Aggregates
    # =========================================================================

    def bus_target_p(self, bus_num: int) -> float:
        """Scheduled net active power injection of a bus."""
        bus = self.buses[bus_num]
        return (sum(self.generators[g].target_p for g in bus.generator_nums)
                - sum(self.loads[ld].target_p for ld in bus.load_nums))

    def bus_load_target_q(self, bus_num: int) -> float:
        return sum(self.loads[ld].target_q for ld in self.buses[bus_num].load_nums)

    def bus_target_q(self, bus_num: int) -> float:
        """Scheduled net reactive power injection of a non voltage-controlled bus."""
        return self.buses[bus_num].generation_target_q - self.bus_load_target_q(bus_num)

    def bus_fixed_generation_q(self, bus_num: int) -> float:
        """Reactive generation of the generators not regulating voltage."""
        return sum(self.generators[g].target_q for g in self.buses[bus_num].generator_nums
                   if not self.generators[g].voltage_regulator_on)

    def bus_min_q(self, bus_num: int) -> float:
        return sum(self.generators[g].min_q for g in self.buses[bus_num].generator_nums
                   if self.generators[g].voltage_regulator_on)

    def bus_max_q(self, bus_num: int) -> float:
        return sum(self.generators[g].max_q for g in self.buses[bus_num].generator_nums
                   if self.generators[g].voltage_regulator_on)

    def bus_max_p(self, bus_num: int) -> float:
        return sum(self.generators[g].max_p for g in self.buses[bus_num].generator_nums)

    def bus_generation_target_p(self, bus_num: int) -> float:
        return sum(self.generators[g].target_p for g in self.buses[bus_num].generator_nums)

    def neighbour_bus_nums(self, bus_num: int) -> List[int]:
        result = []
        for branch_num in self.buses[bus_num].branch_nums:
            branch = self.branches[branch_num]
            result.append(branch.bus2_num if branch.bus1_num == bus_num else branch.bus1_num)
        return result

    @property
    def slack_bus(self) -> Optional[LfBus]:
        for bus in self.buses:
            if bus.slack:
                return bus
        return None

    def voltage_controlled_buses(self) -> List[LfBus]:
        return [bus for bus in self.buses if bus.voltage_control_enabled]

    # =========================================================================
    # Validation
    # =========================================================================

    def connected_component_count(self) -> int:
        n = len(self.buses)
        if n == 0:
            return 0
        rows = np.array([b.bus1_num for b in self.branches], dtype=np.int64)
        cols = np.array([b.bus2_num for b in self.branches], dtype=np.int64)
        adjacency = csr_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n))
        count, _ = connected_components(adjacency, directed=False)
        return count

    def validate(self) -> Optional[str]:
        """
        Check that the network can be solved.

        Returns
        -------
        str or None
            Reason why no calculation is possible, or None if the network
            is valid.
        """
        if not self.buses:
            return "Network has no bus"
        if not self.voltage_controlled_buses():
            return "Network has no voltage-controlled bus to use as slack"
        count = self.connected_component_count()
        if count > 1:
            return f"Network is split into {count} connected components"
        return None
