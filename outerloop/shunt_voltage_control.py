"""
Incremental Shunt Voltage Control Outer Loop Module
===================================================

Voltage regulation by switching shunt sections, at most one section per
shunt and round. Shunts regulating the same bus are visited by decreasing
section susceptance.
"""

import logging
from typing import Dict, List

from core.exceptions import JacobianSingularError
from core.parameters import INCREMENTAL_SHUNT_VOLTAGE_CONTROL
from core.per_unit import kv_to_pu
from equations.ac_system import is_voltage_controlling_shunt
from equations.types import EquationType, VariableType
from outerloop.base import OuterLoop, OuterLoopContext, OuterLoopStatus
from outerloop.incremental import (
    ControllerContext,
    DiscreteController,
    adjust_with_steps,
    calculate_sensitivities,
    sensitivity,
)
from outerloop.transformer_voltage_control import MIN_TARGET_DEADBAND_KV

logger = logging.getLogger(__name__)

MAX_SECTION_SHIFT = 1


class IncrementalShuntVoltageControlOuterLoop(OuterLoop):

    def __init__(self, max_direction_change: int = 2) -> None:
        self.max_direction_change = max_direction_change
        self._controllers_by_bus: Dict[int, List[int]] = {}
        self._disabled: List[int] = []

    @property
    def name(self) -> str:
        return INCREMENTAL_SHUNT_VOLTAGE_CONTROL

    def initialize(self, context: OuterLoopContext) -> None:
        network = context.network
        contexts: Dict[str, ControllerContext] = {}
        self._controllers_by_bus = {}
        self._disabled = []
        for shunt in network.shunts:
            if not is_voltage_controlling_shunt(shunt, context.parameters):
                continue
            control = shunt.voltage_control
            bus = network.buses[control.controlled_bus_num]
            if bus.voltage_control_enabled:
                logger.debug("Shunt '%s': bus '%s' already voltage controlled by a "
                             "generator, shunt control disabled", shunt.id, bus.id)
                control.enabled = False
                self._disabled.append(shunt.num)
                continue
            self._controllers_by_bus.setdefault(bus.num, []).append(shunt.num)
            contexts[shunt.id] = ControllerContext(self.max_direction_change)
        context.data[self.name] = contexts

    def check(self, context: OuterLoopContext) -> OuterLoopStatus:
        if not self._controllers_by_bus:
            return OuterLoopStatus.STABLE
        network = context.network
        lf_context = context.loadflow_context
        es = lf_context.equation_system

        out_of_band = []
        for bus_num, shunt_nums in self._controllers_by_bus.items():
            bus = network.buses[bus_num]
            control = network.shunts[shunt_nums[0]].voltage_control
            half_deadband = max(control.target_deadband,
                                kv_to_pu(MIN_TARGET_DEADBAND_KV, bus.nominal_v)) / 2
            diff = es.bus_v(bus_num) - control.target_v
            if abs(diff) > half_deadband:
                out_of_band.append((bus_num, shunt_nums, diff))
        if not out_of_band:
            return OuterLoopStatus.STABLE

        try:
            sensitivities = calculate_sensitivities(
                lf_context.jacobian, es,
                [es.get_variable(bus_num, VariableType.BUS_V) for bus_num, _, _ in out_of_band],
            )
        except JacobianSingularError as e:
            logger.warning("Shunt voltage control sensitivities unavailable: %s", e)
            return OuterLoopStatus.STABLE

        contexts = context.data[self.name]
        steps = 0
        for k, (bus_num, shunt_nums, diff) in enumerate(out_of_band):
            controllers = []
            for num in sorted(shunt_nums, key=lambda n: -abs(network.shunts[n].b_per_section)):
                shunt = network.shunts[num]
                equation = es.get_equation(num, EquationType.SHUNT_TARGET_B)
                controllers.append(DiscreteController(
                    id=shunt.id,
                    position=lambda s=shunt: s.section,
                    low_position=0,
                    high_position=shunt.max_section,
                    value_at=lambda p, s=shunt: s.b_per_section * p,
                    move_to=lambda p, n=num: network.set_shunt_section(n, p),
                    sensitivity=sensitivity(sensitivities, equation, k),
                    context=contexts[shunt.id],
                ))
            moved = adjust_with_steps(controllers, -diff, MAX_SECTION_SHIFT)
            if moved:
                logger.debug("Bus '%s' voltage off target by %.4f pu: %d shunt sections "
                             "switched", network.buses[bus_num].id, diff, moved)
            steps += moved

        return OuterLoopStatus.UNSTABLE if steps else OuterLoopStatus.STABLE

    def cleanup(self, network) -> None:
        for num in self._disabled:
            network.shunts[num].voltage_control.enabled = True
        self._disabled = []
