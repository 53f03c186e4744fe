"""
Incremental Transformer Voltage Control Outer Loop Module
=========================================================

Voltage regulation by ratio tap changers, moving taps by whole positions.

Controllers regulating the same bus are moved together, one tap at a time
each, until the voltage correction derived from the sensitivity is
covered. A controller whose bus is also held by a generator is disabled
for the solve and re-enabled by cleanup.
"""

import logging
from typing import Dict, List

from core.exceptions import JacobianSingularError
from core.parameters import INCREMENTAL_TRANSFORMER_VOLTAGE_CONTROL
from core.per_unit import kv_to_pu
from equations.ac_system import is_voltage_controller
from equations.types import EquationType, VariableType
from outerloop.base import OuterLoop, OuterLoopContext, OuterLoopStatus
from outerloop.incremental import (
    ControllerContext,
    DiscreteController,
    adjust_with_steps,
    calculate_sensitivities,
    sensitivity,
)

logger = logging.getLogger(__name__)

# Minimum deadband of a voltage controller, in kV.
MIN_TARGET_DEADBAND_KV = 0.1
DEFAULT_MAX_TAP_SHIFT = 3


class IncrementalTransformerVoltageControlOuterLoop(OuterLoop):
    """
    Parameters
    ----------
    max_tap_shift : int
        Maximum number of tap positions moved per controller and round.
    max_direction_change : int
        Reversals after which a controller is locked to its direction.
    """

    def __init__(self, max_tap_shift: int = DEFAULT_MAX_TAP_SHIFT,
                 max_direction_change: int = 2) -> None:
        self.max_tap_shift = max_tap_shift
        self.max_direction_change = max_direction_change
        self._controllers_by_bus: Dict[int, List[int]] = {}
        self._disabled: List[int] = []

    @property
    def name(self) -> str:
        return INCREMENTAL_TRANSFORMER_VOLTAGE_CONTROL

    def initialize(self, context: OuterLoopContext) -> None:
        network = context.network
        contexts: Dict[str, ControllerContext] = {}
        self._controllers_by_bus = {}
        self._disabled = []
        for branch in network.branches:
            if not is_voltage_controller(branch, context.parameters):
                continue
            control = branch.voltage_control
            bus = network.buses[control.controlled_bus_num]
            if bus.voltage_control_enabled:
                logger.debug("Branch '%s': bus '%s' already voltage controlled by a "
                             "generator, transformer control disabled", branch.id, bus.id)
                control.enabled = False
                self._disabled.append(branch.num)
                continue
            self._controllers_by_bus.setdefault(bus.num, []).append(branch.num)
            contexts[branch.id] = ControllerContext(self.max_direction_change)
        context.data[self.name] = contexts

    def check(self, context: OuterLoopContext) -> OuterLoopStatus:
        if not self._controllers_by_bus:
            return OuterLoopStatus.STABLE
        network = context.network
        lf_context = context.loadflow_context
        es = lf_context.equation_system

        out_of_band = []
        for bus_num, branch_nums in self._controllers_by_bus.items():
            bus = network.buses[bus_num]
            control = network.branches[branch_nums[0]].voltage_control
            half_deadband = max(control.target_deadband,
                                kv_to_pu(MIN_TARGET_DEADBAND_KV, bus.nominal_v)) / 2
            diff = es.bus_v(bus_num) - control.target_v
            if abs(diff) > half_deadband:
                out_of_band.append((bus_num, branch_nums, diff))
        if not out_of_band:
            return OuterLoopStatus.STABLE

        try:
            sensitivities = calculate_sensitivities(
                lf_context.jacobian, es,
                [es.get_variable(bus_num, VariableType.BUS_V) for bus_num, _, _ in out_of_band],
            )
        except JacobianSingularError as e:
            logger.warning("Transformer voltage control sensitivities unavailable: %s", e)
            return OuterLoopStatus.STABLE

        contexts = context.data[self.name]
        steps = 0
        for k, (bus_num, branch_nums, diff) in enumerate(out_of_band):
            controllers = []
            for num in sorted(branch_nums, key=lambda n: network.branches[n].id):
                branch = network.branches[num]
                tap_changer = branch.tap_changer
                equation = es.get_equation(num, EquationType.BRANCH_TARGET_RHO1)
                controllers.append(DiscreteController(
                    id=branch.id,
                    position=lambda tc=tap_changer: tc.position,
                    low_position=tap_changer.low_position,
                    high_position=tap_changer.high_position,
                    value_at=tap_changer.rho_at,
                    move_to=lambda p, n=num: network.set_tap_position(n, p),
                    sensitivity=sensitivity(sensitivities, equation, k),
                    context=contexts[branch.id],
                ))
            moved = adjust_with_steps(controllers, -diff, self.max_tap_shift)
            if moved:
                logger.debug("Bus '%s' voltage off target by %.4f pu: %d tap steps",
                             network.buses[bus_num].id, diff, moved)
            steps += moved

        return OuterLoopStatus.UNSTABLE if steps else OuterLoopStatus.STABLE

    def cleanup(self, network) -> None:
        for num in self._disabled:
            network.branches[num].voltage_control.enabled = True
        self._disabled = []
