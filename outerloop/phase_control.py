"""
Incremental Phase Control Outer Loop Module
===========================================

Active power regulation by phase shifting transformers, moving their tap
by whole positions.

For each controller outside its deadband, the sensitivity of the
controlled flow to the phase shift gives the desired shift change, which
is converted into tap steps bounded by ``max_tap_shift`` per round and
by the controller direction lock.
"""

import logging
from typing import Dict, List

from core.exceptions import JacobianSingularError
from core.parameters import INCREMENTAL_PHASE_CONTROL
from core.per_unit import SB
from equations.ac_system import is_phase_controller
from equations.types import EquationType
from network.elements import ControlledSide, PhaseControlMode
from outerloop.base import OuterLoop, OuterLoopContext, OuterLoopStatus
from outerloop.incremental import (
    ControllerContext,
    DiscreteController,
    adjust_with_steps,
    calculate_sensitivities,
    sensitivity,
)

logger = logging.getLogger(__name__)

# Minimum deadband of a phase controller, in per-unit.
MIN_TARGET_DEADBAND = 1.0 / SB


class IncrementalPhaseControlOuterLoop(OuterLoop):
    """
    Parameters
    ----------
    max_tap_shift : int
        Maximum number of tap positions moved per controller and round.
    max_direction_change : int
        Reversals after which a controller is locked to its direction.
    """

    def __init__(self, max_tap_shift: int = 3, max_direction_change: int = 2) -> None:
        self.max_tap_shift = max_tap_shift
        self.max_direction_change = max_direction_change
        self._controller_nums: List[int] = []

    @property
    def name(self) -> str:
        return INCREMENTAL_PHASE_CONTROL

    def initialize(self, context: OuterLoopContext) -> None:
        network = context.network
        contexts: Dict[str, ControllerContext] = {}
        self._controller_nums = []
        for branch in network.branches:
            if not is_phase_controller(branch, context.parameters):
                continue
            if branch.phase_control.mode is PhaseControlMode.CURRENT_LIMITER:
                logger.warning("Branch '%s': current limiter phase control is not supported, "
                               "tap kept at position %d", branch.id, branch.tap_changer.position)
                continue
            self._controller_nums.append(branch.num)
            contexts[branch.id] = ControllerContext(self.max_direction_change)
        context.data[self.name] = contexts

    def check(self, context: OuterLoopContext) -> OuterLoopStatus:
        if not self._controller_nums:
            return OuterLoopStatus.STABLE
        network = context.network
        lf_context = context.loadflow_context
        es = lf_context.equation_system

        out_of_band = []
        for num in self._controller_nums:
            branch = network.branches[num]
            control = branch.phase_control
            terms = es.branch_terms[num]
            term = terms.p1 if control.controlled_side is ControlledSide.SIDE_1 else terms.p2
            half_deadband = max(control.target_deadband, MIN_TARGET_DEADBAND) / 2
            diff = term.eval() - control.target_value
            if abs(diff) > half_deadband:
                out_of_band.append((branch, term, diff))
        if not out_of_band:
            return OuterLoopStatus.STABLE

        try:
            sensitivities = calculate_sensitivities(lf_context.jacobian, es,
                                                    [term for _, term, _ in out_of_band])
        except JacobianSingularError as e:
            logger.warning("Phase control sensitivities unavailable: %s", e)
            return OuterLoopStatus.STABLE

        contexts = context.data[self.name]
        steps = 0
        for k, (branch, _, diff) in enumerate(out_of_band):
            equation = es.get_equation(branch.num, EquationType.BRANCH_TARGET_ALPHA1)
            tap_changer = branch.tap_changer
            controller = DiscreteController(
                id=branch.id,
                position=lambda tc=tap_changer: tc.position,
                low_position=tap_changer.low_position,
                high_position=tap_changer.high_position,
                value_at=tap_changer.alpha_at,
                move_to=lambda p, n=branch.num: network.set_tap_position(n, p),
                sensitivity=sensitivity(sensitivities, equation, k),
                context=contexts[branch.id],
            )
            moved = adjust_with_steps([controller], -diff, self.max_tap_shift)
            if moved:
                logger.debug("Phase shifter '%s': %d tap steps to position %d (flow off "
                             "target by %.3f MW)", branch.id, moved, tap_changer.position,
                             diff * SB)
            steps += moved

        return OuterLoopStatus.UNSTABLE if steps else OuterLoopStatus.STABLE
