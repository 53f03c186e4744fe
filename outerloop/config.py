"""
Outer Loop Configuration Module
===============================

Builds the ordered list of outer loops of a load flow run.

When ``LoadFlowParameters.outer_loops`` is empty the default order is
used, each loop filtered by its parameter switch:

    DistributedSlack, ReactiveLimits, IncrementalPhaseControl,
    IncrementalTransformerVoltageControl, IncrementalShuntVoltageControl

Otherwise exactly the named loops are created, in the given order.
"""

import logging
from typing import Callable, Dict, List

from core.parameters import (
    CONTINGENCY,
    DISTRIBUTED_SLACK,
    INCREMENTAL_PHASE_CONTROL,
    INCREMENTAL_SHUNT_VOLTAGE_CONTROL,
    INCREMENTAL_TRANSFORMER_VOLTAGE_CONTROL,
    REACTIVE_LIMITS,
    LoadFlowParameters,
)
from outerloop.active_power_distribution import ActivePowerDistribution
from outerloop.base import OuterLoop
from outerloop.contingency import ContingencyOuterLoop
from outerloop.distributed_slack import DistributedSlackOuterLoop
from outerloop.phase_control import IncrementalPhaseControlOuterLoop
from outerloop.reactive_limits import ReactiveLimitsOuterLoop
from outerloop.shunt_voltage_control import IncrementalShuntVoltageControlOuterLoop
from outerloop.transformer_voltage_control import IncrementalTransformerVoltageControlOuterLoop

logger = logging.getLogger(__name__)


def _distributed_slack(parameters: LoadFlowParameters) -> OuterLoop:
    return DistributedSlackOuterLoop(ActivePowerDistribution.create(parameters),
                                     parameters.slack_bus_p_max_mismatch,
                                     parameters.throw_on_slack_distribution_failure)


def _reactive_limits(parameters: LoadFlowParameters) -> OuterLoop:
    return ReactiveLimitsOuterLoop(parameters.max_pq_pv_switch)


def _phase_control(parameters: LoadFlowParameters) -> OuterLoop:
    return IncrementalPhaseControlOuterLoop(parameters.incremental_max_tap_shift,
                                            parameters.max_direction_change)


def _transformer_voltage_control(parameters: LoadFlowParameters) -> OuterLoop:
    return IncrementalTransformerVoltageControlOuterLoop(parameters.incremental_max_tap_shift,
                                                         parameters.max_direction_change)


def _shunt_voltage_control(parameters: LoadFlowParameters) -> OuterLoop:
    return IncrementalShuntVoltageControlOuterLoop(parameters.max_direction_change)


def _contingency(parameters: LoadFlowParameters) -> OuterLoop:
    return ContingencyOuterLoop()


OUTER_LOOP_FACTORIES: Dict[str, Callable[[LoadFlowParameters], OuterLoop]] = {
    DISTRIBUTED_SLACK: _distributed_slack,
    REACTIVE_LIMITS: _reactive_limits,
    INCREMENTAL_PHASE_CONTROL: _phase_control,
    INCREMENTAL_TRANSFORMER_VOLTAGE_CONTROL: _transformer_voltage_control,
    INCREMENTAL_SHUNT_VOLTAGE_CONTROL: _shunt_voltage_control,
    CONTINGENCY: _contingency,
}


def default_outer_loop_names(parameters: LoadFlowParameters) -> List[str]:
    """Names of the loops enabled by the parameter switches, in default order."""
    switches = [
        (DISTRIBUTED_SLACK, parameters.distributed_slack),
        (REACTIVE_LIMITS, parameters.reactive_limits),
        (INCREMENTAL_PHASE_CONTROL, parameters.phase_shifter_regulation),
        (INCREMENTAL_TRANSFORMER_VOLTAGE_CONTROL, parameters.transformer_voltage_control),
        (INCREMENTAL_SHUNT_VOLTAGE_CONTROL, parameters.shunt_voltage_control),
    ]
    return [name for name, enabled in switches if enabled]


def create_outer_loops(parameters: LoadFlowParameters) -> List[OuterLoop]:
    """
    Create the outer loops of a run.

    Parameters
    ----------
    parameters : LoadFlowParameters
        Switches, explicit order and loop tuning.

    Returns
    -------
    List[OuterLoop]
        Loops in the order they are checked each round.
    """
    names = list(parameters.outer_loops) or default_outer_loop_names(parameters)
    outer_loops = [OUTER_LOOP_FACTORIES[name](parameters) for name in names]
    logger.debug("Outer loops: %s", [o.name for o in outer_loops])
    return outer_loops
