"""
Outer Loop Module
=================

This module provides the discrete adjustments iterated with the solver.

Classes
-------
OuterLoop
    Abstract outer loop with initialize, check and cleanup.
OuterLoopContext
    Per-solve state shared by the outer loops.
OuterLoopFramework
    Fixed-point iteration of solver runs and outer-loop rounds.
DistributedSlackOuterLoop
    Slack bus active power distribution.
ReactiveLimitsOuterLoop
    PV/PQ switching on generator reactive limits.
IncrementalPhaseControlOuterLoop
    Phase shifter active power control by tap steps.
IncrementalTransformerVoltageControlOuterLoop
    Transformer voltage control by tap steps.
IncrementalShuntVoltageControlOuterLoop
    Shunt voltage control by section steps.
ContingencyOuterLoop
    Always stable placeholder.

Functions
---------
create_outer_loops
    Ordered outer loops of a run from its parameters.
"""

from outerloop.base import OuterLoop, OuterLoopContext, OuterLoopStatus
from outerloop.framework import OuterLoopFramework, OuterLoopFrameworkResult
from outerloop.active_power_distribution import (
    ActivePowerDistribution,
    ActivePowerDistributionResult,
    GenerationActivePowerDistributionStep,
    LoadActivePowerDistributionStep,
)
from outerloop.distributed_slack import DistributedSlackOuterLoop
from outerloop.reactive_limits import ReactiveLimitsOuterLoop
from outerloop.incremental import (
    AllowedDirection,
    ControllerContext,
    Direction,
    DiscreteController,
    adjust_with_steps,
    calculate_sensitivities,
)
from outerloop.phase_control import IncrementalPhaseControlOuterLoop
from outerloop.transformer_voltage_control import IncrementalTransformerVoltageControlOuterLoop
from outerloop.shunt_voltage_control import IncrementalShuntVoltageControlOuterLoop
from outerloop.contingency import ContingencyOuterLoop
from outerloop.config import create_outer_loops

__all__ = [
    "OuterLoop",
    "OuterLoopContext",
    "OuterLoopStatus",
    "OuterLoopFramework",
    "OuterLoopFrameworkResult",
    "ActivePowerDistribution",
    "ActivePowerDistributionResult",
    "GenerationActivePowerDistributionStep",
    "LoadActivePowerDistributionStep",
    "DistributedSlackOuterLoop",
    "ReactiveLimitsOuterLoop",
    "AllowedDirection",
    "ControllerContext",
    "Direction",
    "DiscreteController",
    "adjust_with_steps",
    "calculate_sensitivities",
    "IncrementalPhaseControlOuterLoop",
    "IncrementalTransformerVoltageControlOuterLoop",
    "IncrementalShuntVoltageControlOuterLoop",
    "ContingencyOuterLoop",
    "create_outer_loops",
]
