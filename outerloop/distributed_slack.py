"""
Distributed Slack Outer Loop Module
===================================

Moves the slack bus active power mismatch to participating generators or
loads.
"""

import logging
from dataclasses import dataclass

from core.exceptions import SlackDistributionFailure
from core.parameters import DISTRIBUTED_SLACK
from core.per_unit import SB
from outerloop.active_power_distribution import P_RESIDUE_EPS, ActivePowerDistribution
from outerloop.base import OuterLoop, OuterLoopContext, OuterLoopStatus

logger = logging.getLogger(__name__)


@dataclass
class DistributedSlackData:
    """Active power distributed so far in this solve, in per-unit."""
    distributed_active_power: float = 0.0


class DistributedSlackOuterLoop(OuterLoop):
    """
    Parameters
    ----------
    distribution : ActivePowerDistribution
        Allocation rule.
    slack_bus_p_max_mismatch : float
        Mismatch tolerated without distribution, in MW.
    throw_on_failure : bool
        Raise SlackDistributionFailure when the mismatch cannot be fully
        distributed, instead of logging it.
    """

    def __init__(self, distribution: ActivePowerDistribution, slack_bus_p_max_mismatch: float,
                 throw_on_failure: bool = False) -> None:
        self.distribution = distribution
        self.slack_bus_p_max_mismatch = slack_bus_p_max_mismatch
        self.throw_on_failure = throw_on_failure

    @property
    def name(self) -> str:
        return DISTRIBUTED_SLACK

    def initialize(self, context: OuterLoopContext) -> None:
        context.data[self.name] = DistributedSlackData()

    def check(self, context: OuterLoopContext) -> OuterLoopStatus:
        mismatch = context.last_solver_result.slack_bus_active_power_mismatch
        if abs(mismatch) <= max(self.slack_bus_p_max_mismatch / SB, P_RESIDUE_EPS):
            logger.debug("Slack bus active power mismatch %.3f MW within tolerance",
                         mismatch * SB)
            return OuterLoopStatus.STABLE

        network = context.network
        result = self.distribution.run(network, mismatch)
        data = context.get_data(self.name, DistributedSlackData)
        data.distributed_active_power += float(mismatch - result.remaining_mismatch)

        if abs(result.remaining_mismatch) > P_RESIDUE_EPS:
            if self.throw_on_failure:
                raise SlackDistributionFailure(result.remaining_mismatch)
            logger.warning("Network '%s': failed to distribute slack bus active power "
                           "mismatch, %.3f MW remains", network.id,
                           result.remaining_mismatch * SB)
            return OuterLoopStatus.UNSTABLE if result.moved else OuterLoopStatus.STABLE

        logger.info("Network '%s': slack bus active power (%.3f MW) distributed in %d "
                    "iterations", network.id, mismatch * SB, result.iterations)
        return OuterLoopStatus.UNSTABLE
