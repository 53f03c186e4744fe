"""
Reactive Limits Outer Loop Module
=================================

Enforcement of generator reactive power limits by PV/PQ switching.

A voltage-controlled bus whose reactive generation leaves [min_q, max_q]
is switched to PQ with its generation pinned at the violated limit. A bus
pinned at a limit goes back to PV when its voltage crosses the target in
the direction allowing it to leave the limit:

- pinned at MIN_Q (absorbing) and V < target_v,
- pinned at MAX_Q (producing) and V > target_v.

A bus goes back to PV at most ``max_pq_pv_switch`` times per solve.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from core.parameters import REACTIVE_LIMITS
from core.per_unit import SB
from network.elements import LfBus, ReactiveLimitType
from outerloop.base import OuterLoop, OuterLoopContext, OuterLoopStatus

logger = logging.getLogger(__name__)

# Reactive power tolerance of the limit checks, in per-unit.
Q_EPS = 1e-5


@dataclass
class PvToPqSwitch:
    bus: LfBus
    limit_type: ReactiveLimitType
    q_limit: float


@dataclass
class ReactiveLimitsData:
    """PQ to PV switch count per bus number."""
    pq_pv_switch_count: Dict[int, int] = field(default_factory=dict)


def strongest_bus_key(network, bus: LfBus):
    """Ordering key, the strongest voltage-controlled bus has the largest key."""
    return (bus.nominal_v, network.bus_generation_target_p(bus.num), bus.id)


class ReactiveLimitsOuterLoop(OuterLoop):
    """
    Parameters
    ----------
    max_pq_pv_switch : int
        Maximum number of PQ to PV switches per bus and per solve.
    """

    def __init__(self, max_pq_pv_switch: int = 2) -> None:
        self.max_pq_pv_switch = max_pq_pv_switch

    @property
    def name(self) -> str:
        return REACTIVE_LIMITS

    def initialize(self, context: OuterLoopContext) -> None:
        context.data[self.name] = ReactiveLimitsData()

    @staticmethod
    def calculated_generation_q(context: OuterLoopContext, bus: LfBus) -> float:
        """Reactive power produced by the generators of a bus."""
        es = context.loadflow_context.equation_system
        return es.bus_q(bus.num) + context.network.bus_load_target_q(bus.num)

    def _find_pv_to_pq(self, context: OuterLoopContext) -> List[PvToPqSwitch]:
        network = context.network
        switches = []
        for bus in network.buses:
            if not bus.voltage_control_enabled or not bus.generator_nums:
                continue
            fixed_q = network.bus_fixed_generation_q(bus.num)
            q = self.calculated_generation_q(context, bus) - fixed_q
            min_q = network.bus_min_q(bus.num)
            max_q = network.bus_max_q(bus.num)
            if q < min_q - Q_EPS:
                switches.append(PvToPqSwitch(bus, ReactiveLimitType.MIN_Q, min_q))
            elif q > max_q + Q_EPS:
                switches.append(PvToPqSwitch(bus, ReactiveLimitType.MAX_Q, max_q))
        return switches

    def _find_pq_to_pv(self, context: OuterLoopContext, data: ReactiveLimitsData) -> List[LfBus]:
        buses = []
        for bus in context.network.buses:
            if bus.voltage_control_enabled or bus.reactive_limit_type is None:
                continue
            count = data.pq_pv_switch_count.get(bus.num, 0)
            if bus.reactive_limit_type is ReactiveLimitType.MIN_Q:
                unlock = bus.v < bus.target_v
            else:
                unlock = bus.v > bus.target_v
            if not unlock:
                continue
            if count >= self.max_pq_pv_switch:
                logger.debug("Bus '%s' blocked PQ after %d switches back to PV", bus.id, count)
                continue
            buses.append(bus)
        return buses

    def check(self, context: OuterLoopContext) -> OuterLoopStatus:
        network = context.network
        data = context.get_data(self.name, ReactiveLimitsData)

        pq_to_pv = self._find_pq_to_pv(context, data)
        pv_to_pq = self._find_pv_to_pq(context)

        pv_count = len(network.voltage_controlled_buses())
        if pv_to_pq and len(pv_to_pq) == pv_count:
            strongest = max(pv_to_pq, key=lambda s: strongest_bus_key(network, s.bus))
            pv_to_pq.remove(strongest)
            logger.warning("Network '%s': all voltage-controlled buses exceed their reactive "
                           "limits, bus '%s' kept PV", network.id, strongest.bus.id)

        for switch in pv_to_pq:
            bus = switch.bus
            network.set_voltage_control_enabled(
                bus.num, False, switch.limit_type,
                switch.q_limit + network.bus_fixed_generation_q(bus.num),
            )
            logger.debug("Bus '%s' switched PV -> PQ at %s (%.3f Mvar)", bus.id,
                         switch.limit_type.value, switch.q_limit * SB)

        for bus in pq_to_pv:
            network.set_voltage_control_enabled(bus.num, True)
            data.pq_pv_switch_count[bus.num] = data.pq_pv_switch_count.get(bus.num, 0) + 1
            logger.debug("Bus '%s' switched PQ -> PV", bus.id)

        if pv_to_pq or pq_to_pv:
            logger.info("Network '%s': %d buses switched PV -> PQ, %d buses switched PQ -> PV",
                        network.id, len(pv_to_pq), len(pq_to_pv))
            return OuterLoopStatus.UNSTABLE
        return OuterLoopStatus.STABLE
