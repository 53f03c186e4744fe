"""
Slack Bus Selection Module
==========================

Selection of the slack bus among the voltage-controlled buses of a network.
"""

import logging
from typing import List, Optional

from core.parameters import LoadFlowParameters, SlackBusSelectionMode
from network.elements import LfBus
from network.lf_network import LfNetwork

logger = logging.getLogger(__name__)


def _most_meshed(network: LfNetwork, candidates: List[LfBus]) -> LfBus:
    # most branches first, then highest nominal voltage, then smallest id
    return min(candidates, key=lambda b: (-len(b.branch_nums), -b.nominal_v, b.id))


def _largest_generator(network: LfNetwork, candidates: List[LfBus]) -> LfBus:
    return min(candidates, key=lambda b: (-network.bus_max_p(b.num), b.id))


def select_slack_bus(network: LfNetwork, parameters: LoadFlowParameters) -> Optional[LfBus]:
    """
    Select and flag the slack bus of a network.

    Parameters
    ----------
    network : LfNetwork
        Network to update. Any previous slack flag is cleared.
    parameters : LoadFlowParameters
        Provides the selection mode and, for mode NAME, the candidate ids.

    Returns
    -------
    LfBus or None
        The selected bus, or None if no voltage-controlled candidate exists.
    """
    for bus in network.buses:
        bus.slack = False

    candidates = [bus for bus in network.buses
                  if bus.voltage_control_enabled and not bus.fictitious]
    if not candidates:
        return None

    mode = parameters.slack_bus_selection_mode
    if mode is SlackBusSelectionMode.FIRST:
        slack = candidates[0]
    elif mode is SlackBusSelectionMode.MOST_MESHED:
        slack = _most_meshed(network, candidates)
    elif mode is SlackBusSelectionMode.LARGEST_GENERATOR:
        slack = _largest_generator(network, candidates)
    elif mode is SlackBusSelectionMode.NAME:
        slack = None
        for bus_id in parameters.slack_bus_ids:
            bus = network.find_bus_by_id(bus_id)
            if bus is not None:
                slack = bus
                break
        if slack is None:
            logger.warning("None of the slack bus ids %s found in network '%s'",
                           parameters.slack_bus_ids, network.id)
            return None
    else:
        raise ValueError(f"Unsupported slack bus selection mode {mode}")

    slack.slack = True
    logger.info("Network '%s': slack bus '%s' selected (%s)", network.id, slack.id, mode.value)
    return slack
