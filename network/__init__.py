"""
Network Module
==============

This module provides the load flow network model.

Classes
-------
LfNetwork
    Index-based arena of buses, branches, generators, loads and shunts.
NetworkListener
    Observer of network mutations.

Functions
---------
select_slack_bus
    Select and flag the slack bus.
load_pandapower_network
    Build an LfNetwork from a pandapower network.
"""

from network.elements import (
    LfBus,
    LfBranch,
    LfGenerator,
    LfLoad,
    LfShunt,
    TapChanger,
    PhaseControl,
    PhaseControlMode,
    ControlledSide,
    TransformerVoltageControl,
    ShuntVoltageControl,
    ReactiveLimitType,
)
from network.listener import NetworkListener
from network.lf_network import LfNetwork
from network.slack_bus import select_slack_bus
from network.pandapower_loader import load_pandapower_network

__all__ = [
    "LfBus",
    "LfBranch",
    "LfGenerator",
    "LfLoad",
    "LfShunt",
    "TapChanger",
    "PhaseControl",
    "PhaseControlMode",
    "ControlledSide",
    "TransformerVoltageControl",
    "ShuntVoltageControl",
    "ReactiveLimitType",
    "NetworkListener",
    "LfNetwork",
    "select_slack_bus",
    "load_pandapower_network",
]
