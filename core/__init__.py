"""
Core Module
============

This module provides the shared building blocks of the load flow.

Classes
-------
LoadFlowParameters
    Immutable configuration of one AC load flow run.
LoadFlowError
    Base class of load flow errors.
SlackDistributionFailure
    Raised when slack distribution fails and hard failure is configured.
JacobianSingularError
    Raised when the Jacobian matrix cannot be factorised.

Functions
---------
setup_logging
    Configure the root logger.
"""

from core.per_unit import SB
from core.parameters import (
    LoadFlowParameters,
    SlackBusSelectionMode,
    BalanceType,
    VoltageInitMode,
    StoppingCriteriaType,
    StateVectorScalingMode,
)
from core.exceptions import (
    LoadFlowError,
    SlackDistributionFailure,
    JacobianSingularError,
)
from core.log import setup_logging

__all__ = [
    "SB",
    "LoadFlowParameters",
    "SlackBusSelectionMode",
    "BalanceType",
    "VoltageInitMode",
    "StoppingCriteriaType",
    "StateVectorScalingMode",
    "LoadFlowError",
    "SlackDistributionFailure",
    "JacobianSingularError",
    "setup_logging",
]
