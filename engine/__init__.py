"""
Engine Module
=============

This module provides the AC load flow entry points.

Classes
-------
AcLoadFlowEngine
    One complete AC load flow on one network.
AcLoadFlowContext
    Scoped equation system, Jacobian matrix and vectors of a run.
AcLoadFlowResult
    Result record of a run.

Functions
---------
run_ac_load_flow
    Solve one network.
run_all
    Solve several independent networks.
"""

from engine.context import AcLoadFlowContext
from engine.result import AcLoadFlowResult
from engine.ac_engine import AcLoadFlowEngine, run_ac_load_flow, run_all
from engine.debug_dump import equation_system_to_dict, write_debug_dump

__all__ = [
    "AcLoadFlowContext",
    "AcLoadFlowResult",
    "AcLoadFlowEngine",
    "run_ac_load_flow",
    "run_all",
    "equation_system_to_dict",
    "write_debug_dump",
]
