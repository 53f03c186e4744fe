"""
Outer Loop Base Module
======================

Capability interface of the outer loops and the per-solve context they
share.

An outer loop inspects the state reached by the solver and may perform a
discrete adjustment (change targets, switch controls, move taps). It
reports UNSTABLE exactly when it mutated the network or the equation
system, so that the solver has to run again.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, Optional


class OuterLoopStatus(Enum):
    STABLE = "STABLE"
    UNSTABLE = "UNSTABLE"


class OuterLoopContext:
    """
    Mutable state of one solve, passed to every outer loop call.

    Attributes
    ----------
    network : LfNetwork
        Network being solved.
    loadflow_context : AcLoadFlowContext
        Gives access to parameters, equation system and Jacobian matrix.
    iteration : int
        Index of the current outer-loop round.
    last_solver_result : AcSolverResult or None
        Result of the solver run preceding the current round.
    data : Dict[str, Any]
        Per outer loop data, keyed by outer loop name. Lives for one solve.
    """

    def __init__(self, network, loadflow_context) -> None:
        self.network = network
        self.loadflow_context = loadflow_context
        self.iteration = 0
        self.last_solver_result = None
        self.data: Dict[str, Any] = {}

    @property
    def parameters(self):
        return self.loadflow_context.parameters

    def get_data(self, name: str, factory: Optional[Callable[[], Any]] = None) -> Any:
        """Data of an outer loop, created by ``factory`` on first access."""
        if name not in self.data and factory is not None:
            self.data[name] = factory()
        return self.data.get(name)


class OuterLoop(ABC):
    """Discrete adjustment performed between solver runs."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    def initialize(self, context: OuterLoopContext) -> None:
        """Called once per solve, before the first solver run."""

    @abstractmethod
    def check(self, context: OuterLoopContext) -> OuterLoopStatus:
        """
        Inspect the solved state and adjust.

        Returns
        -------
        OuterLoopStatus
            UNSTABLE if the network or the equation system was changed.
        """

    def cleanup(self, network) -> None:
        """Called once per solve after the last round, whatever the outcome."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
