"""
Outer Loop Framework Module
===========================

Fixed-point iteration of the solver and the outer loops.

    initialize every loop
    run the solver
    while the solver converged and fewer than max rounds were unstable:
        one round: check every loop once, in order
        if every loop was STABLE: stop
        run the solver again
    cleanup every loop (always)

The framework never looks at the concrete type of a loop.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from outerloop.base import OuterLoop, OuterLoopContext, OuterLoopStatus
from solver.status import AcSolverResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OuterLoopFrameworkResult:
    """
    Outcome of the solver and outer-loop iteration.

    Attributes
    ----------
    solver_result : AcSolverResult
        Result of the last solver run.
    outer_loop_iterations : int
        Number of rounds where at least one loop was UNSTABLE.
    newton_raphson_iterations : int
        Total solver iterations over all runs.
    stable : bool
        The last round was fully STABLE.
    """
    solver_result: AcSolverResult
    outer_loop_iterations: int
    newton_raphson_iterations: int
    stable: bool


class OuterLoopFramework:
    """
    Runs a solver and an ordered list of outer loops until stable.

    Parameters
    ----------
    outer_loops : List[OuterLoop]
        Loops checked in this order every round.
    max_outer_loop_iterations : int
        Maximum number of unstable rounds.
    """

    def __init__(self, outer_loops: List[OuterLoop], max_outer_loop_iterations: int) -> None:
        self.outer_loops = list(outer_loops)
        self.max_outer_loop_iterations = max_outer_loop_iterations

    def _run_round(self, context: OuterLoopContext) -> bool:
        stable = True
        for outer_loop in self.outer_loops:
            status = outer_loop.check(context)
            logger.debug("Outer loop %s round %d: %s", outer_loop.name, context.iteration,
                         status.value,
                         extra={"network_id": context.network.id,
                                "outer_loop": outer_loop.name,
                                "iteration": context.iteration})
            if status is OuterLoopStatus.UNSTABLE:
                stable = False
        return stable

    def run(self, context: OuterLoopContext, solver) -> OuterLoopFrameworkResult:
        """
        Iterate solver runs and outer-loop rounds.

        Parameters
        ----------
        context : OuterLoopContext
            Per-solve context, updated with the round index and last result.
        solver : AcSolver
            Solver run before the first round and after each unstable one.

        Returns
        -------
        OuterLoopFrameworkResult
        """
        for outer_loop in self.outer_loops:
            outer_loop.initialize(context)

        outer_loop_iterations = 0
        stable = False
        result: Optional[AcSolverResult] = None
        try:
            result = solver.run()
            nr_iterations = result.iterations
            while result.converged and outer_loop_iterations < self.max_outer_loop_iterations:
                context.iteration = outer_loop_iterations
                context.last_solver_result = result
                stable = self._run_round(context)
                if stable:
                    break
                outer_loop_iterations += 1
                result = solver.run()
                nr_iterations += result.iterations
            if not stable and result.converged:
                logger.warning("Network '%s': outer loops not stable after %d rounds",
                               context.network.id, outer_loop_iterations)
        finally:
            for outer_loop in self.outer_loops:
                outer_loop.cleanup(context.network)

        context.last_solver_result = result
        return OuterLoopFrameworkResult(result, outer_loop_iterations, nr_iterations,
                                        stable and result.converged)
