"""
Newton-Raphson Module
=====================

This module implements the default AC solver.

Each iteration evaluates the mismatch ``target - f(x)``, stops if the
stopping criteria accept it, and otherwise solves ``J dx = mismatch`` and
moves the state by the (optionally scaled) correction:

    x^{k+1} = x^k + J(x^k)^{-1} (target - f(x^k))

Numerical failures never raise: a singular Jacobian or a non-finite
mismatch ends the run with SOLVER_FAILED, reaching the iteration cap
with MAX_ITERATION_REACHED. A converged state whose voltages fall outside
the realistic band is reported as UNREALISTIC_STATE.
"""

import logging
from typing import List

import numpy as np
from numpy.typing import NDArray

from core.exceptions import JacobianSingularError
from equations.types import VariableType
from solver.base import AcSolver, register_solver
from solver.state_scaling import create_state_vector_scaling
from solver.status import AcSolverResult, AcSolverStatus
from solver.stopping_criteria import create_stopping_criteria

logger = logging.getLogger(__name__)

NEWTON_RAPHSON = "NEWTON_RAPHSON"


class NewtonRaphson(AcSolver):
    """Newton-Raphson AC solver on the sparse Jacobian matrix."""

    @property
    def name(self) -> str:
        return NEWTON_RAPHSON

    def _mismatch(self) -> NDArray[np.float64]:
        return self.target_vector.array - self.equation_vector.array

    def _apply(self, x: NDArray[np.float64]) -> None:
        self.equation_system.state_vector.set(x)
        self.equation_system.update()

    def run(self) -> AcSolverResult:
        """
        Run Newton-Raphson from the current state.

        Returns
        -------
        AcSolverResult
            Status, iteration count, slack bus mismatch and mismatch history.
        """
        stopping_criteria = create_stopping_criteria(self.parameters)
        scaling = create_state_vector_scaling(self.parameters.state_vector_scaling)
        max_iterations = self.parameters.max_newton_raphson_iterations
        es = self.equation_system

        norms: List[float] = []
        iteration = 0
        while True:
            mismatch = self._mismatch()
            if not np.all(np.isfinite(mismatch)):
                logger.warning("Network '%s': non-finite mismatch at iteration %d",
                               self.network.id, iteration)
                status = AcSolverStatus.SOLVER_FAILED
                break
            criteria = stopping_criteria.test(mismatch, es)
            norms.append(criteria.norm)
            logger.debug("Newton-Raphson iteration %d: max mismatch %.3e", iteration, criteria.norm)
            if criteria.stop:
                status = AcSolverStatus.CONVERGED
                break
            if iteration >= max_iterations:
                status = AcSolverStatus.MAX_ITERATION_REACHED
                break
            try:
                dx = self.jacobian.solve(mismatch)
            except JacobianSingularError as e:
                logger.warning("Network '%s': %s", self.network.id, e)
                status = AcSolverStatus.SOLVER_FAILED
                break

            x0 = es.state_vector.array.copy()

            def trial_norm(step: NDArray[np.float64]) -> float:
                self._apply(x0 + step)
                trial = self._mismatch()
                return float(np.max(np.abs(trial))) if len(trial) else 0.0

            dx = scaling.apply(dx, es, criteria.norm, trial_norm)
            self._apply(x0 + dx)
            iteration += 1

        if status is AcSolverStatus.CONVERGED and not self._is_state_realistic():
            status = AcSolverStatus.UNREALISTIC_STATE

        self._update_network()
        slack_mismatch = self._slack_bus_active_power_mismatch()
        logger.info("Network '%s': Newton-Raphson %s after %d iterations "
                    "(slack mismatch %.3f MW)", self.network.id, status.value, iteration,
                    slack_mismatch * 100.0)
        return AcSolverResult(status, iteration, slack_mismatch, tuple(norms))

    def _is_state_realistic(self) -> bool:
        low = self.parameters.min_realistic_voltage
        high = self.parameters.max_realistic_voltage
        unrealistic = []
        for v in self.equation_system.index.sorted_variables():
            if v.type is not VariableType.BUS_V:
                continue
            bus = self.network.buses[v.element_num]
            if not bus.fictitious and not low <= v.value <= high:
                unrealistic.append(f"{bus.id} ({v.value:.4f} pu)")
        if unrealistic:
            logger.warning("Network '%s': %d buses with unrealistic voltage: %s",
                           self.network.id, len(unrealistic), ", ".join(unrealistic))
            return False
        return True

    def _update_network(self) -> None:
        es = self.equation_system
        for bus in self.network.buses:
            v = es.get_variable(bus.num, VariableType.BUS_V)
            phi = es.get_variable(bus.num, VariableType.BUS_PHI)
            if v is not None:
                bus.v = v.value
            if phi is not None:
                bus.angle = phi.value

    def _slack_bus_active_power_mismatch(self) -> float:
        slack = self.network.slack_bus
        if slack is None:
            return 0.0
        return float(self.equation_system.bus_p(slack.num) - self.network.bus_target_p(slack.num))


register_solver(NEWTON_RAPHSON, NewtonRaphson)
