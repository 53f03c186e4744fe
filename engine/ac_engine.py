"""
AC Load Flow Engine Module
==========================

Runs one complete AC load flow on one network:

1. Validate the network and select its slack bus (NO_CALCULATION result
   when either is impossible).
2. Create the equation system, Jacobian matrix and vectors.
3. Initialise the state with the configured voltage initializer.
4. Iterate Newton-Raphson and the outer loops until stable.
5. Write voltages, bus injections and branch flows back to the network.
6. Release every resource, also when an exception propagates.
"""

import logging
from typing import List, Optional, Sequence

from core.parameters import DISTRIBUTED_SLACK, LoadFlowParameters
from engine.context import AcLoadFlowContext
from engine.debug_dump import write_debug_dump
from engine.result import AcLoadFlowResult
from network.lf_network import LfNetwork
from network.slack_bus import select_slack_bus
from outerloop.base import OuterLoopContext
from outerloop.config import create_outer_loops
from outerloop.framework import OuterLoopFramework
from solver.base import create_solver
from solver.voltage_initializer import create_voltage_initializer, initialize_variables

logger = logging.getLogger(__name__)


class AcLoadFlowEngine:
    """
    AC load flow of one network.

    Parameters
    ----------
    network : LfNetwork
        Network to solve. Its buses and branches receive the final state.
    parameters : LoadFlowParameters, optional
        Defaults to LoadFlowParameters().
    """

    def __init__(self, network: LfNetwork,
                 parameters: Optional[LoadFlowParameters] = None) -> None:
        self.network = network
        self.parameters = parameters if parameters is not None else LoadFlowParameters()

    def run(self) -> AcLoadFlowResult:
        """
        Solve the network.

        Returns
        -------
        AcLoadFlowResult

        Raises
        ------
        SlackDistributionFailure
            If the slack mismatch cannot be distributed and
            ``throw_on_slack_distribution_failure`` is set.
        """
        network = self.network
        parameters = self.parameters
        log_extra = {"network_id": network.id}

        reason = network.validate()
        if reason is None and select_slack_bus(network, parameters) is None:
            reason = "No slack bus could be selected"
        if reason is not None:
            logger.warning("Network '%s': no calculation, %s", network.id, reason,
                           extra=log_extra)
            return AcLoadFlowResult.no_calculation(network.id, reason)

        with AcLoadFlowContext(network, parameters) as lf_context:
            es = lf_context.equation_system
            initialize_variables(es, network,
                                 create_voltage_initializer(parameters.voltage_initializer))
            solver = create_solver(parameters.solver, network, parameters, es,
                                   lf_context.jacobian, lf_context.target_vector,
                                   lf_context.equation_vector)
            framework = OuterLoopFramework(create_outer_loops(parameters),
                                           parameters.max_outer_loop_iterations)
            context = OuterLoopContext(network, lf_context)
            framework_result = framework.run(context, solver)

            self._update_network(lf_context)
            if parameters.debug_dir is not None:
                write_debug_dump(parameters.debug_dir, network, es)

        slack_data = context.data.get(DISTRIBUTED_SLACK)
        distributed = slack_data.distributed_active_power if slack_data is not None else 0.0
        solver_result = framework_result.solver_result
        result = AcLoadFlowResult(
            network_id=network.id,
            solver_status=solver_result.status,
            newton_raphson_iterations=framework_result.newton_raphson_iterations,
            outer_loop_iterations=framework_result.outer_loop_iterations,
            slack_bus_active_power_mismatch=solver_result.slack_bus_active_power_mismatch,
            distributed_active_power=distributed,
        )
        logger.info("Network '%s': load flow %s (%d outer loop iterations, %d Newton-Raphson "
                    "iterations, slack mismatch %.3f MW)", network.id,
                    result.solver_status.value, result.outer_loop_iterations,
                    result.newton_raphson_iterations,
                    result.slack_bus_active_power_mismatch_mw, extra=log_extra)
        return result

    def _update_network(self, lf_context: AcLoadFlowContext) -> None:
        es = lf_context.equation_system
        network = self.network
        for bus in network.buses:
            bus.v = es.bus_v(bus.num)
            bus.angle = es.bus_phi(bus.num)
            bus.p = es.bus_p(bus.num)
            bus.q = es.bus_q(bus.num)
        for branch in network.branches:
            terms = es.branch_terms[branch.num]
            branch.p1 = terms.p1.eval()
            branch.q1 = terms.q1.eval()
            branch.p2 = terms.p2.eval()
            branch.q2 = terms.q2.eval()
            branch.i1 = terms.i1.eval()
            branch.i2 = terms.i2.eval()


def run_ac_load_flow(network: LfNetwork,
                     parameters: Optional[LoadFlowParameters] = None) -> AcLoadFlowResult:
    """Run an AC load flow on one network."""
    return AcLoadFlowEngine(network, parameters).run()


def run_all(networks: Sequence[LfNetwork],
            parameters: Optional[LoadFlowParameters] = None) -> List[AcLoadFlowResult]:
    """
    Run independent AC load flows, one per network, in sequence.

    Networks share no state, so callers may also fan them out to threads
    or processes.
    """
    return [run_ac_load_flow(network, parameters) for network in networks]
