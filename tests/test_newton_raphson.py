"""
Tests for the Newton-Raphson solver, stopping criteria, state scaling and
voltage initializers.
"""

import math
from dataclasses import replace

import numpy as np
import pytest

from core.parameters import (
    LoadFlowParameters,
    SlackBusSelectionMode,
    StateVectorScalingMode,
    StoppingCriteriaType,
    VoltageInitMode,
)
from engine.context import AcLoadFlowContext
from network.slack_bus import select_slack_bus
from solver.base import AcSolver, create_solver, register_solver
from solver.newton_raphson import NewtonRaphson
from solver.state_scaling import LineSearchStateVectorScaling
from solver.status import AcSolverResult, AcSolverStatus
from solver.stopping_criteria import DefaultStoppingCriteria
from solver.voltage_initializer import (
    DcValueVoltageInitializer,
    PreviousValueVoltageInitializer,
    create_voltage_initializer,
    initialize_variables,
)


def _run(network, **kwargs):
    parameters = LoadFlowParameters(slack_bus_selection_mode=SlackBusSelectionMode.NAME,
                                    slack_bus_ids=("b1",), distributed_slack=False,
                                    reactive_limits=False, **kwargs)
    select_slack_bus(network, parameters)
    with AcLoadFlowContext(network, parameters) as context:
        es = context.equation_system
        initialize_variables(es, network,
                             create_voltage_initializer(parameters.voltage_initializer))
        solver = create_solver(parameters.solver, network, parameters, es, context.jacobian,
                               context.target_vector, context.equation_vector)
        return solver.run()


class TestNewtonRaphson:

    def test_converges(self, three_bus_network):
        result = _run(three_bus_network)
        assert result.status is AcSolverStatus.CONVERGED
        assert result.converged
        assert 2 <= result.iterations <= 6

    def test_solution(self, three_bus_network):
        network = three_bus_network
        _run(network, convergence_epsilon=1e-10)
        b1, b2, b3 = network.buses
        assert b1.v == pytest.approx(1.02)
        assert b2.v == pytest.approx(1.01)
        assert b1.angle == pytest.approx(0.0, abs=1e-12)
        assert b3.v < 1.0
        assert b3.angle < 0.0

    def test_power_balance(self, three_bus_network, b1_slack_parameters):
        network = three_bus_network
        parameters = replace(b1_slack_parameters, convergence_epsilon=1e-10)
        select_slack_bus(network, parameters)
        with AcLoadFlowContext(network, parameters) as context:
            es = context.equation_system
            initialize_variables(es, network, create_voltage_initializer(VoltageInitMode.FLAT))
            result = create_solver("NEWTON_RAPHSON", network, parameters, es, context.jacobian,
                                   context.target_vector, context.equation_vector).run()
            assert es.bus_p(1) == pytest.approx(0.5, abs=1e-8)
            assert es.bus_p(2) == pytest.approx(-0.9, abs=1e-8)
            assert es.bus_q(2) == pytest.approx(-0.3, abs=1e-8)
            losses = sum(es.bus_p(b.num) for b in network.buses)
            assert losses > 0.0
            # slack produces the load minus b2 generation plus losses
            assert result.slack_bus_active_power_mismatch == pytest.approx(0.4 + losses,
                                                                           abs=1e-8)

    def test_mismatch_decreases_near_solution(self, three_bus_network):
        result = _run(three_bus_network, convergence_epsilon=1e-10)
        norms = result.mismatch_norms
        assert len(norms) == result.iterations + 1
        assert all(later <= earlier for earlier, later in zip(norms[1:], norms[2:]))
        assert norms[-1] < 1e-10

    def test_max_iterations(self, three_bus_network):
        result = _run(three_bus_network, max_newton_raphson_iterations=1,
                      convergence_epsilon=1e-12)
        assert result.status is AcSolverStatus.MAX_ITERATION_REACHED
        assert result.iterations == 1
        assert not result.converged

    def test_unrealistic_state(self, three_bus_network):
        result = _run(three_bus_network, min_realistic_voltage=1.015)
        assert result.status is AcSolverStatus.UNREALISTIC_STATE

    def test_infeasible_load(self, three_bus_network):
        network = three_bus_network
        network.loads[0].target_p = 50.0
        result = _run(network)
        assert not result.converged

    def test_slack_mismatch_in_mw(self):
        result = AcSolverResult(AcSolverStatus.CONVERGED, 3, 0.0125)
        assert result.slack_bus_active_power_mismatch_mw == pytest.approx(1.25)

    @pytest.mark.parametrize("scaling", list(StateVectorScalingMode))
    def test_state_vector_scaling(self, three_bus_network, scaling):
        result = _run(three_bus_network, state_vector_scaling=scaling)
        assert result.converged

    def test_per_equation_type_stopping_criteria(self, three_bus_network):
        result = _run(three_bus_network,
                      stopping_criteria=StoppingCriteriaType.PER_EQUATION_TYPE)
        assert result.converged
        # 1e-2 MW on active power is tighter than the 1e-4 pu default
        assert result.mismatch_norms[-1] < 1e-4


class TestStoppingCriteria:

    def test_default(self):
        criteria = DefaultStoppingCriteria(1e-4)
        result = criteria.test(np.array([1e-5, -2e-5]), None)
        assert result.stop
        assert result.norm == pytest.approx(2e-5)
        assert not criteria.test(np.array([0.0, 1e-3]), None).stop

    def test_empty_mismatch(self):
        assert DefaultStoppingCriteria().test(np.array([]), None).stop


class TestLineSearch:

    def test_first_reducing_step(self):
        tried = []

        def trial_norm(dx):
            tried.append(float(dx[0]))
            return 0.5 if dx[0] <= 0.25 else 2.0

        dx = LineSearchStateVectorScaling(10).apply(np.array([1.0]), None, 1.0, trial_norm)
        assert tried == [1.0, 0.5, 0.25]
        assert dx[0] == pytest.approx(0.25)

    def test_no_reducing_step_keeps_last_tried(self):
        tried = []

        def trial_norm(dx):
            tried.append(float(dx[0]))
            return 2.0

        dx = LineSearchStateVectorScaling(3).apply(np.array([1.0]), None, 1.0, trial_norm)
        assert tried == [1.0, 0.5, 0.25]
        assert dx[0] == tried[-1]


class TestSolverRegistry:

    def test_default_solver(self, three_bus_network):
        parameters = LoadFlowParameters()
        solver = create_solver("NEWTON_RAPHSON", three_bus_network, parameters,
                               None, None, None, None)
        assert isinstance(solver, NewtonRaphson)
        assert solver.name == "NEWTON_RAPHSON"

    def test_unknown_solver(self, three_bus_network):
        with pytest.raises(ValueError, match="Unknown AC solver"):
            create_solver("GAUSS_SEIDEL", three_bus_network, LoadFlowParameters(),
                          None, None, None, None)

    def test_register_solver(self, three_bus_network):

        class NoCalculationSolver(AcSolver):

            @property
            def name(self):
                return "NO_CALCULATION"

            def run(self):
                return AcSolverResult(AcSolverStatus.NO_CALCULATION, 0, 0.0)

        register_solver("TEST_NO_CALCULATION", NoCalculationSolver)
        result = _run(three_bus_network, solver="TEST_NO_CALCULATION")
        assert result.status is AcSolverStatus.NO_CALCULATION

    def test_register_rejects_non_solver(self):
        with pytest.raises(TypeError):
            register_solver("BAD", dict)


class TestVoltageInitializers:

    def test_dc_initializer_angles(self, three_bus_network, b1_slack_parameters):
        network = three_bus_network
        select_slack_bus(network, b1_slack_parameters)
        initializer = DcValueVoltageInitializer()
        initializer.prepare(network)
        b1, b2, b3 = network.buses
        assert initializer.angle(b1) == 0.0
        assert initializer.angle(b2) > initializer.angle(b3)
        assert initializer.angle(b3) < 0.0
        assert initializer.magnitude(b2) == pytest.approx(1.01)
        assert initializer.magnitude(b3) == 1.0

    def test_dc_initializer_converges(self, three_bus_network):
        result = _run(three_bus_network, voltage_initializer=VoltageInitMode.DC)
        assert result.converged

    def test_previous_values(self, three_bus_network):
        network = three_bus_network
        _run(network, convergence_epsilon=1e-10)
        result = _run(network, voltage_initializer=VoltageInitMode.PREVIOUS)
        assert result.converged
        assert result.iterations == 0

    def test_previous_falls_back_to_flat(self, three_bus_network):
        bus = three_bus_network.buses[1]
        bus.v = math.nan
        initializer = PreviousValueVoltageInitializer()
        assert initializer.magnitude(bus) == pytest.approx(1.01)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
