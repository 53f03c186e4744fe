"""
Tests for the outer loop framework and the outer loop configuration.
"""

import json
import logging
from types import SimpleNamespace
from typing import List

import pytest

from core.log import JSONFormatter
from core.parameters import (
    CONTINGENCY,
    DISTRIBUTED_SLACK,
    INCREMENTAL_PHASE_CONTROL,
    INCREMENTAL_SHUNT_VOLTAGE_CONTROL,
    INCREMENTAL_TRANSFORMER_VOLTAGE_CONTROL,
    REACTIVE_LIMITS,
    BalanceType,
    LoadFlowParameters,
)
from outerloop.base import OuterLoop, OuterLoopContext, OuterLoopStatus
from outerloop.config import create_outer_loops, default_outer_loop_names
from outerloop.contingency import ContingencyOuterLoop
from outerloop.distributed_slack import DistributedSlackOuterLoop
from outerloop.framework import OuterLoopFramework
from outerloop.reactive_limits import ReactiveLimitsOuterLoop
from solver.status import AcSolverResult, AcSolverStatus


class RecordingOuterLoop(OuterLoop):
    """Returns the queued statuses, then STABLE, and records every call."""

    def __init__(self, name: str, statuses: List[OuterLoopStatus], calls: List[str]) -> None:
        self._name = name
        self._statuses = list(statuses)
        self.calls = calls

    @property
    def name(self) -> str:
        return self._name

    def initialize(self, context):
        self.calls.append(f"{self._name}.initialize")

    def check(self, context):
        self.calls.append(f"{self._name}.check")
        if self._statuses:
            return self._statuses.pop(0)
        return OuterLoopStatus.STABLE

    def cleanup(self, network):
        self.calls.append(f"{self._name}.cleanup")


class StubSolver:

    def __init__(self, statuses: List[AcSolverStatus]) -> None:
        self._statuses = list(statuses)
        self.runs = 0

    def run(self) -> AcSolverResult:
        self.runs += 1
        status = self._statuses.pop(0) if self._statuses else AcSolverStatus.CONVERGED
        return AcSolverResult(status, 2, 0.0)


class FailingOuterLoop(RecordingOuterLoop):

    def check(self, context):
        super().check(context)
        raise RuntimeError("boom")


def _make_context() -> OuterLoopContext:
    return OuterLoopContext(SimpleNamespace(id="stub"), None)


class TestOuterLoopFramework:

    def test_stable_first_round(self):
        calls = []
        loop = RecordingOuterLoop("a", [], calls)
        solver = StubSolver([])
        result = OuterLoopFramework([loop], 5).run(_make_context(), solver)
        assert result.stable
        assert result.outer_loop_iterations == 0
        assert result.newton_raphson_iterations == 2
        assert solver.runs == 1
        assert calls == ["a.initialize", "a.check", "a.cleanup"]

    def test_every_loop_checked_each_round(self):
        calls = []
        loops = [RecordingOuterLoop("a", [OuterLoopStatus.UNSTABLE], calls),
                 RecordingOuterLoop("b", [], calls)]
        solver = StubSolver([])
        result = OuterLoopFramework(loops, 5).run(_make_context(), solver)
        assert result.stable
        assert result.outer_loop_iterations == 1
        assert result.newton_raphson_iterations == 4
        assert solver.runs == 2
        assert calls == ["a.initialize", "b.initialize",
                         "a.check", "b.check",
                         "a.check", "b.check",
                         "a.cleanup", "b.cleanup"]

    def test_iteration_cap(self):
        calls = []
        loop = RecordingOuterLoop("a", [OuterLoopStatus.UNSTABLE] * 100, calls)
        solver = StubSolver([])
        result = OuterLoopFramework([loop], 3).run(_make_context(), solver)
        assert not result.stable
        assert result.outer_loop_iterations == 3
        assert solver.runs == 4
        assert calls.count("a.check") == 3
        assert calls[-1] == "a.cleanup"

    def test_solver_failure_stops(self):
        calls = []
        loop = RecordingOuterLoop("a", [], calls)
        result = OuterLoopFramework([loop], 5).run(
            _make_context(), StubSolver([AcSolverStatus.SOLVER_FAILED]))
        assert not result.stable
        assert result.solver_result.status is AcSolverStatus.SOLVER_FAILED
        assert result.outer_loop_iterations == 0
        assert calls == ["a.initialize", "a.cleanup"]

    def test_failure_after_unstable_round(self):
        calls = []
        loop = RecordingOuterLoop("a", [OuterLoopStatus.UNSTABLE], calls)
        solver = StubSolver([AcSolverStatus.CONVERGED, AcSolverStatus.MAX_ITERATION_REACHED])
        result = OuterLoopFramework([loop], 5).run(_make_context(), solver)
        assert result.outer_loop_iterations == 1
        assert result.solver_result.status is AcSolverStatus.MAX_ITERATION_REACHED
        assert not result.stable

    def test_cleanup_on_exception(self):
        calls = []
        loops = [FailingOuterLoop("a", [], calls), RecordingOuterLoop("b", [], calls)]
        with pytest.raises(RuntimeError, match="boom"):
            OuterLoopFramework(loops, 5).run(_make_context(), StubSolver([]))
        assert calls[-2:] == ["a.cleanup", "b.cleanup"]

    def test_round_log_fields(self, caplog):
        calls = []
        loop = RecordingOuterLoop("a", [OuterLoopStatus.UNSTABLE], calls)
        with caplog.at_level(logging.DEBUG, logger="outerloop.framework"):
            OuterLoopFramework([loop], 5).run(_make_context(), StubSolver([]))
        records = [r for r in caplog.records if r.name == "outerloop.framework"]
        assert [(r.outer_loop, r.iteration) for r in records] == [("a", 0), ("a", 1)]
        entry = json.loads(JSONFormatter().format(records[0]))
        assert entry["network_id"] == "stub"
        assert entry["outer_loop"] == "a"
        assert entry["iteration"] == 0

    def test_context_updated(self):
        context = _make_context()
        loop = RecordingOuterLoop("a", [OuterLoopStatus.UNSTABLE], [])
        OuterLoopFramework([loop], 5).run(context, StubSolver([]))
        assert context.iteration == 1
        assert context.last_solver_result.converged


class TestOuterLoopContext:

    def test_get_data_factory(self):
        context = _make_context()
        assert context.get_data("x") is None
        data = context.get_data("x", dict)
        assert data == {}
        assert context.get_data("x", list) is data


class TestOuterLoopConfig:

    def test_default_order(self):
        parameters = LoadFlowParameters(phase_shifter_regulation=True,
                                        transformer_voltage_control=True,
                                        shunt_voltage_control=True)
        assert default_outer_loop_names(parameters) == [
            DISTRIBUTED_SLACK,
            REACTIVE_LIMITS,
            INCREMENTAL_PHASE_CONTROL,
            INCREMENTAL_TRANSFORMER_VOLTAGE_CONTROL,
            INCREMENTAL_SHUNT_VOLTAGE_CONTROL,
        ]

    def test_switches(self):
        parameters = LoadFlowParameters(distributed_slack=False)
        assert [o.name for o in create_outer_loops(parameters)] == [REACTIVE_LIMITS]

    def test_no_loop(self):
        parameters = LoadFlowParameters(distributed_slack=False, reactive_limits=False)
        assert create_outer_loops(parameters) == []

    def test_explicit_order(self):
        parameters = LoadFlowParameters(outer_loops=(REACTIVE_LIMITS, CONTINGENCY,
                                                     DISTRIBUTED_SLACK),
                                        distributed_slack=False)
        loops = create_outer_loops(parameters)
        assert [type(o) for o in loops] == [ReactiveLimitsOuterLoop, ContingencyOuterLoop,
                                            DistributedSlackOuterLoop]

    def test_loop_tuning(self):
        parameters = LoadFlowParameters(
            max_pq_pv_switch=5,
            balance_type=BalanceType.PROPORTIONAL_TO_LOAD,
            slack_bus_p_max_mismatch=0.5,
            throw_on_slack_distribution_failure=True,
            incremental_max_tap_shift=2,
            outer_loops=(DISTRIBUTED_SLACK, REACTIVE_LIMITS, INCREMENTAL_PHASE_CONTROL),
        )
        slack, limits, phase = create_outer_loops(parameters)
        assert slack.slack_bus_p_max_mismatch == 0.5
        assert slack.throw_on_failure
        assert slack.distribution.step.__class__.__name__ == "LoadActivePowerDistributionStep"
        assert limits.max_pq_pv_switch == 5
        assert phase.max_tap_shift == 2

    def test_contingency_always_stable(self):
        context = _make_context()
        loop = ContingencyOuterLoop()
        loop.initialize(context)
        assert loop.check(context) is OuterLoopStatus.STABLE


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
