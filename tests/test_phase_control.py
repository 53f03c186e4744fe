"""
Tests for the incremental phase control outer loop and the shared discrete
controller machinery.
"""

import pytest

from core.parameters import LoadFlowParameters, SlackBusSelectionMode
from engine.ac_engine import run_ac_load_flow
from network.elements import ControlledSide, PhaseControl, PhaseControlMode, TapChanger
from network.lf_network import LfNetwork
from outerloop.incremental import (
    AllowedDirection,
    ControllerContext,
    Direction,
    DiscreteController,
    adjust_with_steps,
)


def _make_pst_network(mode: PhaseControlMode = PhaseControlMode.ACTIVE_POWER_CONTROL,
                      target_value: float = 0.6) -> LfNetwork:
    """
    A line in parallel with a phase shifter feeding a 100 MW load.

    The phase shifter has 21 taps of 0.01 rad, centred on zero.
    """
    network = LfNetwork("pst")
    network.add_bus("b1", nominal_v=110.0)
    network.add_bus("b2", nominal_v=110.0)
    network.add_generator("g1", "b1", voltage_regulator_on=True, target_v=1.0)
    network.add_load("l2", "b2", target_p=1.0)
    network.add_branch("line", "b1", "b2", r=0.0, x=0.1)
    network.add_branch(
        "pst", "b1", "b2", r=0.0, x=0.1,
        tap_changer=TapChanger([(1.0, -0.1 + 0.01 * k) for k in range(21)], position=10),
        phase_control=PhaseControl(mode, ControlledSide.SIDE_1, target_value),
    )
    return network


def _parameters(**kwargs) -> LoadFlowParameters:
    return LoadFlowParameters(slack_bus_selection_mode=SlackBusSelectionMode.NAME,
                              slack_bus_ids=("b1",), distributed_slack=False,
                              reactive_limits=False, phase_shifter_regulation=True,
                              convergence_epsilon=1e-8, **kwargs)


class _Tap:
    """Linear fake control: value equals position."""

    def __init__(self, position: int) -> None:
        self.position = position


def _make_controller(tap: _Tap, sensitivity: float = 1.0, context=None,
                     controller_id: str = "c") -> DiscreteController:
    return DiscreteController(
        id=controller_id,
        position=lambda: tap.position,
        low_position=0,
        high_position=10,
        value_at=float,
        move_to=lambda p: setattr(tap, "position", p),
        sensitivity=sensitivity,
        context=context if context is not None else ControllerContext(2),
    )


class TestControllerContext:

    def test_locked_after_reversals(self):
        context = ControllerContext(max_direction_change=2)
        context.update_allowed_direction(Direction.INCREASE)
        context.update_allowed_direction(Direction.DECREASE)
        assert context.allowed_direction is AllowedDirection.BOTH
        context.update_allowed_direction(Direction.INCREASE)
        assert context.direction_change_count == 2
        assert context.allowed_direction is AllowedDirection.INCREASE
        assert not context.allowed_direction.allows(Direction.DECREASE)

    def test_same_direction_not_counted(self):
        context = ControllerContext(max_direction_change=1)
        for _ in range(3):
            context.update_allowed_direction(Direction.DECREASE)
        assert context.direction_change_count == 0
        assert context.allowed_direction is AllowedDirection.BOTH


class TestAdjustWithSteps:

    def test_rounds_to_nearest_step(self):
        tap = _Tap(5)
        assert adjust_with_steps([_make_controller(tap)], 2.4, max_steps=5) == 2
        assert tap.position == 7

    def test_more_than_half_step_taken(self):
        tap = _Tap(5)
        assert adjust_with_steps([_make_controller(tap)], -0.6, max_steps=5) == 1
        assert tap.position == 4

    def test_less_than_half_step_ignored(self):
        tap = _Tap(5)
        assert adjust_with_steps([_make_controller(tap)], 0.4, max_steps=5) == 0
        assert tap.position == 5

    def test_max_steps(self):
        tap = _Tap(5)
        assert adjust_with_steps([_make_controller(tap)], 4.0, max_steps=3) == 3
        assert tap.position == 8

    def test_bounded_by_tap_range(self):
        tap = _Tap(9)
        assert adjust_with_steps([_make_controller(tap)], 4.0, max_steps=5) == 1
        assert tap.position == 10

    def test_negative_sensitivity(self):
        tap = _Tap(5)
        adjust_with_steps([_make_controller(tap, sensitivity=-1.0)], 2.0, max_steps=5)
        assert tap.position == 3

    def test_zero_sensitivity(self):
        tap = _Tap(5)
        assert adjust_with_steps([_make_controller(tap, sensitivity=0.0)], 2.0, 5) == 0

    def test_locked_direction(self):
        context = ControllerContext(1)
        context.update_allowed_direction(Direction.INCREASE)
        context.update_allowed_direction(Direction.DECREASE)
        tap = _Tap(5)
        assert adjust_with_steps([_make_controller(tap, context=context)], 2.0, 5) == 0
        assert tap.position == 5

    def test_controllers_alternate(self):
        tap_a, tap_b = _Tap(5), _Tap(5)
        controllers = [_make_controller(tap_a, controller_id="a"),
                       _make_controller(tap_b, controller_id="b")]
        assert adjust_with_steps(controllers, 3.0, max_steps=5) == 3
        assert (tap_a.position, tap_b.position) == (7, 6)


class TestIncrementalPhaseControl:

    def test_flow_regulated(self):
        network = _make_pst_network()
        result = run_ac_load_flow(network, _parameters(incremental_max_tap_shift=3))
        assert result.converged
        assert result.outer_loop_iterations == 1
        pst = network.branches[1]
        assert pst.tap_changer.position == 12
        assert pst.p1 == pytest.approx(0.6, abs=0.005)

    def test_one_tap_per_round(self):
        network = _make_pst_network()
        result = run_ac_load_flow(network, _parameters(incremental_max_tap_shift=1))
        assert result.converged
        assert result.outer_loop_iterations == 2
        assert network.branches[1].tap_changer.position == 12

    def test_within_deadband(self):
        network = _make_pst_network(target_value=0.502)
        result = run_ac_load_flow(network, _parameters())
        assert result.outer_loop_iterations == 0
        assert network.branches[1].tap_changer.position == 10

    def test_regulation_disabled(self):
        network = _make_pst_network()
        result = run_ac_load_flow(network, LoadFlowParameters(
            slack_bus_selection_mode=SlackBusSelectionMode.NAME, slack_bus_ids=("b1",),
            distributed_slack=False, reactive_limits=False, convergence_epsilon=1e-8))
        assert result.outer_loop_iterations == 0
        assert network.branches[1].tap_changer.position == 10
        assert network.branches[1].p1 == pytest.approx(0.5, abs=1e-6)

    def test_current_limiter_not_moved(self):
        network = _make_pst_network(mode=PhaseControlMode.CURRENT_LIMITER)
        result = run_ac_load_flow(network, _parameters())
        assert result.converged
        assert result.outer_loop_iterations == 0
        assert network.branches[1].tap_changer.position == 10


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
